from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Sequence

from linkshelf.errors import DuplicateTagError, NotFoundError, ValidationError
from linkshelf.models import (
    BOOKMARK_UPDATE_FIELDS,
    FOLDER_UPDATE_FIELDS,
    MAX_TAG_NAME_LENGTH,
    TAG_UPDATE_FIELDS,
    Bookmark,
    BookmarkInput,
    Folder,
    FolderInput,
    ReorderItem,
    Tag,
    TagInput,
    new_id,
    utcnow,
    validate_changes,
)
from linkshelf.services.common import (
    descendant_ids,
    find_by_id,
    find_by_name,
    name_exists,
    unique_names,
)
from linkshelf.services.stores import BookmarkStore, EntityStore, FolderStore, TagStore


logger = logging.getLogger(__name__)

COLLECTION_KEYS = ("bookmarks", "folders", "tags")


def empty_document() -> dict:
    return {key: [] for key in COLLECTION_KEYS}


class LocalBlob:
    """A JSON document on disk addressed by a fixed key.

    Reads and writes always cover the whole document; there is no locking, so
    two processes sharing one blob can overwrite each other.
    """

    def __init__(self, directory: Path | str, key: str):
        self.path = Path(directory) / f"{key}.json"

    def read(self) -> dict:
        if not self.path.exists():
            return empty_document()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable local store %s: %s", self.path, exc)
            return empty_document()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed local store %s", self.path)
            return empty_document()
        return {key: list(data.get(key) or []) for key in COLLECTION_KEYS}

    def write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp_path, self.path)


@dataclass
class LocalSnapshot:
    bookmarks: list[Bookmark] = field(default_factory=list)
    folders: list[Folder] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "bookmarks": [b.as_dict() for b in self.bookmarks],
            "folders": [f.as_dict() for f in self.folders],
            "tags": [t.as_dict() for t in self.tags],
        }

    def folders_with_counts(self) -> list[Folder]:
        return [
            replace(
                folder,
                bookmark_count=sum(1 for b in self.bookmarks if b.folder_id == folder.id),
            )
            for folder in self.folders
        ]

    def tags_with_counts(self) -> list[Tag]:
        return [
            replace(
                tag, bookmark_count=sum(1 for b in self.bookmarks if b.has_tag(tag.id))
            )
            for tag in self.tags
        ]


def _require_folder(snapshot: LocalSnapshot, folder_id: str | None) -> Folder | None:
    if not folder_id:
        return None
    folder = find_by_id(snapshot.folders, folder_id)
    if folder is None:
        raise NotFoundError("Folder", folder_id)
    return folder


def _resolve_tags(snapshot: LocalSnapshot, names: Iterable[str]) -> list[Tag]:
    tags = []
    for name in unique_names(names):
        tag = find_by_name(snapshot.tags, name)
        if tag is None:
            tag = Tag(id=new_id(), name=name)
            snapshot.tags.append(tag)
        tags.append(replace(tag))
    return tags


class LocalStore(EntityStore):
    """Entity store backed by the client-resident blob."""

    def __init__(self, blob: LocalBlob):
        self.blob = blob
        self.bookmarks = LocalBookmarkStore(self)
        self.folders = LocalFolderStore(self)
        self.tags = LocalTagStore(self)

    def load(self) -> LocalSnapshot:
        data = self.blob.read()
        return LocalSnapshot(
            bookmarks=[Bookmark.from_dict(row) for row in data["bookmarks"]],
            folders=[Folder.from_dict(row) for row in data["folders"]],
            tags=[Tag.from_dict(row) for row in data["tags"]],
        )

    def save(self, snapshot: LocalSnapshot) -> None:
        self.blob.write(snapshot.as_dict())

    def has_data(self) -> bool:
        snapshot = self.load()
        return bool(snapshot.bookmarks or snapshot.folders)

    def clear(self) -> None:
        self.blob.write(empty_document())
        logger.info("Cleared local store %s", self.blob.path)

    async def export(self) -> dict:
        snapshot = self.load()
        return {
            "bookmarks": [b.as_dict() for b in snapshot.bookmarks],
            "folders": [f.as_dict() for f in snapshot.folders_with_counts()],
            "tags": [t.as_dict() for t in snapshot.tags_with_counts()],
            "exportedAt": utcnow().isoformat(),
        }


class LocalBookmarkStore(BookmarkStore):
    def __init__(self, store: LocalStore):
        self._store = store

    async def list(self) -> list[Bookmark]:
        return self._store.load().bookmarks

    def _create(self, snapshot: LocalSnapshot, data: BookmarkInput) -> Bookmark:
        folder = _require_folder(snapshot, data.folder_id)
        now = utcnow()
        bookmark = Bookmark(
            id=new_id(),
            url=data.url,
            title=data.title,
            description=data.description,
            favicon=data.favicon,
            is_favorite=data.is_favorite,
            click_count=0,
            sort_order=len(snapshot.bookmarks),
            folder_id=folder.id if folder else None,
            folder_name=folder.name if folder else None,
            tags=_resolve_tags(snapshot, data.tags),
            created_at=now,
            updated_at=now,
        )
        snapshot.bookmarks.append(bookmark)
        return bookmark

    async def create(self, data: BookmarkInput) -> Bookmark:
        data.validate()
        snapshot = self._store.load()
        bookmark = self._create(snapshot, data)
        self._store.save(snapshot)
        return bookmark

    async def update(self, bookmark_id: str, changes: dict) -> Bookmark:
        changes = validate_changes(changes, BOOKMARK_UPDATE_FIELDS)
        snapshot = self._store.load()
        bookmark = find_by_id(snapshot.bookmarks, bookmark_id)
        if bookmark is None:
            raise NotFoundError("Bookmark", bookmark_id)

        for key in ("url", "title", "description", "favicon", "is_favorite"):
            if key in changes:
                setattr(bookmark, key, changes[key])
        if "folder_id" in changes:
            folder = _require_folder(snapshot, changes["folder_id"])
            bookmark.folder_id = folder.id if folder else None
            bookmark.folder_name = folder.name if folder else None
        if "tags" in changes:
            bookmark.tags = _resolve_tags(snapshot, changes["tags"])
        bookmark.updated_at = utcnow()

        self._store.save(snapshot)
        return bookmark

    async def delete(self, bookmark_id: str) -> None:
        snapshot = self._store.load()
        remaining = [b for b in snapshot.bookmarks if b.id != bookmark_id]
        if len(remaining) == len(snapshot.bookmarks):
            raise NotFoundError("Bookmark", bookmark_id)
        snapshot.bookmarks = remaining
        self._store.save(snapshot)

    async def reorder(self, items: Sequence[ReorderItem]) -> None:
        snapshot = self._store.load()
        by_id = {b.id: b for b in snapshot.bookmarks}
        for item in items:
            bookmark = by_id.get(item.id)
            if bookmark is not None:
                bookmark.sort_order = item.sort_order
        self._store.save(snapshot)

    async def track_click(self, bookmark_id: str) -> None:
        snapshot = self._store.load()
        bookmark = find_by_id(snapshot.bookmarks, bookmark_id)
        if bookmark is None:
            logger.debug("Click on unknown bookmark %s ignored", bookmark_id)
            return
        bookmark.click_count += 1
        self._store.save(snapshot)

    async def check_duplicate(self, url: str) -> bool:
        return any(b.url == url for b in self._store.load().bookmarks)

    async def import_many(self, inputs: Iterable[BookmarkInput]) -> list[Bookmark]:
        inputs = list(inputs)
        for data in inputs:
            data.validate()

        snapshot = self._store.load()
        known_urls = {b.url for b in snapshot.bookmarks}
        created = []
        for data in inputs:
            if data.url in known_urls:
                continue
            created.append(self._create(snapshot, data))
            known_urls.add(data.url)
        self._store.save(snapshot)
        return created


class LocalFolderStore(FolderStore):
    def __init__(self, store: LocalStore):
        self._store = store

    async def list(self) -> list[Folder]:
        return self._store.load().folders_with_counts()

    async def create(self, data: FolderInput) -> Folder:
        data.validate()
        snapshot = self._store.load()
        parent = _require_folder(snapshot, data.parent_folder_id)
        now = utcnow()
        folder = Folder(
            id=new_id(),
            name=data.name,
            color=data.color,
            icon=data.icon,
            sort_order=len(snapshot.folders),
            parent_folder_id=parent.id if parent else None,
            created_at=now,
            updated_at=now,
        )
        snapshot.folders.append(folder)
        self._store.save(snapshot)
        return folder

    async def update(self, folder_id: str, changes: dict) -> Folder:
        changes = validate_changes(changes, FOLDER_UPDATE_FIELDS)
        snapshot = self._store.load()
        folder = find_by_id(snapshot.folders, folder_id)
        if folder is None:
            raise NotFoundError("Folder", folder_id)

        if "parent_folder_id" in changes:
            parent = _require_folder(snapshot, changes["parent_folder_id"])
            if parent is not None and parent.id in descendant_ids(
                snapshot.folders, folder.id
            ):
                raise ValidationError("A folder cannot be moved inside itself")
            folder.parent_folder_id = parent.id if parent else None
        for key in ("name", "color", "icon"):
            if key in changes:
                setattr(folder, key, changes[key])
        if "name" in changes:
            for bookmark in snapshot.bookmarks:
                if bookmark.folder_id == folder.id:
                    bookmark.folder_name = folder.name
        folder.updated_at = utcnow()

        self._store.save(snapshot)
        return replace(
            folder,
            bookmark_count=sum(1 for b in snapshot.bookmarks if b.folder_id == folder.id),
        )

    async def delete(self, folder_id: str) -> None:
        snapshot = self._store.load()
        if find_by_id(snapshot.folders, folder_id) is None:
            raise NotFoundError("Folder", folder_id)

        removed = descendant_ids(snapshot.folders, folder_id)
        for bookmark in snapshot.bookmarks:
            if bookmark.folder_id in removed:
                bookmark.folder_id = None
                bookmark.folder_name = None
        snapshot.folders = [f for f in snapshot.folders if f.id not in removed]
        self._store.save(snapshot)

    async def reorder(self, items: Sequence[ReorderItem]) -> None:
        snapshot = self._store.load()
        by_id = {f.id: f for f in snapshot.folders}
        for item in items:
            folder = by_id.get(item.id)
            if folder is not None:
                folder.sort_order = item.sort_order
        self._store.save(snapshot)


class LocalTagStore(TagStore):
    def __init__(self, store: LocalStore):
        self._store = store

    async def list(self) -> list[Tag]:
        return self._store.load().tags_with_counts()

    async def create(self, data: TagInput) -> Tag:
        data.validate()
        snapshot = self._store.load()
        if name_exists(snapshot.tags, data.name):
            raise DuplicateTagError(data.name)
        tag = Tag(id=new_id(), name=data.name, color=data.color)
        snapshot.tags.append(tag)
        self._store.save(snapshot)
        return tag

    async def update(self, tag_id: str, changes: dict) -> Tag:
        changes = validate_changes(changes, TAG_UPDATE_FIELDS, MAX_TAG_NAME_LENGTH)
        snapshot = self._store.load()
        tag = find_by_id(snapshot.tags, tag_id)
        if tag is None:
            raise NotFoundError("Tag", tag_id)
        if "name" in changes and name_exists(snapshot.tags, changes["name"], tag.id):
            raise DuplicateTagError(changes["name"])

        for key in ("name", "color"):
            if key in changes:
                setattr(tag, key, changes[key])
        for bookmark in snapshot.bookmarks:
            for embedded in bookmark.tags:
                if embedded.id == tag.id:
                    embedded.name = tag.name
                    embedded.color = tag.color

        self._store.save(snapshot)
        return replace(
            tag, bookmark_count=sum(1 for b in snapshot.bookmarks if b.has_tag(tag.id))
        )

    async def delete(self, tag_id: str) -> None:
        snapshot = self._store.load()
        if find_by_id(snapshot.tags, tag_id) is None:
            raise NotFoundError("Tag", tag_id)
        for bookmark in snapshot.bookmarks:
            bookmark.tags = [t for t in bookmark.tags if t.id != tag_id]
        snapshot.tags = [t for t in snapshot.tags if t.id != tag_id]
        self._store.save(snapshot)
