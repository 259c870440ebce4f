from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Iterable, Sequence

from linkshelf.errors import NotFoundError
from linkshelf.models import (
    Bookmark,
    BookmarkInput,
    Folder,
    FolderInput,
    ReorderItem,
    Tag,
    TagInput,
)
from linkshelf.services.bookmark_import import ImportData
from linkshelf.services.common import descendant_ids, find_by_id, find_by_name
from linkshelf.services.filters import ViewFilters, filter_view
from linkshelf.services.optimistic import run_optimistic
from linkshelf.services.search import DEFAULT_THRESHOLD, BookmarkIndex
from linkshelf.services.stores import StoreResolver


logger = logging.getLogger(__name__)


def dense_order(ids: Iterable[str]) -> list[ReorderItem]:
    return [ReorderItem(id=item_id, sort_order=i) for i, item_id in enumerate(ids)]


def _apply_sort_orders(collection: tuple, items: Sequence[ReorderItem]) -> tuple:
    orders = {item.id: item.sort_order for item in items}
    updated = [
        replace(entity, sort_order=orders[entity.id]) if entity.id in orders else entity
        for entity in collection
    ]
    return tuple(sorted(updated, key=lambda entity: entity.sort_order))


class SyncCoordinator:
    """Owns the in-memory working set and routes every change to a store.

    Collections are exposed as tuples and replaced wholesale on every change,
    so a reference taken earlier is a stable snapshot. Only the reorder
    operations are optimistic; everything else waits for the store.
    """

    def __init__(self, resolver: StoreResolver, search_threshold: float = DEFAULT_THRESHOLD):
        self._resolve = resolver
        self.search_threshold = search_threshold
        self._bookmarks: tuple[Bookmark, ...] = ()
        self._folders: tuple[Folder, ...] = ()
        self._tags: tuple[Tag, ...] = ()
        self._index: BookmarkIndex | None = None
        self.loading = False
        self.error: str | None = None

    @property
    def bookmarks(self) -> tuple[Bookmark, ...]:
        return self._bookmarks

    @property
    def folders(self) -> tuple[Folder, ...]:
        return self._folders

    @property
    def tags(self) -> tuple[Tag, ...]:
        return self._tags

    @property
    def search_index(self) -> BookmarkIndex:
        if self._index is None or self._index.source is not self._bookmarks:
            self._index = BookmarkIndex(self._bookmarks, self.search_threshold)
        return self._index

    def get_bookmark(self, bookmark_id: str) -> Bookmark | None:
        return find_by_id(self._bookmarks, bookmark_id)

    def filtered_bookmarks(self, view: ViewFilters) -> list[Bookmark]:
        return filter_view(self._bookmarks, view, self.search_index)

    async def load(self) -> bool:
        self.loading = True
        self.error = None
        store = self._resolve()
        try:
            # every call settles before the first failure is reported
            results = await asyncio.gather(
                store.bookmarks.list(),
                store.folders.list(),
                store.tags.list(),
                return_exceptions=True,
            )
        finally:
            self.loading = False

        for result in results:
            if isinstance(result, Exception):
                self.error = str(result) or result.__class__.__name__
                logger.warning("Loading bookmarks failed: %s", self.error)
                return False
            if isinstance(result, BaseException):
                raise result
        bookmarks, folders, tags = results

        self._bookmarks = tuple(bookmarks)
        self._folders = tuple(folders)
        self._tags = tuple(tags)
        return True

    def _merge_tags(self, tags: Iterable[Tag]) -> None:
        known = {tag.id for tag in self._tags}
        new_tags = []
        for tag in tags:
            if tag.id not in known:
                known.add(tag.id)
                new_tags.append(tag)
        if new_tags:
            self._tags = self._tags + tuple(new_tags)

    # Bookmarks

    async def create_bookmark(self, data: BookmarkInput) -> Bookmark:
        bookmark = await self._resolve().bookmarks.create(data)
        self._bookmarks = self._bookmarks + (bookmark,)
        self._merge_tags(bookmark.tags)
        return bookmark

    async def update_bookmark(self, bookmark_id: str, changes: dict) -> Bookmark:
        updated = await self._resolve().bookmarks.update(bookmark_id, changes)
        self._bookmarks = tuple(
            updated if b.id == bookmark_id else b for b in self._bookmarks
        )
        self._merge_tags(updated.tags)
        return updated

    async def delete_bookmark(self, bookmark_id: str) -> None:
        await self._resolve().bookmarks.delete(bookmark_id)
        self._bookmarks = tuple(b for b in self._bookmarks if b.id != bookmark_id)

    async def toggle_favorite(self, bookmark_id: str) -> Bookmark:
        bookmark = self.get_bookmark(bookmark_id)
        if bookmark is None:
            raise NotFoundError("Bookmark", bookmark_id)
        return await self.update_bookmark(
            bookmark_id, {"is_favorite": not bookmark.is_favorite}
        )

    async def track_click(self, bookmark_id: str) -> None:
        self._bookmarks = tuple(
            replace(b, click_count=b.click_count + 1) if b.id == bookmark_id else b
            for b in self._bookmarks
        )
        try:
            await self._resolve().bookmarks.track_click(bookmark_id)
        except Exception as exc:
            logger.debug("Click tracking for %s failed: %s", bookmark_id, exc)

    async def check_duplicate(self, url: str) -> bool:
        return await self._resolve().bookmarks.check_duplicate(url)

    def reorder_bookmarks(self, items: Sequence[ReorderItem]) -> asyncio.Task:
        """Re-sort in memory now and persist in the background.

        Returns the persistence task; awaiting it surfaces a store failure,
        by which time the collection has been restored to what it was when
        this method was called.
        """
        items = list(items)
        store = self._resolve()
        snapshot = self._bookmarks

        def apply() -> None:
            self._bookmarks = _apply_sort_orders(snapshot, items)

        def rollback(previous: tuple[Bookmark, ...]) -> None:
            self._bookmarks = previous

        return run_optimistic(
            snapshot,
            apply,
            lambda: store.bookmarks.reorder(items),
            rollback,
            label="bookmark reorder",
        )

    # Folders

    async def create_folder(self, data: FolderInput) -> Folder:
        folder = await self._resolve().folders.create(data)
        self._folders = self._folders + (folder,)
        return folder

    async def update_folder(self, folder_id: str, changes: dict) -> Folder:
        updated = await self._resolve().folders.update(folder_id, changes)
        self._folders = tuple(updated if f.id == folder_id else f for f in self._folders)
        if "name" in changes:
            self._bookmarks = tuple(
                replace(b, folder_name=updated.name) if b.folder_id == folder_id else b
                for b in self._bookmarks
            )
        return updated

    async def delete_folder(self, folder_id: str) -> None:
        await self._resolve().folders.delete(folder_id)
        removed = descendant_ids(self._folders, folder_id)
        self._folders = tuple(f for f in self._folders if f.id not in removed)
        self._bookmarks = tuple(
            replace(b, folder_id=None, folder_name=None) if b.folder_id in removed else b
            for b in self._bookmarks
        )

    def reorder_folders(self, items: Sequence[ReorderItem]) -> asyncio.Task:
        items = list(items)
        store = self._resolve()
        snapshot = self._folders

        def apply() -> None:
            self._folders = _apply_sort_orders(snapshot, items)

        def rollback(previous: tuple[Folder, ...]) -> None:
            self._folders = previous

        return run_optimistic(
            snapshot,
            apply,
            lambda: store.folders.reorder(items),
            rollback,
            label="folder reorder",
        )

    # Tags

    async def create_tag(self, data: TagInput) -> Tag:
        tag = await self._resolve().tags.create(data)
        self._tags = self._tags + (tag,)
        return tag

    async def update_tag(self, tag_id: str, changes: dict) -> Tag:
        updated = await self._resolve().tags.update(tag_id, changes)
        self._tags = tuple(updated if t.id == tag_id else t for t in self._tags)
        self._bookmarks = tuple(
            replace(
                b,
                tags=[
                    replace(t, name=updated.name, color=updated.color)
                    if t.id == tag_id
                    else t
                    for t in b.tags
                ],
            )
            if b.has_tag(tag_id)
            else b
            for b in self._bookmarks
        )
        return updated

    async def delete_tag(self, tag_id: str) -> None:
        await self._resolve().tags.delete(tag_id)
        self._tags = tuple(t for t in self._tags if t.id != tag_id)
        self._bookmarks = tuple(
            replace(b, tags=[t for t in b.tags if t.id != tag_id])
            if b.has_tag(tag_id)
            else b
            for b in self._bookmarks
        )

    # Import / export

    async def import_data(self, data: ImportData) -> list[Bookmark]:
        """Bring external bookmarks into the active store.

        Folders are resolved by case-insensitive name against what the store
        holds right now, creating the missing ones first; bookmarks are then
        bulk-imported with their folder rewritten to the store's id. The
        store drops URLs it already has.
        """
        store = self._resolve()
        existing = list(await store.folders.list())
        created_folders = []
        folder_ids: dict[str, str] = {}
        for name in data.folder_names():
            folder = find_by_name(existing, name)
            if folder is None:
                folder = await store.folders.create(FolderInput(name=name))
                existing.append(folder)
                created_folders.append(folder)
            folder_ids[name.lower()] = folder.id

        inputs = [
            entry.to_input(folder_ids.get((entry.folder_name or "").lower()))
            for entry in data.bookmarks
        ]
        imported = await store.bookmarks.import_many(inputs)
        logger.info(
            "Imported %s of %s bookmark(s), %s new folder(s)",
            len(imported),
            len(inputs),
            len(created_folders),
        )

        self._folders = self._folders + tuple(created_folders)
        self._bookmarks = self._bookmarks + tuple(imported)
        for bookmark in imported:
            self._merge_tags(bookmark.tags)
        return imported

    async def export_data(self) -> dict:
        return await self._resolve().export()
