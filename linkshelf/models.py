from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from dateutil import parser as dt_parser

from linkshelf.errors import ValidationError


MAX_URL_LENGTH = 2048
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 2000
MAX_FOLDER_NAME_LENGTH = 255
MAX_TAG_NAME_LENGTH = 64

BOOKMARK_UPDATE_FIELDS = {
    "url",
    "title",
    "description",
    "favicon",
    "is_favorite",
    "folder_id",
    "tags",
}
FOLDER_UPDATE_FIELDS = {"name", "color", "icon", "parent_folder_id"}
TAG_UPDATE_FIELDS = {"name", "color"}

_WIRE_NAMES = {
    "is_favorite": "isFavorite",
    "click_count": "clickCount",
    "sort_order": "sortOrder",
    "folder_id": "folderId",
    "folder_name": "folderName",
    "parent_folder_id": "parentFolderId",
    "bookmark_count": "bookmarkCount",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = dt_parser.isoparse(value) if value else None
        except (TypeError, ValueError):
            parsed = None
    if parsed is None:
        return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_text(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _require_text(value, field_name: str, max_length: int) -> str:
    text = (value or "").strip() if isinstance(value, str) or value is None else ""
    if not text:
        raise ValidationError(f"{field_name} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return text


def _check_length(value, field_name: str, max_length: int) -> None:
    if value is not None and len(value) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")


@dataclass
class Tag:
    id: str
    name: str
    color: str | None = None
    bookmark_count: int = 0
    created_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "bookmarkCount": self.bookmark_count,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Tag:
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            color=_optional_text(data.get("color")),
            bookmark_count=int(data.get("bookmarkCount") or 0),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass
class Folder:
    id: str
    name: str
    color: str | None = None
    icon: str | None = None
    sort_order: int = 0
    parent_folder_id: str | None = None
    bookmark_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "sortOrder": self.sort_order,
            "parentFolderId": self.parent_folder_id,
            "bookmarkCount": self.bookmark_count,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Folder:
        parent_id = data.get("parentFolderId")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            color=_optional_text(data.get("color")),
            icon=_optional_text(data.get("icon")),
            sort_order=int(data.get("sortOrder") or 0),
            parent_folder_id=str(parent_id) if parent_id else None,
            bookmark_count=int(data.get("bookmarkCount") or 0),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class Bookmark:
    id: str
    url: str
    title: str
    description: str | None = None
    favicon: str | None = None
    is_favorite: bool = False
    click_count: int = 0
    sort_order: int = 0
    folder_id: str | None = None
    folder_name: str | None = None
    tags: list[Tag] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def tag_ids(self) -> list[str]:
        return [tag.id for tag in self.tags]

    @property
    def tag_names(self) -> list[str]:
        return [tag.name for tag in self.tags]

    def has_tag(self, tag_id: str) -> bool:
        return any(tag.id == tag_id for tag in self.tags)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "favicon": self.favicon,
            "isFavorite": self.is_favorite,
            "clickCount": self.click_count,
            "sortOrder": self.sort_order,
            "folderId": self.folder_id,
            "folderName": self.folder_name,
            "tags": [tag.as_dict() for tag in self.tags],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Bookmark:
        folder_id = data.get("folderId")
        return cls(
            id=str(data["id"]),
            url=data.get("url") or "",
            title=data.get("title") or "",
            description=_optional_text(data.get("description")),
            favicon=_optional_text(data.get("favicon")),
            is_favorite=bool(data.get("isFavorite")),
            click_count=max(int(data.get("clickCount") or 0), 0),
            sort_order=int(data.get("sortOrder") or 0),
            folder_id=str(folder_id) if folder_id else None,
            folder_name=_optional_text(data.get("folderName")),
            tags=[Tag.from_dict(tag) for tag in data.get("tags") or []],
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class ReorderItem:
    id: str
    sort_order: int

    def as_dict(self) -> dict:
        return {"id": self.id, "sortOrder": self.sort_order}


@dataclass
class BookmarkInput:
    url: str
    title: str
    description: str | None = None
    favicon: str | None = None
    folder_id: str | None = None
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False

    def validate(self) -> None:
        self.url = _require_text(self.url, "url", MAX_URL_LENGTH)
        self.title = _require_text(self.title, "title", MAX_TITLE_LENGTH)
        _check_length(self.description, "description", MAX_DESCRIPTION_LENGTH)
        _check_length(self.favicon, "favicon", MAX_URL_LENGTH)
        for name in self.tags:
            _require_text(name, "tag name", MAX_TAG_NAME_LENGTH)

    def as_payload(self) -> dict:
        payload = {"url": self.url, "title": self.title, "tags": list(self.tags)}
        for key in ("description", "favicon", "folder_id"):
            value = getattr(self, key)
            if value is not None:
                payload[_WIRE_NAMES.get(key, key)] = value
        if self.is_favorite:
            payload["isFavorite"] = True
        return payload


@dataclass
class FolderInput:
    name: str
    color: str | None = None
    icon: str | None = None
    parent_folder_id: str | None = None

    def validate(self) -> None:
        self.name = _require_text(self.name, "name", MAX_FOLDER_NAME_LENGTH)

    def as_payload(self) -> dict:
        payload = {"name": self.name}
        for key in ("color", "icon", "parent_folder_id"):
            value = getattr(self, key)
            if value is not None:
                payload[_WIRE_NAMES.get(key, key)] = value
        return payload


@dataclass
class TagInput:
    name: str
    color: str | None = None

    def validate(self) -> None:
        self.name = _require_text(self.name, "name", MAX_TAG_NAME_LENGTH)

    def as_payload(self) -> dict:
        payload = {"name": self.name}
        if self.color is not None:
            payload["color"] = self.color
        return payload


def validate_changes(
    changes: dict, allowed: set[str], name_max_length: int = MAX_FOLDER_NAME_LENGTH
) -> dict:
    """Check a partial update and return a normalized copy of it.

    Only the keys present in ``changes`` are applied by the stores; an empty
    string or ``None`` is a real value, not "leave untouched".
    """
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"unsupported field(s): {', '.join(sorted(unknown))}")

    clean = dict(changes)
    # unlike creation, an update may blank the url or title
    for key, max_length in (("url", MAX_URL_LENGTH), ("title", MAX_TITLE_LENGTH)):
        if key in clean:
            value = clean[key] or ""
            if not isinstance(value, str):
                raise ValidationError(f"{key} must be a string")
            clean[key] = value.strip()
            _check_length(clean[key], key, max_length)
    if "name" in clean:
        clean["name"] = _require_text(clean["name"], "name", name_max_length)
    if "description" in clean:
        _check_length(clean["description"], "description", MAX_DESCRIPTION_LENGTH)
    if "is_favorite" in clean:
        clean["is_favorite"] = bool(clean["is_favorite"])
    if "tags" in clean:
        tags = clean["tags"] or []
        if isinstance(tags, str):
            raise ValidationError("tags must be a list of tag names")
        clean["tags"] = [
            _require_text(name, "tag name", MAX_TAG_NAME_LENGTH) for name in tags
        ]
    return clean


def changes_payload(changes: dict) -> dict:
    return {_WIRE_NAMES.get(key, key): value for key, value in changes.items()}
