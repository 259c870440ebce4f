from __future__ import annotations

import logging
from typing import Iterable, Sequence
from urllib.parse import quote

import httpx

from linkshelf.auth import TokenProvider, bearer_headers
from linkshelf.errors import (
    AccessDeniedError,
    ConflictError,
    DuplicateTagError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteServiceError,
    ValidationError,
)
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
    changes_payload,
    validate_changes,
)
from linkshelf.services.stores import BookmarkStore, EntityStore, FolderStore, TagStore


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "linkshelf/1.0",
    "Accept": "application/json",
}
DEFAULT_ERROR_MESSAGE = "An error occurred"


def _normalize_error(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return DEFAULT_ERROR_MESSAGE
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return DEFAULT_ERROR_MESSAGE


def error_for_response(
    response: httpx.Response, entity_type: str = "Resource", entity_id=None
) -> Exception:
    status = response.status_code
    message = _error_message(response)
    if status == 401:
        return NotAuthenticatedError(message)
    if status == 403:
        return AccessDeniedError(message)
    if status == 404:
        return NotFoundError(entity_type, entity_id, message)
    if status == 409:
        return ConflictError(message)
    if status in {400, 422}:
        return ValidationError(message)
    return RemoteServiceError(status, message)


def _path(*parts: str) -> str:
    return "/" + "/".join(quote(str(part), safe="") for part in parts)


class RemoteStore(EntityStore):
    """Entity store that delegates every operation to the remote service."""

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._token_provider = token_provider
        self._transport = transport
        self.bookmarks = RemoteBookmarkStore(self)
        self.folders = RemoteFolderStore(self)
        self.tags = RemoteTagStore(self)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json=None,
        params: dict | None = None,
        entity_type: str = "Resource",
        entity_id=None,
    ):
        token = await self._token_provider()
        if not token:
            raise NotAuthenticatedError()

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=DEFAULT_HEADERS,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    headers=bearer_headers(token),
                )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(None, _normalize_error(exc)) from exc

        if response.is_error:
            error = error_for_response(response, entity_type, entity_id)
            logger.warning(
                "%s %s failed with %s: %s", method, path, response.status_code, error
            )
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def export(self) -> dict:
        return await self.request("GET", "/bookmarks/export") or {}


class RemoteBookmarkStore(BookmarkStore):
    def __init__(self, store: RemoteStore):
        self._store = store

    async def list(self) -> list[Bookmark]:
        rows = await self._store.request("GET", "/bookmarks")
        return [Bookmark.from_dict(row) for row in rows or []]

    async def create(self, data: BookmarkInput) -> Bookmark:
        data.validate()
        row = await self._store.request("POST", "/bookmarks", json=data.as_payload())
        return Bookmark.from_dict(row)

    async def update(self, bookmark_id: str, changes: dict) -> Bookmark:
        changes = validate_changes(changes, BOOKMARK_UPDATE_FIELDS)
        row = await self._store.request(
            "PUT",
            _path("bookmarks", bookmark_id),
            json=changes_payload(changes),
            entity_type="Bookmark",
            entity_id=bookmark_id,
        )
        return Bookmark.from_dict(row)

    async def delete(self, bookmark_id: str) -> None:
        await self._store.request(
            "DELETE",
            _path("bookmarks", bookmark_id),
            entity_type="Bookmark",
            entity_id=bookmark_id,
        )

    async def reorder(self, items: Sequence[ReorderItem]) -> None:
        await self._store.request(
            "POST",
            "/bookmarks/reorder",
            json={"items": [item.as_dict() for item in items]},
        )

    async def track_click(self, bookmark_id: str) -> None:
        await self._store.request(
            "POST",
            _path("bookmarks", bookmark_id, "click"),
            entity_type="Bookmark",
            entity_id=bookmark_id,
        )

    async def check_duplicate(self, url: str) -> bool:
        data = await self._store.request(
            "GET", "/bookmarks/check-duplicate", params={"url": url}
        )
        return bool((data or {}).get("isDuplicate"))

    async def import_many(self, inputs: Iterable[BookmarkInput]) -> list[Bookmark]:
        payloads = []
        for data in inputs:
            data.validate()
            payloads.append(data.as_payload())
        rows = await self._store.request(
            "POST", "/bookmarks/import", json={"bookmarks": payloads}
        )
        return [Bookmark.from_dict(row) for row in rows or []]


class RemoteFolderStore(FolderStore):
    def __init__(self, store: RemoteStore):
        self._store = store

    async def list(self) -> list[Folder]:
        rows = await self._store.request("GET", "/folders")
        return [Folder.from_dict(row) for row in rows or []]

    async def create(self, data: FolderInput) -> Folder:
        data.validate()
        row = await self._store.request("POST", "/folders", json=data.as_payload())
        return Folder.from_dict(row)

    async def update(self, folder_id: str, changes: dict) -> Folder:
        changes = validate_changes(changes, FOLDER_UPDATE_FIELDS)
        row = await self._store.request(
            "PUT",
            _path("folders", folder_id),
            json=changes_payload(changes),
            entity_type="Folder",
            entity_id=folder_id,
        )
        return Folder.from_dict(row)

    async def delete(self, folder_id: str) -> None:
        await self._store.request(
            "DELETE",
            _path("folders", folder_id),
            entity_type="Folder",
            entity_id=folder_id,
        )

    async def reorder(self, items: Sequence[ReorderItem]) -> None:
        await self._store.request(
            "POST",
            "/folders/reorder",
            json={"items": [item.as_dict() for item in items]},
        )


class RemoteTagStore(TagStore):
    def __init__(self, store: RemoteStore):
        self._store = store

    async def list(self) -> list[Tag]:
        rows = await self._store.request("GET", "/tags")
        return [Tag.from_dict(row) for row in rows or []]

    async def create(self, data: TagInput) -> Tag:
        data.validate()
        try:
            row = await self._store.request("POST", "/tags", json=data.as_payload())
        except ConflictError as exc:
            raise DuplicateTagError(data.name) from exc
        return Tag.from_dict(row)

    async def update(self, tag_id: str, changes: dict) -> Tag:
        changes = validate_changes(changes, TAG_UPDATE_FIELDS, MAX_TAG_NAME_LENGTH)
        try:
            row = await self._store.request(
                "PUT",
                _path("tags", tag_id),
                json=changes_payload(changes),
                entity_type="Tag",
                entity_id=tag_id,
            )
        except ConflictError as exc:
            raise DuplicateTagError(changes.get("name", "")) from exc
        return Tag.from_dict(row)

    async def delete(self, tag_id: str) -> None:
        await self._store.request(
            "DELETE", _path("tags", tag_id), entity_type="Tag", entity_id=tag_id
        )
