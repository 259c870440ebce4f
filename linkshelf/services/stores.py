from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from linkshelf.auth import AuthSession
from linkshelf.models import (
    Bookmark,
    BookmarkInput,
    Folder,
    FolderInput,
    ReorderItem,
    Tag,
    TagInput,
)


class BookmarkStore(ABC):
    @abstractmethod
    async def list(self) -> list[Bookmark]: ...

    @abstractmethod
    async def create(self, data: BookmarkInput) -> Bookmark: ...

    @abstractmethod
    async def update(self, bookmark_id: str, changes: dict) -> Bookmark: ...

    @abstractmethod
    async def delete(self, bookmark_id: str) -> None: ...

    @abstractmethod
    async def reorder(self, items: Sequence[ReorderItem]) -> None: ...

    @abstractmethod
    async def track_click(self, bookmark_id: str) -> None: ...

    @abstractmethod
    async def check_duplicate(self, url: str) -> bool: ...

    @abstractmethod
    async def import_many(self, inputs: Iterable[BookmarkInput]) -> list[Bookmark]:
        """Create every input whose URL is not stored yet; return the new ones."""


class FolderStore(ABC):
    @abstractmethod
    async def list(self) -> list[Folder]: ...

    @abstractmethod
    async def create(self, data: FolderInput) -> Folder: ...

    @abstractmethod
    async def update(self, folder_id: str, changes: dict) -> Folder: ...

    @abstractmethod
    async def delete(self, folder_id: str) -> None: ...

    @abstractmethod
    async def reorder(self, items: Sequence[ReorderItem]) -> None: ...


class TagStore(ABC):
    @abstractmethod
    async def list(self) -> list[Tag]: ...

    @abstractmethod
    async def create(self, data: TagInput) -> Tag: ...

    @abstractmethod
    async def update(self, tag_id: str, changes: dict) -> Tag: ...

    @abstractmethod
    async def delete(self, tag_id: str) -> None: ...


class EntityStore(ABC):
    bookmarks: BookmarkStore
    folders: FolderStore
    tags: TagStore

    @abstractmethod
    async def export(self) -> dict:
        """Return ``{bookmarks, folders, tags, exportedAt}`` as plain data."""


class StoreResolver:
    """Pick the store for the current call from the authentication state.

    The choice is made on every call, never cached, so signing in switches
    subsequent operations to the remote store while anything written locally
    stays behind until migrated.
    """

    def __init__(self, session: AuthSession, local: EntityStore, remote: EntityStore):
        self.session = session
        self.local = local
        self.remote = remote

    def __call__(self) -> EntityStore:
        if self.session.is_signed_in:
            return self.remote
        return self.local
