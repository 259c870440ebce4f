from __future__ import annotations

import logging

from linkshelf.auth import AuthSession, TokenProvider
from linkshelf.models import Bookmark, BookmarkInput, Folder, Tag
from linkshelf.services import cascade
from linkshelf.services.bookmark_export import export_html, export_json
from linkshelf.services.bookmark_import import (
    ImportData,
    parse_bookmark_html,
    parse_json_import,
)
from linkshelf.services.common import ensure_scheme, favicon_url, find_by_name
from linkshelf.services.coordinator import SyncCoordinator
from linkshelf.services.filters import (
    ViewFilters,
    page_subtitle,
    page_title,
    sort_bookmarks,
)
from linkshelf.services.migration import (
    MigrationOffer,
    MigrationReconciler,
    MigrationResult,
)
from linkshelf.services.search import NameIndex
from linkshelf.services.stores import StoreResolver


logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "html")


class Workspace:
    """Everything a front end needs, wired together.

    Holds the coordinator, the current view and the migration offer, and
    adds the small bits of front-end policy that sit on top of them.
    """

    def __init__(
        self,
        session: AuthSession,
        resolver: StoreResolver,
        coordinator: SyncCoordinator,
        search_limit: int = 0,
    ):
        self.session = session
        self.resolver = resolver
        self.coordinator = coordinator
        self.migration = MigrationReconciler(resolver, coordinator)
        self.view = ViewFilters()
        self.search_limit = search_limit
        self.show_sync_prompt = False

    @property
    def bookmarks(self):
        return self.coordinator.bookmarks

    @property
    def folders(self):
        return self.coordinator.folders

    @property
    def tags(self):
        return self.coordinator.tags

    @property
    def migration_offer(self) -> MigrationOffer | None:
        return self.migration.pending

    def filtered_bookmarks(self, sort: str | None = None) -> list[Bookmark]:
        bookmarks = self.coordinator.filtered_bookmarks(self.view)
        if sort:
            return sort_bookmarks(bookmarks, sort)
        return bookmarks

    def find_folder(self, name: str) -> Folder | None:
        """Exact (case-insensitive) name first, then the closest fuzzy match."""
        folder = find_by_name(self.folders, name)
        if folder is None:
            matches = NameIndex(self.folders).search(name)
            folder = matches[0] if matches else None
        return folder

    def find_tag(self, name: str) -> Tag | None:
        tag = find_by_name(self.tags, name)
        if tag is None:
            matches = NameIndex(self.tags).search(name)
            tag = matches[0] if matches else None
        return tag

    def search(self, query: str) -> list[dict]:
        return self.coordinator.search_index.rank(query, self.search_limit or None)

    def page_title(self) -> str:
        return page_title(self.view, self.folders, self.tags)

    def page_subtitle(self) -> str:
        count = len(self.filtered_bookmarks())
        return page_subtitle(self.view, count, self.folders, self.tags)

    async def start(self) -> MigrationOffer | None:
        await self.coordinator.load()
        return self.migration.check(self.session)

    async def sign_in(self, token_provider: TokenProvider) -> MigrationOffer | None:
        self.session.sign_in(token_provider)
        self.show_sync_prompt = False
        offer = self.migration.check(self.session)
        await self.coordinator.load()
        return offer

    async def sign_out(self) -> None:
        self.session.sign_out()
        self.view.show_all()
        await self.coordinator.load()

    async def add_bookmark(self, data: BookmarkInput) -> Bookmark:
        data.url = ensure_scheme(data.url)
        if data.favicon is None:
            data.favicon = favicon_url(data.url)
        bookmark = await self.coordinator.create_bookmark(data)
        # first local bookmark: nudge towards creating an account
        if not self.session.is_signed_in and len(self.bookmarks) == 1:
            self.show_sync_prompt = True
        return bookmark

    def dismiss_sync_prompt(self) -> None:
        self.show_sync_prompt = False

    async def delete_folder(
        self,
        folder_id: str,
        move_bookmarks: bool = False,
        target_folder_id: str | None = None,
    ) -> None:
        await cascade.delete_folder(
            self.coordinator,
            folder_id,
            move_bookmarks=move_bookmarks,
            target_folder_id=target_folder_id,
            view=self.view,
        )

    async def delete_tag(self, tag_id: str, replacement_tag_id: str | None = None) -> None:
        await cascade.delete_tag(
            self.coordinator, tag_id, replacement_tag_id=replacement_tag_id, view=self.view
        )

    async def accept_migration(self) -> MigrationResult:
        return await self.migration.migrate()

    def skip_migration(self) -> None:
        self.migration.skip()

    async def import_text(self, text: str, fmt: str = "json") -> list[Bookmark]:
        if fmt == "html":
            data: ImportData = parse_bookmark_html(text)
        else:
            data = parse_json_import(text)
        return await self.coordinator.import_data(data)

    async def export_text(self, fmt: str = "json") -> str:
        data = await self.coordinator.export_data()
        if fmt == "html":
            return export_html(data)
        return export_json(data)
