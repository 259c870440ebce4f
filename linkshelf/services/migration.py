from __future__ import annotations

import logging
from dataclasses import dataclass

from linkshelf.auth import AuthSession
from linkshelf.models import Bookmark, Folder
from linkshelf.services.bookmark_import import ImportData, ImportedBookmark
from linkshelf.services.coordinator import SyncCoordinator
from linkshelf.services.stores import StoreResolver


logger = logging.getLogger(__name__)


@dataclass
class MigrationOffer:
    bookmarks: list[Bookmark]
    folders: list[Folder]

    @property
    def bookmark_count(self) -> int:
        return len(self.bookmarks)

    @property
    def folder_count(self) -> int:
        return len(self.folders)


@dataclass
class MigrationResult:
    offered: int
    imported: int

    @property
    def skipped(self) -> int:
        return self.offered - self.imported


def offer_as_import(offer: MigrationOffer) -> ImportData:
    names = {f.id: f.name for f in offer.folders}
    bookmarks = []
    for b in offer.bookmarks:
        folder_name = names.get(b.folder_id) or b.folder_name
        bookmarks.append(
            ImportedBookmark(
                title=b.title,
                url=b.url,
                folder_path=[folder_name] if folder_name else [],
                description=b.description,
                tags=b.tag_names,
                is_favorite=b.is_favorite,
                favicon=b.favicon,
            )
        )
    return ImportData(bookmarks=bookmarks, folders=[f.name for f in offer.folders])


class MigrationReconciler:
    """Offers, once per session, to move locally kept data to the account.

    ``check`` only ever inspects local data the first time it is called.
    A failed ``migrate`` keeps both the local data and the pending offer so
    the caller can retry or skip.
    """

    def __init__(self, resolver: StoreResolver, coordinator: SyncCoordinator):
        self.resolver = resolver
        self.coordinator = coordinator
        self.checked = False
        self.pending: MigrationOffer | None = None

    def check(self, session: AuthSession) -> MigrationOffer | None:
        if self.checked or not session.is_signed_in:
            return None
        self.checked = True

        snapshot = self.resolver.local.load()
        if not (snapshot.bookmarks or snapshot.folders):
            return None
        self.pending = MigrationOffer(
            bookmarks=list(snapshot.bookmarks), folders=list(snapshot.folders)
        )
        logger.info(
            "Local data available for migration: %s bookmark(s), %s folder(s)",
            self.pending.bookmark_count,
            self.pending.folder_count,
        )
        return self.pending

    async def migrate(self) -> MigrationResult:
        offer = self.pending
        if offer is None:
            return MigrationResult(offered=0, imported=0)

        imported = await self.coordinator.import_data(offer_as_import(offer))
        self.resolver.local.clear()
        self.pending = None
        await self.coordinator.load()

        result = MigrationResult(offered=offer.bookmark_count, imported=len(imported))
        logger.info(
            "Migrated %s of %s local bookmark(s); %s already existed",
            result.imported,
            result.offered,
            result.skipped,
        )
        return result

    def skip(self) -> None:
        self.resolver.local.clear()
        self.pending = None
