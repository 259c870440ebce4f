from __future__ import annotations

import logging
from typing import Awaitable, Callable

from linkshelf.errors import NotFoundError, PartialCascadeError, ValidationError
from linkshelf.models import Bookmark
from linkshelf.services.common import find_by_id, unique_names
from linkshelf.services.coordinator import SyncCoordinator
from linkshelf.services.filters import FILTER_FOLDER, FILTER_TAG, ViewFilters


logger = logging.getLogger(__name__)


async def _reassign(
    entity_type: str,
    entity_id: str,
    bookmarks: list[Bookmark],
    update: Callable[[Bookmark], Awaitable[object]],
) -> None:
    done: list[str] = []
    for index, bookmark in enumerate(bookmarks):
        try:
            await update(bookmark)
        except Exception as exc:
            remaining = [b.id for b in bookmarks[index + 1 :]]
            logger.warning(
                "Reassigning bookmarks off %s %s stopped at %s: %s",
                entity_type,
                entity_id,
                bookmark.id,
                exc,
            )
            raise PartialCascadeError(
                entity_type, entity_id, done, bookmark.id, remaining
            ) from exc
        done.append(bookmark.id)


async def delete_folder(
    coordinator: SyncCoordinator,
    folder_id: str,
    move_bookmarks: bool = False,
    target_folder_id: str | None = None,
    view: ViewFilters | None = None,
) -> None:
    """Delete a folder, optionally moving its bookmarks somewhere else first.

    Bookmarks are moved one at a time; the folder is only deleted once every
    move succeeded. Without ``move_bookmarks`` they become uncategorized.
    """
    if move_bookmarks:
        if target_folder_id == folder_id:
            raise ValidationError("Bookmarks cannot be moved into the folder being deleted")
        affected = [b for b in coordinator.bookmarks if b.folder_id == folder_id]
        await _reassign(
            "folder",
            folder_id,
            affected,
            lambda b: coordinator.update_bookmark(b.id, {"folder_id": target_folder_id}),
        )

    await coordinator.delete_folder(folder_id)
    if view is not None and view.filter_type == FILTER_FOLDER and view.selected_folder_id == folder_id:
        view.show_all()


async def delete_tag(
    coordinator: SyncCoordinator,
    tag_id: str,
    replacement_tag_id: str | None = None,
    view: ViewFilters | None = None,
) -> None:
    if replacement_tag_id:
        if replacement_tag_id == tag_id:
            raise ValidationError("A tag cannot replace itself")
        replacement = find_by_id(coordinator.tags, replacement_tag_id)
        if replacement is None:
            raise NotFoundError("Tag", replacement_tag_id)

        def retagged(bookmark: Bookmark) -> list[str]:
            names = [t.name for t in bookmark.tags if t.id != tag_id]
            if not bookmark.has_tag(replacement.id):
                names.append(replacement.name)
            return unique_names(names)

        affected = [b for b in coordinator.bookmarks if b.has_tag(tag_id)]
        await _reassign(
            "tag",
            tag_id,
            affected,
            lambda b: coordinator.update_bookmark(b.id, {"tags": retagged(b)}),
        )

    await coordinator.delete_tag(tag_id)
    if view is not None and view.filter_type == FILTER_TAG and view.selected_tag_id == tag_id:
        view.show_all()
