from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from linkshelf.errors import ValidationError
from linkshelf.models import Bookmark, Folder, Tag
from linkshelf.services.common import find_by_id
from linkshelf.services.search import BookmarkIndex


FILTER_ALL = "all"
FILTER_FAVORITES = "favorites"
FILTER_FOLDER = "folder"
FILTER_TAG = "tag"
FILTER_SEARCH = "search"

FILTER_TYPES = {
    FILTER_ALL,
    FILTER_FAVORITES,
    FILTER_FOLDER,
    FILTER_TAG,
    FILTER_SEARCH,
}


@dataclass
class ViewFilters:
    """Which slice of the bookmarks the consuming layer is looking at."""

    filter_type: str = FILTER_ALL
    selected_folder_id: str | None = None
    selected_tag_id: str | None = None
    search_query: str = ""

    def select_folder(self, folder_id: str | None) -> None:
        self.filter_type = FILTER_FOLDER
        self.selected_folder_id = folder_id
        self.selected_tag_id = None
        self.search_query = ""

    def select_tag(self, tag_id: str | None) -> None:
        if not tag_id:
            return
        self.filter_type = FILTER_TAG
        self.selected_tag_id = tag_id
        self.selected_folder_id = None
        self.search_query = ""

    def show_favorites(self) -> None:
        self.show_all()
        self.filter_type = FILTER_FAVORITES

    def show_all(self) -> None:
        self.filter_type = FILTER_ALL
        self.selected_folder_id = None
        self.selected_tag_id = None
        self.search_query = ""

    def search(self, query: str) -> None:
        self.search_query = query
        self.filter_type = FILTER_SEARCH if query.strip() else FILTER_ALL

    def clear(self) -> None:
        self.show_all()


def filter_by_favorites(bookmarks: Sequence[Bookmark]) -> list[Bookmark]:
    return [b for b in bookmarks if b.is_favorite]


def filter_by_folder(bookmarks: Sequence[Bookmark], folder_id: str | None) -> list[Bookmark]:
    if folder_id:
        return [b for b in bookmarks if b.folder_id == folder_id]
    return [b for b in bookmarks if not b.folder_id]


def filter_by_tag(bookmarks: Sequence[Bookmark], tag_id: str) -> list[Bookmark]:
    return [b for b in bookmarks if b.has_tag(tag_id)]


def sort_by_order(bookmarks: Sequence[Bookmark]) -> list[Bookmark]:
    return sorted(bookmarks, key=lambda b: b.sort_order)


def sort_by_click_count(bookmarks: Sequence[Bookmark]) -> list[Bookmark]:
    return sorted(bookmarks, key=lambda b: b.click_count, reverse=True)


def sort_by_newest(bookmarks: Sequence[Bookmark]) -> list[Bookmark]:
    return sorted(bookmarks, key=lambda b: b.created_at, reverse=True)


SORTERS = {
    "order": sort_by_order,
    "clicks": sort_by_click_count,
    "newest": sort_by_newest,
}


def sort_bookmarks(bookmarks: Sequence[Bookmark], sort: str) -> list[Bookmark]:
    try:
        sorter = SORTERS[sort]
    except KeyError:
        raise ValidationError(f"unknown sort: {sort!r}") from None
    return sorter(bookmarks)


def get_filtered_bookmarks(
    bookmarks: Sequence[Bookmark],
    filter_type: str = FILTER_ALL,
    selected_folder_id: str | None = None,
    selected_tag_id: str | None = None,
    search_query: str = "",
    index: BookmarkIndex | None = None,
) -> list[Bookmark]:
    """Narrow and order ``bookmarks`` for one view; the input is left as is.

    Search results keep the index's relevance order. Every other view is
    ordered by ``sort_order``.
    """
    if filter_type not in FILTER_TYPES:
        raise ValidationError(f"unknown filter type: {filter_type!r}")

    if filter_type == FILTER_SEARCH:
        if not (search_query or "").strip():
            return []
        if index is None or index.source is not bookmarks:
            index = BookmarkIndex(bookmarks)
        return index.search(search_query)

    if filter_type == FILTER_FAVORITES:
        filtered = filter_by_favorites(bookmarks)
    elif filter_type == FILTER_FOLDER:
        filtered = filter_by_folder(bookmarks, selected_folder_id)
    elif filter_type == FILTER_TAG and selected_tag_id:
        filtered = filter_by_tag(bookmarks, selected_tag_id)
    else:
        filtered = list(bookmarks)
    return sort_by_order(filtered)


def filter_view(
    bookmarks: Sequence[Bookmark],
    view: ViewFilters,
    index: BookmarkIndex | None = None,
) -> list[Bookmark]:
    return get_filtered_bookmarks(
        bookmarks,
        view.filter_type,
        selected_folder_id=view.selected_folder_id,
        selected_tag_id=view.selected_tag_id,
        search_query=view.search_query,
        index=index,
    )


def bookmark_count(bookmarks: Sequence[Bookmark], view: ViewFilters) -> int:
    return len(filter_view(bookmarks, view))


def page_title(view: ViewFilters, folders: Sequence[Folder], tags: Sequence[Tag]) -> str:
    if view.filter_type == FILTER_FAVORITES:
        return "Favorites"
    if view.filter_type == FILTER_FOLDER:
        if view.selected_folder_id:
            folder = find_by_id(folders, view.selected_folder_id)
            return folder.name if folder else "Folder"
        return "Uncategorized"
    if view.filter_type == FILTER_TAG and view.selected_tag_id:
        tag = find_by_id(tags, view.selected_tag_id)
        return f"Tag: {tag.name}" if tag else "All Bookmarks"
    if view.filter_type == FILTER_SEARCH:
        return "Search Results"
    return "All Bookmarks"


def page_subtitle(
    view: ViewFilters, count: int, folders: Sequence[Folder], tags: Sequence[Tag]
) -> str:
    count_text = f"{count} bookmark{'' if count == 1 else 's'}"
    if view.filter_type == FILTER_FAVORITES:
        return f"{count_text} marked as favorite"
    if view.filter_type == FILTER_FOLDER:
        if view.selected_folder_id:
            folder = find_by_id(folders, view.selected_folder_id)
            return f"{count_text} in {folder.name}" if folder else count_text
        return f"{count_text} without a folder"
    if view.filter_type == FILTER_TAG and view.selected_tag_id:
        tag = find_by_id(tags, view.selected_tag_id)
        return f"{count_text} tagged with {tag.name}" if tag else count_text
    if view.filter_type == FILTER_SEARCH:
        return f"{count_text} found"
    return count_text
