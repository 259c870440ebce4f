from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import cast

from bs4 import BeautifulSoup, Tag

from linkshelf.errors import ValidationError
from linkshelf.models import BookmarkInput
from linkshelf.services.common import is_valid_url, unique_names


@dataclass
class ImportedBookmark:
    title: str
    url: str
    folder_path: list[str] = field(default_factory=list)
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False
    favicon: str | None = None

    @property
    def folder_name(self) -> str | None:
        return self.folder_path[-1] if self.folder_path else None

    def to_input(self, folder_id: str | None = None) -> BookmarkInput:
        return BookmarkInput(
            url=self.url,
            title=self.title or self.url,
            description=self.description,
            folder_id=folder_id,
            tags=list(self.tags),
            is_favorite=self.is_favorite,
            favicon=self.favicon,
        )


@dataclass
class ImportData:
    bookmarks: list[ImportedBookmark] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)

    def folder_names(self) -> list[str]:
        """Declared folders first, then any a bookmark names that was not declared."""
        names = [name for name in self.folders if name]
        names.extend(b.folder_name for b in self.bookmarks if b.folder_name)
        return unique_names(names)


def _iter_dt_entries(dl: Tag) -> list[Tag]:
    entries: list[Tag] = []
    for dt in dl.find_all("dt"):
        if isinstance(dt, Tag) and dt.find_parent("dl") is dl:
            entries.append(cast(Tag, dt))
    return entries


def _find_nested_dl(dt: Tag) -> Tag | None:
    nested = dt.find("dl")
    if isinstance(nested, Tag):
        return nested

    # html parsers often close <DT> before the folder's <DL>
    sibling = dt.next_sibling
    while sibling is not None:
        if isinstance(sibling, Tag):
            name = (sibling.name or "").lower()
            if name == "dl":
                return sibling
            if name == "dt":
                return None
        sibling = sibling.next_sibling
    return None


def _own_child(dt: Tag, names) -> Tag | None:
    for node in dt.find_all(names):
        if isinstance(node, Tag) and node.find_parent("dt") is dt:
            return node
    return None


def _parse_dl(
    dl: Tag, folder_path: list[str], out: list[ImportedBookmark], folders: list[str]
) -> None:
    for dt in _iter_dt_entries(dl):
        anchor = _own_child(dt, "a")
        if anchor is not None:
            href_value = anchor.get("href")
            href = href_value.strip() if isinstance(href_value, str) else ""
            if href and is_valid_url(href):
                title = anchor.get_text(strip=True)
                out.append(
                    ImportedBookmark(
                        title=title or href,
                        url=href,
                        folder_path=folder_path.copy(),
                    )
                )

        heading = _own_child(dt, ["h3", "h2", "h1"])
        nested_dl = _find_nested_dl(dt)
        if heading is None and nested_dl is not None:
            heading = dt.find(["h3", "h2", "h1"])
        if isinstance(heading, Tag) and nested_dl is not None:
            name = heading.get_text(strip=True)
            if name:
                folders.append(name)
                _parse_dl(nested_dl, folder_path + [name], out, folders)
            else:
                _parse_dl(nested_dl, folder_path, out, folders)


def parse_bookmark_html(html: str) -> ImportData:
    """Read a Netscape bookmark file as exported by Chrome, Firefox or Safari.

    Only http(s) links survive. Each bookmark lands in its innermost folder.
    """
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("dl")
    bookmarks: list[ImportedBookmark] = []
    folders: list[str] = []
    if isinstance(root, Tag):
        _parse_dl(root, [], bookmarks, folders)
    if not bookmarks:
        raise ValidationError("No bookmarks found in the HTML file")
    return ImportData(bookmarks=bookmarks, folders=unique_names(folders))


def _tag_names(raw) -> list[str]:
    names = []
    for tag in raw or []:
        if isinstance(tag, dict):
            tag = tag.get("name")
        if isinstance(tag, str) and tag.strip():
            names.append(tag.strip())
    return unique_names(names)


def _folder_name(raw) -> str | None:
    if isinstance(raw, dict):
        raw = raw.get("name")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def import_from_dict(data) -> ImportData:
    if not isinstance(data, dict):
        raise ValidationError("Import data must be a JSON object")
    rows = data.get("bookmarks")
    if not isinstance(rows, list):
        raise ValidationError("Invalid format: missing bookmarks array")

    bookmarks = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        url = (row.get("url") or "").strip()
        if not url:
            continue
        folder = _folder_name(row.get("folderName") or row.get("folder"))
        bookmarks.append(
            ImportedBookmark(
                title=(row.get("title") or "").strip() or url,
                url=url,
                folder_path=[folder] if folder else [],
                description=row.get("description") or None,
                tags=_tag_names(row.get("tags")),
                is_favorite=bool(row.get("isFavorite")),
                favicon=row.get("favicon") or None,
            )
        )

    folders = [_folder_name(f) for f in data.get("folders") or []]
    return ImportData(bookmarks=bookmarks, folders=[f for f in folders if f])


def parse_json_import(text: str) -> ImportData:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid JSON: {exc}") from exc
    return import_from_dict(data)
