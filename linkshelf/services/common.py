from __future__ import annotations

import re
from typing import Iterable, TypeVar
from urllib.parse import urlparse


_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

Named = TypeVar("Named")


def ensure_scheme(url: str) -> str:
    trimmed = (url or "").strip()
    if not trimmed:
        return trimmed
    if not _SCHEME_RE.match(trimmed):
        return f"https://{trimmed}"
    return trimmed


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def extract_domain(url: str) -> str | None:
    try:
        hostname = urlparse((url or "").strip()).hostname
    except ValueError:
        return None
    return hostname or None


def favicon_url(url: str, size: int = 32) -> str | None:
    domain = extract_domain(url)
    if not domain:
        return None
    return f"https://www.google.com/s2/favicons?domain={domain}&sz={size}"


def parse_tags(raw: str) -> list[str]:
    if not raw:
        return []
    tokens = [t.strip() for t in raw.replace(";", ",").split(",")]
    return unique_names(t for t in tokens if t)


def unique_names(names: Iterable[str]) -> list[str]:
    """Drop case-insensitive repeats, keeping the first spelling seen."""
    seen: set[str] = set()
    result = []
    for name in names:
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(name)
    return result


def find_by_id(items: Iterable[Named], item_id: str | None) -> Named | None:
    if not item_id:
        return None
    for item in items:
        if item.id == item_id:
            return item
    return None


def find_by_name(items: Iterable[Named], name: str) -> Named | None:
    lowered = (name or "").lower()
    for item in items:
        if item.name.lower() == lowered:
            return item
    return None


def name_exists(items: Iterable[Named], name: str, exclude_id: str | None = None) -> bool:
    lowered = (name or "").lower()
    return any(
        item.name.lower() == lowered and item.id != exclude_id for item in items
    )


def root_folders(folders):
    return [f for f in folders if not f.parent_folder_id]


def sub_folders(folders, parent_id: str):
    return [f for f in folders if f.parent_folder_id == parent_id]


def descendant_ids(folders, folder_id: str) -> set[str]:
    """Return ``folder_id`` plus the ids of every folder nested below it."""
    found = {folder_id}
    frontier = [folder_id]
    while frontier:
        parent = frontier.pop()
        for folder in folders:
            if folder.parent_folder_id == parent and folder.id not in found:
                found.add(folder.id)
                frontier.append(folder.id)
    return found
