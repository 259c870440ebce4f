from __future__ import annotations

from typing import Generic, Sequence, TypeVar

from rapidfuzz import fuzz

from linkshelf.models import Bookmark


DEFAULT_THRESHOLD = 0.4

BOOKMARK_FIELD_WEIGHTS = (
    ("title", 0.5),
    ("description", 0.3),
    ("url", 0.15),
    ("tags", 0.05),
)

Item = TypeVar("Item")


def _safe(value: str | None) -> str:
    return (value or "").strip().lower()


def field_similarity(query: str, text: str) -> float:
    """Similarity in 0..100 between a lowercased query and a lowercased field.

    ``partial_ratio`` finds the query anywhere inside longer text;
    ``token_set_ratio`` forgives word order. A field shorter than the query
    is compared whole so a tiny field cannot match a long query by itself.
    """
    if not text:
        return 0.0
    if len(text) >= len(query):
        partial = fuzz.partial_ratio(query, text)
    else:
        partial = fuzz.ratio(query, text)
    return max(partial, fuzz.token_set_ratio(query, text))


def _bookmark_fields(bookmark: Bookmark) -> dict[str, tuple[str, ...]]:
    return {
        "title": (_safe(bookmark.title),),
        "description": (_safe(bookmark.description),),
        "url": (_safe(bookmark.url),),
        "tags": tuple(_safe(tag.name) for tag in bookmark.tags),
    }


class BookmarkIndex:
    """Weighted fuzzy index over a fixed bookmark snapshot.

    The index never changes after construction; a new collection needs a new
    index. ``source`` is the exact sequence it was built from so owners can
    tell when it is stale.
    """

    def __init__(
        self,
        bookmarks: Sequence[Bookmark],
        threshold: float = DEFAULT_THRESHOLD,
        weights=BOOKMARK_FIELD_WEIGHTS,
    ):
        self.source = bookmarks
        self.threshold = threshold
        self.weights = tuple(weights)
        self._documents = tuple((b, _bookmark_fields(b)) for b in bookmarks)

    @property
    def min_similarity(self) -> float:
        return (1.0 - self.threshold) * 100.0

    def __len__(self) -> int:
        return len(self._documents)

    def rank(self, query: str, limit: int | None = None) -> list[dict]:
        q = _safe(query)
        if not q:
            return []

        ranked = []
        for bookmark, fields in self._documents:
            score = 0.0
            reasons: list[str] = []
            for name, weight in self.weights:
                best = max(
                    (field_similarity(q, text) for text in fields.get(name, ())),
                    default=0.0,
                )
                if best >= self.min_similarity:
                    score += best * weight
                    reasons.append(f"{name}_match")
            if reasons:
                ranked.append(
                    {"bookmark": bookmark, "score": round(score, 2), "reasons": reasons}
                )

        ranked.sort(key=lambda item: item["score"], reverse=True)
        if limit:
            return ranked[:limit]
        return ranked

    def search(self, query: str, limit: int | None = None) -> list[Bookmark]:
        return [row["bookmark"] for row in self.rank(query, limit)]


class NameIndex(Generic[Item]):
    """Fuzzy lookup over anything with a ``name`` (folders, tags)."""

    def __init__(self, items: Sequence[Item], threshold: float = DEFAULT_THRESHOLD):
        self.source = items
        self.threshold = threshold
        self._documents = tuple((item, _safe(item.name)) for item in items)

    def search(self, query: str) -> list[Item]:
        q = _safe(query)
        if not q:
            return []
        floor = (1.0 - self.threshold) * 100.0
        scored = [
            (field_similarity(q, name), item)
            for item, name in self._documents
            if name
        ]
        scored = [row for row in scored if row[0] >= floor]
        scored.sort(key=lambda row: row[0], reverse=True)
        return [item for _, item in scored]
