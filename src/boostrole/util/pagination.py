"""Page slicing for leaderboard and role-list embeds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """
    One page of a longer sequence.

    ``number`` is 1-based and always within ``1..total_pages``; an empty
    sequence still has one (empty) page.
    """

    items: List[T]
    number: int
    total_pages: int
    total_items: int
    page_size: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages

    @property
    def offset(self) -> int:
        """Index of the first item of this page in the full sequence."""
        return (self.number - 1) * self.page_size


def paginate(items: Sequence[T], page: int, page_size: int = 10) -> Page[T]:
    """
    Slice ``items`` into the requested page, clamping out-of-range page numbers.

    Raises:
        ValueError: If ``page_size`` is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    total_items = len(items)
    total_pages = max(1, -(-total_items // page_size))
    number = min(max(1, page), total_pages)
    start = (number - 1) * page_size

    return Page(
        items=list(items[start:start + page_size]),
        number=number,
        total_pages=total_pages,
        total_items=total_items,
        page_size=page_size,
    )
