"""Lazy bidirectional cursor over a remotely paged result set.

The paginator holds exactly one page plus an index into it. Moving past
either end of the held page fetches the neighbouring page on demand; the
total size of the result set is never needed up front.

Rules:
- State only changes after a fetch succeeds; a failed fetch leaves the
  cursor exactly where it was and re-raises the error
- Crossing backward re-fetches the previous page (one page is cached)
- An empty page is a valid state: current_item() is None and both
  directions are decided by the page info alone
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from mokuroku.logging import get_logger

logger = get_logger(__name__)


class Item(Protocol):
    """Anything the paginator can point at."""

    @property
    def id(self) -> int: ...

    @property
    def display_title(self) -> str: ...


@dataclass(frozen=True)
class Page:
    """One page of results as reported by the source.

    Attributes:
        items: The items on this page, in source order (possibly empty)
        page_number: The page number that was requested (1-based)
        has_next_page: Whether the source reports a page after this one
        current_page: The page number the source reports for this page
        last_page: The last page number the source reports
        total: Total result count, when the source knows it
    """

    items: Sequence[Item]
    page_number: int
    has_next_page: bool
    current_page: int
    last_page: int
    total: int | None = None


@dataclass(frozen=True)
class NavAffordances:
    """Which navigation controls a view of the cursor should offer."""

    has_prev: bool
    has_next: bool


class PageSource(Protocol):
    """The narrow capability the paginator needs from a query source."""

    async def fetch_page(self, page_number: int) -> Page: ...


class MediaPaginator:
    """Stateful cursor over the pages produced by a PageSource.

    Create instances with ``await MediaPaginator.create(source)``, which
    fetches the first page. Navigation methods are not safe to call
    concurrently on the same instance; the owning session serializes them.
    """

    def __init__(self, source: PageSource, page: Page, index: int = 0):
        self._source = source
        self._page = page
        self._index = index

    @classmethod
    async def create(cls, source: PageSource) -> "MediaPaginator":
        """Fetch page 1 and position the cursor on its first item.

        Raises:
            Whatever the source raises; no paginator is created.
        """
        page = await source.fetch_page(1)
        return cls(source, page, 0)

    @property
    def page(self) -> Page:
        return self._page

    @property
    def index(self) -> int:
        return self._index

    def current_item(self) -> Item | None:
        """The item under the cursor, or None when the held page is empty."""
        if not self._page.items:
            return None
        return self._page.items[self._index]

    def has_next(self) -> bool:
        return self._index + 1 < len(self._page.items) or self._page.has_next_page

    def has_prev(self) -> bool:
        return self._index > 0 or self._page.current_page != 1

    def nav_affordances(self) -> NavAffordances:
        return NavAffordances(has_prev=self.has_prev(), has_next=self.has_next())

    async def next_item(self) -> Item | None:
        """Advance one item, fetching the next page when the held one is used up.

        Returns:
            The new current item; None when there is nothing after the cursor
            (state unchanged) or when the fetched next page is empty.
        """
        if not self.has_next():
            return None

        if self._index + 1 < len(self._page.items):
            self._index += 1
            return self.current_item()

        page_number = self._page.page_number + 1
        page = await self._source.fetch_page(page_number)
        self._page = page
        self._index = 0
        logger.debug("paginator.page.advanced", page_number=page_number, items=len(page.items))
        return self.current_item()

    async def prev_item(self) -> Item | None:
        """Step back one item, re-fetching the previous page at a page boundary.

        Returns:
            The new current item; None when there is nothing before the cursor
            (state unchanged) or when the fetched previous page is empty.
        """
        if not self.has_prev():
            return None

        if self._index > 0:
            self._index -= 1
            return self.current_item()

        page_number = self._page.page_number - 1
        if page_number < 1:
            # Source reported a current_page other than 1 for our first page
            return None

        page = await self._source.fetch_page(page_number)
        self._page = page
        self._index = max(len(page.items) - 1, 0)
        logger.debug("paginator.page.rewound", page_number=page_number, items=len(page.items))
        return self.current_item()
