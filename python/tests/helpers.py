"""Test helpers shared across the suite.

Provides:
- Test user id generation
- In-memory page sources and a recording render sink
- AniList response payload builders
"""

import asyncio
import random
from dataclasses import dataclass, field

from mokuroku.services.paginator import Page


def create_test_user_id() -> int:
    """Random chat user id, large enough not to collide between tests."""
    return random.randint(10**15, 10**17)


@dataclass(frozen=True)
class FakeItem:
    id: int
    display_title: str


class FakePageSource:
    """PageSource over an in-memory list, split into fixed-size pages.

    Records every fetched page number; fail_pages makes fetches of those
    page numbers raise the given error instead.
    """

    def __init__(self, items, page_size: int = 5, fail_with: Exception | None = None):
        self.items = list(items)
        self.page_size = page_size
        self.fetches: list[int] = []
        self.fail_pages: set[int] = set()
        self.fail_with = fail_with

    @property
    def last_page(self) -> int:
        return max((len(self.items) + self.page_size - 1) // self.page_size, 1)

    async def fetch_page(self, page_number: int) -> Page:
        self.fetches.append(page_number)
        if page_number in self.fail_pages:
            raise self.fail_with or RuntimeError(f"page {page_number} unavailable")
        start = (page_number - 1) * self.page_size
        chunk = tuple(self.items[start : start + self.page_size])
        return Page(
            items=chunk,
            page_number=page_number,
            has_next_page=page_number < self.last_page,
            current_page=page_number,
            last_page=self.last_page,
            total=len(self.items),
        )


def make_items(count: int, prefix: str = "Item") -> list[FakeItem]:
    return [FakeItem(id=1000 + i, display_title=f"{prefix} {i}") for i in range(count)]


@dataclass
class RecordingSink:
    """RenderSink that keeps every emitted command, in order."""

    commands: list = field(default_factory=list)
    emitted: asyncio.Event = field(default_factory=asyncio.Event)

    async def emit(self, command) -> None:
        self.commands.append(command)
        self.emitted.set()

    def of_type(self, command_type) -> list:
        return [c for c in self.commands if isinstance(c, command_type)]

    async def wait_for(self, count: int, timeout: float = 2.0) -> None:
        """Wait until at least count commands have been emitted."""

        async def _wait():
            while len(self.commands) < count:
                self.emitted.clear()
                await self.emitted.wait()

        await asyncio.wait_for(_wait(), timeout=timeout)


# =============================================================================
# AniList payloads
# =============================================================================


def make_media(media_id: int, title: str, /, **overrides) -> dict:
    media = {
        "id": media_id,
        "siteUrl": f"https://anilist.co/anime/{media_id}",
        "title": {"romaji": title, "english": None, "native": None, "userPreferred": title},
        "format": "TV",
        "status": "FINISHED",
        "genres": ["Action"],
        "startDate": {"year": 2002, "month": 10, "day": 3},
        "endDate": {"year": None, "month": None, "day": None},
        "coverImage": {"medium": None, "large": None},
        "duration": 23,
        "episodes": 220,
        "chapters": None,
        "averageScore": 79,
        "description": "<p>A ninja story.</p>",
    }
    media.update(overrides)
    return media


def make_page_payload(
    media: list[dict],
    current_page: int = 1,
    last_page: int = 1,
    has_next_page: bool = False,
    total: int | None = None,
) -> dict:
    return {
        "data": {
            "Page": {
                "pageInfo": {
                    "total": total if total is not None else len(media),
                    "currentPage": current_page,
                    "lastPage": last_page,
                    "hasNextPage": has_next_page,
                    "perPage": 5,
                },
                "media": media,
            }
        }
    }
