"""Paged listing of a user's tracked items, grouped by release season.

TrackedItemSource is a PageSource over the watch-record store, so the same
MediaPaginator that walks catalog searches can walk a user's watch list.

Season grouping:
- Winter: Dec-Feb (December counts toward the following year)
- Spring: Mar-May
- Summer: Jun-Aug
- Fall: Sep-Nov
- Upcoming: no known start date

Groups are ordered Upcoming first, then newest season first.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from mokuroku.db.models import MediaKind, WatchRecord, WatchStatus
from mokuroku.logging import get_logger
from mokuroku.schemas.watchlist import (
    TrackedItemOut,
    WatchlistPageInfo,
    WatchlistResponse,
    WatchlistSeasonOut,
)
from mokuroku.services.paginator import Page
from mokuroku.services.watchlist import classify_store_error

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrackedItem:
    """A watch record projected for listing."""

    id: int
    title: str | None
    status: WatchStatus
    suggests: bool
    start_date: date | None = None
    kind: MediaKind = MediaKind.anime

    @property
    def display_title(self) -> str:
        return self.title or f"#{self.id}"

    def __str__(self) -> str:
        marker = "🔸" if self.suggests else "▪"
        return f"{marker} {self.display_title}"


class TrackedItemSource:
    """PageSource over one user's watch records.

    Records are ordered by start date, newest first, with undated
    (upcoming) items leading; item_id breaks ties so pages are stable.
    Store failures are raised as StoreError, like the toggles.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        user_id: int,
        statuses: Iterable[WatchStatus] = (WatchStatus.consuming,),
        kind: MediaKind | None = MediaKind.anime,
        per_page: int = 16,
        suggests: bool | None = None,
    ):
        if per_page < 1:
            raise ValueError(f"per_page must be >= 1, got {per_page}")
        self._session_factory = session_factory
        self.user_id = user_id
        self.statuses = tuple(statuses)
        self.kind = kind
        self.per_page = per_page
        self.suggests = suggests

    async def fetch_page(self, page_number: int) -> Page:
        return await run_in_threadpool(self.fetch_page_sync, page_number)

    def fetch_page_sync(self, page_number: int) -> Page:
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")

        filters = [WatchRecord.user_id == self.user_id]
        if self.statuses:
            filters.append(WatchRecord.status.in_([s.value for s in self.statuses]))
        if self.kind is not None:
            filters.append(WatchRecord.item_kind == self.kind.value)
        if self.suggests is not None:
            filters.append(WatchRecord.suggests.is_(self.suggests))

        try:
            with self._session_factory() as db:
                total = db.scalar(select(func.count()).select_from(WatchRecord).where(*filters))
                records = db.scalars(
                    select(WatchRecord)
                    .where(*filters)
                    .order_by(
                        WatchRecord.start_date.desc().nulls_first(),
                        WatchRecord.item_id,
                    )
                    .limit(self.per_page)
                    .offset((page_number - 1) * self.per_page)
                ).all()
        except DBAPIError as e:
            raise classify_store_error(e) from e

        items = tuple(
            TrackedItem(
                id=record.item_id,
                title=record.title,
                status=WatchStatus(record.status),
                suggests=record.suggests,
                start_date=record.start_date,
                kind=MediaKind(record.item_kind),
            )
            for record in records
        )
        last_page = max(math.ceil((total or 0) / self.per_page), 1)

        logger.debug(
            "tracked.page.fetched",
            user_id=self.user_id,
            page_number=page_number,
            items=len(items),
            total=total,
        )
        return Page(
            items=items,
            page_number=page_number,
            has_next_page=page_number < last_page,
            current_page=page_number,
            last_page=last_page,
            total=total,
        )


# =============================================================================
# Season grouping
# =============================================================================


class SeasonName(str, Enum):
    """Release seasons in chronological order within a year."""

    winter = "Winter"
    spring = "Spring"
    summer = "Summer"
    fall = "Fall"


_SEASON_ORDER = list(SeasonName)

_SEASON_EMOJI = {
    SeasonName.winter: "❄",
    SeasonName.spring: "🌸",
    SeasonName.summer: "🌞",
    SeasonName.fall: "🍂",
}


@dataclass(frozen=True)
class Season:
    """A release season, or the Upcoming bucket when name is None."""

    name: SeasonName | None = None
    year: int | None = None

    @classmethod
    def of(cls, start_date: date | None) -> "Season":
        if start_date is None:
            return cls()
        if start_date.month == 12:
            return cls(SeasonName.winter, start_date.year + 1)
        # Dec-Feb -> 0, Mar-May -> 1, Jun-Aug -> 2, Sep-Nov -> 3
        return cls(_SEASON_ORDER[start_date.month // 3], start_date.year)

    @property
    def is_upcoming(self) -> bool:
        return self.name is None

    @property
    def label(self) -> str:
        if self.name is None:
            return "Upcoming"
        return f"{self.name.value} {self.year}"

    def sort_key(self) -> tuple[int, int, int]:
        """Ascending sort key: Upcoming first, then newest season first."""
        if self.name is None:
            return (0, 0, 0)
        return (1, -(self.year or 0), -_SEASON_ORDER.index(self.name))

    def __str__(self) -> str:
        if self.name is None:
            return "📅 Upcoming..."
        return f"{_SEASON_EMOJI[self.name]} {self.label}"


@dataclass(frozen=True)
class SeasonGroup:
    season: Season
    items: tuple[TrackedItem, ...]


def group_by_season(items: Sequence[TrackedItem]) -> list[SeasonGroup]:
    """Group tracked items by release season, keeping item order within a group."""
    buckets: dict[Season, list[TrackedItem]] = {}
    for item in items:
        buckets.setdefault(Season.of(item.start_date), []).append(item)

    return [
        SeasonGroup(season=season, items=tuple(bucket))
        for season, bucket in sorted(buckets.items(), key=lambda entry: entry[0].sort_key())
    ]


# =============================================================================
# Listing
# =============================================================================


async def list_watchlist(
    source: TrackedItemSource,
    page_number: int = 1,
) -> WatchlistResponse:
    """One page of a user's watch list, grouped by release season."""
    page = await source.fetch_page(page_number)
    groups = group_by_season(page.items)
    return WatchlistResponse(
        data=[
            WatchlistSeasonOut(
                label=str(group.season),
                items=[
                    TrackedItemOut(
                        item_id=item.id,
                        title=item.display_title,
                        status=item.status,
                        suggests=item.suggests,
                        start_date=item.start_date,
                    )
                    for item in group.items
                ],
            )
            for group in groups
        ],
        page=WatchlistPageInfo(
            current_page=page.current_page,
            last_page=page.last_page,
            has_next_page=page.has_next_page,
            total=page.total,
        ),
    )
