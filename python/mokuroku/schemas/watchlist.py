"""Watch-list Pydantic schemas.

Contains the record returned by the watch-list toggles and the response
models of the watch-list listing endpoint.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from mokuroku.db.models import MediaKind, WatchStatus

# =============================================================================
# Response Schemas
# =============================================================================


class WatchRecordOut(BaseModel):
    """A watch record exactly as the store holds it after a toggle."""

    user_id: int
    item_id: int
    item_kind: MediaKind
    title: str | None = None
    start_date: date | None = None
    status: WatchStatus
    last_status: WatchStatus
    suggests: bool
    rating: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TrackedItemOut(BaseModel):
    """One tracked item in a watch-list listing."""

    item_id: int
    title: str
    status: WatchStatus
    suggests: bool
    start_date: date | None = None


class WatchlistSeasonOut(BaseModel):
    """Tracked items sharing a release season, e.g. "Spring 2024" or "Upcoming"."""

    label: str
    items: list[TrackedItemOut]


class WatchlistPageInfo(BaseModel):
    """Pagination information for the watch-list listing."""

    current_page: int
    last_page: int
    has_next_page: bool
    total: int | None = None


class WatchlistResponse(BaseModel):
    """Response for one page of a user's watch list."""

    data: list[WatchlistSeasonOut]
    page: WatchlistPageInfo
