"""Pydantic schemas for catalog payloads and request/response models.

All schemas are re-exported here for convenient imports.
"""

from mokuroku.schemas.catalog import CoverImage, FuzzyDate, MediaItem, MediaTitle
from mokuroku.schemas.watchlist import (
    TrackedItemOut,
    WatchlistPageInfo,
    WatchlistResponse,
    WatchlistSeasonOut,
    WatchRecordOut,
)

__all__ = [
    # Catalog
    "CoverImage",
    "FuzzyDate",
    "MediaItem",
    "MediaTitle",
    # Watch list
    "TrackedItemOut",
    "WatchlistPageInfo",
    "WatchlistResponse",
    "WatchlistSeasonOut",
    "WatchRecordOut",
]
