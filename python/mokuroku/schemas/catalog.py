"""Catalog media Pydantic schemas.

Parses the media objects returned by the AniList GraphQL API. Field aliases
follow AniList's camelCase names; everything except id and title is inert
payload handed through to the renderer.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MediaTitle(BaseModel):
    """The title variants AniList provides for a media entry."""

    romaji: str | None = None
    english: str | None = None
    native: str | None = None
    user_preferred: str | None = Field(default=None, alias="userPreferred")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class FuzzyDate(BaseModel):
    """A date where any component may be unknown."""

    year: int | None = None
    month: int | None = None
    day: int | None = None

    model_config = ConfigDict(frozen=True)

    def to_date(self) -> date | None:
        """Return a concrete date when at least year and month are known.

        A missing day is treated as the first of the month. Impossible dates
        (AniList occasionally reports e.g. February 30) count as unknown.
        """
        if self.year is None or self.month is None:
            return None
        try:
            return date(self.year, self.month, self.day or 1)
        except ValueError:
            return None


class CoverImage(BaseModel):
    medium: str | None = None
    large: str | None = None

    model_config = ConfigDict(frozen=True)


class MediaItem(BaseModel):
    """One catalog entry (anime or manga) from a search page."""

    id: int
    site_url: str | None = Field(default=None, alias="siteUrl")
    title: MediaTitle = Field(default_factory=MediaTitle)
    format: str | None = None
    status: str | None = None
    genres: list[str] = Field(default_factory=list)
    start_date: FuzzyDate = Field(default_factory=FuzzyDate, alias="startDate")
    end_date: FuzzyDate = Field(default_factory=FuzzyDate, alias="endDate")
    cover_image: CoverImage | None = Field(default=None, alias="coverImage")
    episodes: int | None = None
    chapters: int | None = None
    duration: int | None = None
    average_score: int | None = Field(default=None, alias="averageScore")
    description: str | None = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """AniList sends explicit nulls for unknown fields; let the defaults apply."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("genres", mode="before")
    @classmethod
    def drop_null_genres(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [genre for genre in value if genre]
        return value

    @property
    def display_title(self) -> str:
        """Best available title, preferring the user's preferred variant."""
        title = self.title
        return title.user_preferred or title.romaji or title.english or title.native or "Unknown"
