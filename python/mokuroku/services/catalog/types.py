"""Shared type definitions for the catalog query layer.

- SearchQuery: an immutable catalog search (text, media kind, page size)

Page and NavAffordances live with the paginator, which owns the page
contract every source must satisfy.
"""

from dataclasses import dataclass

from mokuroku.config import MAX_PAGE_SIZE
from mokuroku.db.models import MediaKind
from mokuroku.errors import ApiErrorCode, InvalidRequestError


@dataclass(frozen=True)
class SearchQuery:
    """A catalog search bound to a paginator for its whole lifetime.

    Attributes:
        text: The free-text search string, sent verbatim
        kind: Which kind of media to search (ANIME or MANGA)
        page_size: Items per page requested from the catalog
    """

    text: str
    kind: MediaKind
    page_size: int = 5

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Search text is empty")
        if not isinstance(self.kind, MediaKind):
            raise InvalidRequestError(ApiErrorCode.E_INVALID_KIND, f"Unknown media kind: {self.kind}")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_REQUEST,
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}",
            )
