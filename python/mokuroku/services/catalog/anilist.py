"""AniList GraphQL catalog source.

- Endpoint: POST https://graphql.anilist.co/
- Headers: Content-Type: application/json, Accept: application/json
- No authentication; searches are public

Request body:
{
  "query": "<PAGE_QUERY>",
  "variables": {"search": "naruto", "type": "ANIME", "page": 1, "perPage": 5}
}

Response - extract:
{
  "data": {
    "Page": {
      "pageInfo": {"total": 12, "currentPage": 1, "lastPage": 3, "hasNextPage": true, "perPage": 5},
      "media": [{"id": 20, "title": {...}, ...}]
    }
  }
}

AniList reports query problems as {"errors": [{"message": ..., "status": ...}]},
usually with a 4xx status and data set to null.
"""

import time

import httpx
from pydantic import ValidationError

from mokuroku.config import ANILIST_API_URL
from mokuroku.logging import get_logger
from mokuroku.schemas.catalog import MediaItem
from mokuroku.services.catalog.errors import (
    CatalogError,
    RemoteQueryError,
    classify_catalog_error,
)
from mokuroku.services.catalog.source import CatalogSource
from mokuroku.services.catalog.types import SearchQuery
from mokuroku.services.paginator import Page

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 10.0

PAGE_QUERY = """
query ($search: String, $type: MediaType, $page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    pageInfo { total, currentPage, lastPage, hasNextPage, perPage }
    media(search: $search, type: $type) {
      id,
      siteUrl,
      title { romaji, english, native, userPreferred },
      format,
      status(version: 2),
      genres,
      startDate { year, month, day },
      endDate { year, month, day },
      coverImage { medium, large },
      duration,
      episodes,
      chapters,
      averageScore,
      description(asHtml: true),
    }
  }
}
"""


class AniListSource(CatalogSource):
    """Searches AniList one page at a time.

    Shares the application's httpx.AsyncClient for connection pooling.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str = ANILIST_API_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self._client = client
        self._api_url = api_url
        self._timeout_s = timeout_s

    async def fetch(self, query: SearchQuery, page_number: int) -> Page:
        log_fields = {
            "kind": query.kind.value,
            "page_number": page_number,
            "page_size": query.page_size,
        }
        logger.info("catalog.page.requested", **log_fields)
        start = time.monotonic()

        try:
            page = await self._fetch(query, page_number)
        except CatalogError as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                "catalog.page.failed",
                error_code=e.code.value,
                latency_ms=latency_ms,
                **log_fields,
            )
            raise

        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "catalog.page.fetched",
            items=len(page.items),
            has_next_page=page.has_next_page,
            latency_ms=latency_ms,
            **log_fields,
        )
        return page

    async def _fetch(self, query: SearchQuery, page_number: int) -> Page:
        try:
            response = await self._client.post(
                self._api_url,
                headers=self._build_headers(),
                json=self._build_request_body(query, page_number),
                timeout=httpx.Timeout(self._timeout_s, connect=5.0),
            )
        except httpx.HTTPError as e:
            raise classify_catalog_error(None, None, e) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        error = classify_catalog_error(response.status_code, body, None)
        if error is not None:
            raise error

        return self._parse_page(body["data"]["Page"], page_number)

    def _build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _build_request_body(self, query: SearchQuery, page_number: int) -> dict:
        return {
            "query": PAGE_QUERY,
            "variables": {
                "search": query.text,
                "type": query.kind.value,
                "page": page_number,
                "perPage": query.page_size,
            },
        }

    def _parse_page(self, data: dict, page_number: int) -> Page:
        """Convert data.Page into a Page.

        A missing pageInfo is read as a single, final page.
        """
        try:
            items = tuple(MediaItem.model_validate(media) for media in data.get("media") or [])
        except ValidationError as e:
            raise RemoteQueryError(f"Catalog returned malformed media ({e.error_count()} errors)") from e

        page_info = data.get("pageInfo") or {}
        current_page = page_info.get("currentPage") or page_number
        return Page(
            items=items,
            page_number=page_number,
            has_next_page=bool(page_info.get("hasNextPage")),
            current_page=current_page,
            last_page=page_info.get("lastPage") or current_page,
            total=page_info.get("total"),
        )
