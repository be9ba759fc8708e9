"""Catalog query layer.

Fetches one page of a remote catalog search at a time. It includes:

- The CatalogSource interface and its AniList GraphQL implementation
- QueryPageSource, which binds a SearchQuery for use by a MediaPaginator
- Error classification into TransportError / RemoteQueryError

Usage:
    from mokuroku.services.catalog import AniListSource, QueryPageSource, SearchQuery

    source = AniListSource(httpx_client)
    page_source = QueryPageSource(source, SearchQuery("naruto", MediaKind.anime))
    paginator = await MediaPaginator.create(page_source)

Rules:
- Sources are async using httpx.AsyncClient
- No retries inside sources
- No logging of request/response bodies
"""

from mokuroku.services.catalog.anilist import AniListSource
from mokuroku.services.catalog.errors import (
    CatalogError,
    RemoteQueryError,
    TransportError,
    classify_catalog_error,
)
from mokuroku.services.catalog.source import CatalogSource, QueryPageSource
from mokuroku.services.catalog.types import SearchQuery

__all__ = [
    # Types
    "SearchQuery",
    # Sources
    "CatalogSource",
    "AniListSource",
    "QueryPageSource",
    # Errors
    "CatalogError",
    "TransportError",
    "RemoteQueryError",
    "classify_catalog_error",
]
