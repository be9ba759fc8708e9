"""Abstract catalog source and the query-bound page source.

Rules for CatalogSource implementations:
- Stateless: safe to call concurrently for different pages
- No retries; every failure is raised as a CatalogError
- No DB access
- No logging of request/response bodies
"""

from abc import ABC, abstractmethod

from mokuroku.services.catalog.types import SearchQuery
from mokuroku.services.paginator import Page


class CatalogSource(ABC):
    """A remote catalog that can answer one page of a search at a time."""

    @abstractmethod
    async def fetch(self, query: SearchQuery, page_number: int) -> Page:
        """Fetch one page of results for a query.

        Args:
            query: The search to run.
            page_number: 1-based page to fetch.

        Returns:
            The page, possibly with zero items.

        Raises:
            TransportError: The catalog could not be reached or answered unusably.
            RemoteQueryError: The catalog reported a structured query error.
        """
        pass


class QueryPageSource:
    """Binds a SearchQuery to a CatalogSource, exposing only fetch_page(n).

    This is the PageSource a MediaPaginator holds for catalog searches.
    """

    def __init__(self, source: CatalogSource, query: SearchQuery):
        self.source = source
        self.query = query

    async def fetch_page(self, page_number: int) -> Page:
        return await self.source.fetch(self.query, page_number)
