"""Catalog error classification.

Normalizes every failure of a catalog page fetch into one of two kinds:

- TransportError (E_CATALOG_TRANSPORT): the request never produced a usable
  answer. Connection/read/timeout errors, 5xx responses, bodies that are not
  JSON, and non-2xx responses without a GraphQL errors envelope.
- RemoteQueryError (E_CATALOG_QUERY): the catalog answered but rejected or
  could not satisfy the query. A non-empty GraphQL "errors" array (at any
  status), or a body without data.Page.

Classification happens here, in one place; the source only collects the
raw status code, body and exception.
"""

from typing import Any

import httpx

from mokuroku.errors import ApiError, ApiErrorCode


class CatalogError(ApiError):
    """Base class for catalog page fetch failures."""


class TransportError(CatalogError):
    """The catalog could not be reached or did not answer usably."""

    def __init__(self, message: str, status_code: int | None = None):
        self.upstream_status = status_code
        super().__init__(ApiErrorCode.E_CATALOG_TRANSPORT, message)


class RemoteQueryError(CatalogError):
    """The catalog reported a structured error for the query.

    Attributes:
        errors: The GraphQL error objects, as returned by the catalog
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(ApiErrorCode.E_CATALOG_QUERY, message)


def _error_messages(errors: list[Any]) -> str:
    messages = []
    for error in errors:
        if isinstance(error, dict) and error.get("message"):
            messages.append(str(error["message"]))
    return "; ".join(messages) or "Catalog rejected the query"


def classify_catalog_error(
    status_code: int | None,
    json_body: Any,
    exception: Exception | None,
) -> CatalogError | None:
    """Classify a catalog response into an error, or None when it is usable.

    Args:
        status_code: HTTP status code (None when no response was received)
        json_body: Parsed JSON body (None when absent or not JSON)
        exception: The exception raised while sending or decoding, if any

    Returns:
        The CatalogError to raise, or None if the body carries data.Page.
    """
    if isinstance(exception, httpx.HTTPError) or status_code is None:
        kind = type(exception).__name__ if exception is not None else "NoResponse"
        return TransportError(f"Catalog request failed: {kind}")

    if status_code >= 500:
        return TransportError(f"Catalog unavailable (HTTP {status_code})", status_code)

    if not isinstance(json_body, dict):
        return TransportError(f"Catalog returned a non-JSON body (HTTP {status_code})", status_code)

    errors = json_body.get("errors")
    if errors:
        if not isinstance(errors, list):
            errors = [errors]
        return RemoteQueryError(_error_messages(errors), errors)

    if not 200 <= status_code < 300:
        return TransportError(f"Catalog request failed (HTTP {status_code})", status_code)

    data = json_body.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("Page"), dict):
        return RemoteQueryError("Catalog response has no data.Page")

    return None
