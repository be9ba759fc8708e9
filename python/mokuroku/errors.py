"""Error definitions.

All errors surfaced by the service are defined here with their
corresponding HTTP status codes. Catalog and store failures carry their
own codes so the session and the HTTP layer can tell them apart.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes.

    Format: E_CATEGORY_NAME
    """

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_MEDIA_NOT_FOUND = "E_MEDIA_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_EVENT = "E_INVALID_EVENT"
    E_INVALID_KIND = "E_INVALID_KIND"
    E_INVALID_STATUS = "E_INVALID_STATUS"

    # Catalog errors
    E_CATALOG_TRANSPORT = "E_CATALOG_TRANSPORT"  # 502
    E_CATALOG_QUERY = "E_CATALOG_QUERY"  # 502

    # Store errors
    E_STORE_UNAVAILABLE = "E_STORE_UNAVAILABLE"  # 503
    E_STORE_CONFLICT = "E_STORE_CONFLICT"  # 409

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_MEDIA_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_INVALID_EVENT: 400,
    ApiErrorCode.E_INVALID_KIND: 400,
    ApiErrorCode.E_INVALID_STATUS: 400,
    ApiErrorCode.E_CATALOG_TRANSPORT: 502,
    ApiErrorCode.E_CATALOG_QUERY: 502,
    ApiErrorCode.E_STORE_UNAVAILABLE: 503,
    ApiErrorCode.E_STORE_CONFLICT: 409,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for service errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)
