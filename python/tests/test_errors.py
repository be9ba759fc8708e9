"""Tests for error handling and response envelopes.

Verifies:
- Error envelope shape is correct
- Every error code maps to correct HTTP status
- Catalog and store errors carry their own codes
- Unknown exceptions return E_INTERNAL with 500
- Server-side API errors are logged, client errors are not
"""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mokuroku import responses
from mokuroku.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    InvalidRequestError,
    NotFoundError,
)
from mokuroku.responses import (
    api_error_handler,
    error_response,
    success_response,
    unhandled_exception_handler,
)
from mokuroku.services.catalog import RemoteQueryError, TransportError
from mokuroku.services.watchlist import ConflictRetryExceededError, StoreUnavailableError


class TestErrorResponse:
    def test_error_response_has_correct_shape(self):
        response = error_response(ApiErrorCode.E_NOT_FOUND, "Resource not found")

        assert response["error"]["code"] == "E_NOT_FOUND"
        assert response["error"]["message"] == "Resource not found"

    def test_error_response_code_is_string(self):
        response = error_response(ApiErrorCode.E_INVALID_KIND, "bad kind")

        assert isinstance(response["error"]["code"], str)

    def test_explicit_request_id_included(self):
        response = error_response(ApiErrorCode.E_INTERNAL, "x", request_id="req-1")

        assert response["error"]["request_id"] == "req-1"


class TestSuccessResponse:
    def test_success_response_has_data_key(self):
        response = success_response({"status": "ok"})

        assert response == {"data": {"status": "ok"}}

    def test_success_response_with_none(self):
        assert success_response(None) == {"data": None}


class TestErrorCodeToStatus:
    def test_all_error_codes_have_status_mapping(self):
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS, f"Missing status mapping for {code}"

    @pytest.mark.parametrize(
        "code,expected_status",
        [
            (ApiErrorCode.E_NOT_FOUND, 404),
            (ApiErrorCode.E_MEDIA_NOT_FOUND, 404),
            (ApiErrorCode.E_INVALID_REQUEST, 400),
            (ApiErrorCode.E_INVALID_EVENT, 400),
            (ApiErrorCode.E_INVALID_KIND, 400),
            (ApiErrorCode.E_INVALID_STATUS, 400),
            (ApiErrorCode.E_CATALOG_TRANSPORT, 502),
            (ApiErrorCode.E_CATALOG_QUERY, 502),
            (ApiErrorCode.E_STORE_UNAVAILABLE, 503),
            (ApiErrorCode.E_STORE_CONFLICT, 409),
            (ApiErrorCode.E_INTERNAL, 500),
        ],
    )
    def test_error_code_maps_to_correct_status(self, code: ApiErrorCode, expected_status: int):
        assert ERROR_CODE_TO_STATUS[code] == expected_status


class TestApiErrorClass:
    def test_api_error_has_code_and_message(self):
        error = ApiError(ApiErrorCode.E_NOT_FOUND, "Item not found")

        assert error.code == ApiErrorCode.E_NOT_FOUND
        assert error.message == "Item not found"
        assert error.status_code == 404

    def test_not_found_error_defaults(self):
        error = NotFoundError()

        assert error.code == ApiErrorCode.E_NOT_FOUND
        assert error.status_code == 404

    def test_invalid_request_error_defaults(self):
        error = InvalidRequestError()

        assert error.code == ApiErrorCode.E_INVALID_REQUEST
        assert error.status_code == 400

    @pytest.mark.parametrize(
        "error,code",
        [
            (TransportError("down"), ApiErrorCode.E_CATALOG_TRANSPORT),
            (RemoteQueryError("bad query"), ApiErrorCode.E_CATALOG_QUERY),
            (StoreUnavailableError(), ApiErrorCode.E_STORE_UNAVAILABLE),
            (ConflictRetryExceededError(), ApiErrorCode.E_STORE_CONFLICT),
        ],
    )
    def test_domain_errors_are_api_errors(self, error, code):
        assert isinstance(error, ApiError)
        assert error.code == code


def _crash_app(exc: Exception) -> TestClient:
    test_app = FastAPI()

    @test_app.get("/crash")
    def crash_endpoint():
        raise exc

    test_app.add_exception_handler(ApiError, api_error_handler)
    test_app.add_exception_handler(Exception, unhandled_exception_handler)
    return TestClient(test_app, raise_server_exceptions=False)


class TestExceptionHandlers:
    def test_api_error_uses_its_status(self):
        response = _crash_app(StoreUnavailableError()).get("/crash")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "E_STORE_UNAVAILABLE"

    def test_unhandled_exception_returns_500_with_e_internal(self):
        response = _crash_app(RuntimeError("Unexpected error")).get("/crash")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "E_INTERNAL"
        assert "Internal server error" in data["error"]["message"]

    def test_unhandled_exception_does_not_leak_details(self):
        response = _crash_app(RuntimeError("SECRET_INTERNAL_DETAIL")).get("/crash")

        assert "SECRET_INTERNAL_DETAIL" not in response.text

    def test_unknown_route_is_not_found(self, client: TestClient):
        response = client.get("/no-such-route")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_NOT_FOUND"

    def test_method_not_allowed_is_invalid_request(self, client: TestClient):
        response = client.post("/health")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"


class TestUpstreamFailureLogging:
    def test_server_side_api_errors_are_logged(self, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(responses, "logger", logger)

        _crash_app(TransportError("connect timeout")).get("/crash")

        logger.warning.assert_called_once()
        args, kwargs = logger.warning.call_args
        assert args == ("api_error",)
        assert kwargs["error_code"] == "E_CATALOG_TRANSPORT"

    def test_client_errors_are_not_logged(self, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(responses, "logger", logger)

        _crash_app(NotFoundError()).get("/crash")

        logger.warning.assert_not_called()
