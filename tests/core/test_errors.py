"""Tests for error handling"""
import json
from unittest.mock import Mock, patch

import pytest
from fastapi import HTTPException
from fastapi.responses import JSONResponse

from cityfix.core.errors import (
    AuthenticationError,
    AuthorizationError,
    DeliveryUnavailable,
    ErrorResponse,
    HandlerFailure,
    InvalidEnvelope,
    NotFoundError,
    ValidationError,
    error_response_handler,
    http_exception_handler,
    unhandled_exception_handler,
)


class TestErrorResponse:
    """Test ErrorResponse exception class"""

    def test_error_response_creation(self):
        error = ErrorResponse("Something went wrong", status_code=400)
        assert error.message == "Something went wrong"
        assert error.status_code == 400
        assert error.details == {}

    def test_error_response_default_status_code(self):
        assert ErrorResponse("Bad request").status_code == 400

    def test_error_response_str(self):
        assert str(ErrorResponse("Test error")) == "Test error"

    @pytest.mark.parametrize("error,status_code", [
        (ValidationError("bad"), 400),
        (InvalidEnvelope("bad body"), 400),
        (AuthenticationError(), 401),
        (AuthorizationError("not yours"), 403),
        (NotFoundError("missing"), 404),
        (DeliveryUnavailable("broker down"), 503),
    ])
    def test_status_codes(self, error, status_code):
        assert isinstance(error, ErrorResponse)
        assert error.status_code == status_code

    def test_handler_failure_is_not_an_http_error(self):
        cause = RuntimeError("boom")
        failure = HandlerFailure("audit.logs.queue", "m-1", cause)

        assert not isinstance(failure, ErrorResponse)
        assert failure.cause is cause
        assert "audit.logs.queue" in str(failure)


def _request():
    request = Mock()
    request.url = "http://testserver/reports"
    request.method = "POST"
    return request


class TestErrorHandlers:
    """Test error handler functions"""

    @pytest.mark.asyncio
    async def test_error_response_handler(self):
        error = ErrorResponse("Test error", status_code=404, details={"id": "123"})

        with patch("cityfix.core.errors.logger") as mock_logger:
            response = await error_response_handler(_request(), error)

        assert isinstance(response, JSONResponse)
        assert response.status_code == 404
        assert json.loads(response.body) == {"error": "Test error", "details": {"id": "123"}}
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_server_errors_logged_as_error(self):
        with patch("cityfix.core.errors.logger") as mock_logger:
            response = await error_response_handler(_request(), DeliveryUnavailable("down"))

        assert response.status_code == 503
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_http_exception_handler(self):
        with patch("cityfix.core.errors.logger"):
            response = await http_exception_handler(_request(), HTTPException(status_code=403, detail="Forbidden"))

        assert response.status_code == 403
        assert json.loads(response.body) == {"error": "Forbidden"}

    @pytest.mark.asyncio
    async def test_unhandled_exception_handler(self):
        with patch("cityfix.core.errors.logger"):
            response = await unhandled_exception_handler(_request(), RuntimeError("boom"))

        assert response.status_code == 500
        assert json.loads(response.body) == {"error": "Internal server error"}
