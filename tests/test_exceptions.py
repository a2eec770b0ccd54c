"""Tests for the typed error hierarchy."""

import builtins

import pytest

from resilient_http import (
    ErrorMetadata,
    HttpClientError,
    HttpError,
    HttpErrorCategory,
    HttpErrorResponse,
    NetworkError,
    NetworkErrorDetails,
    PathParameterError,
    RequestMetadata,
    RequestSignatureError,
    SerializationError,
    TimeoutError,
)


def _metadata(**kwargs) -> ErrorMetadata:
    return ErrorMetadata(
        request=RequestMetadata(method="GET", url="/items", base_url="https://api.example.com"),
        client_name="HttpClient",
        **kwargs,
    )


class TestExceptionHierarchy:
    """Test exception hierarchy and codes."""

    @pytest.mark.parametrize("cls,code,retriable", [
        (NetworkError, "NETWORK_ERROR", True),
        (TimeoutError, "TIMEOUT_ERROR", True),
        (SerializationError, "SERIALIZATION_ERROR", False),
    ])
    def test_codes_and_defaults(self, cls, code, retriable):
        error = cls("boom", _metadata())

        assert isinstance(error, HttpClientError)
        assert error.code == code
        assert error.is_retriable is retriable
        assert str(error) == "boom"

    def test_timeout_error_is_not_builtin(self):
        assert not issubclass(TimeoutError, builtins.TimeoutError)

    def test_configuration_errors_are_value_errors(self):
        assert issubclass(PathParameterError, ValueError)
        assert issubclass(RequestSignatureError, ValueError)

    def test_cause_is_kept(self):
        cause = OSError("reset")
        error = NetworkError("boom", _metadata(), cause=cause)
        assert error.cause is cause


class TestHttpError:
    def _error(self, status, category, **kwargs) -> HttpError:
        return HttpError(
            "failed",
            status=status,
            category=category,
            status_text="",
            response=HttpErrorResponse(status=status),
            metadata=_metadata(),
            **kwargs,
        )

    def test_retriable_defaults_from_status(self):
        assert self._error(503, HttpErrorCategory.SERVER_ERROR).is_retriable is True
        assert self._error(429, HttpErrorCategory.RATE_LIMIT).is_retriable is True
        assert self._error(408, HttpErrorCategory.CLIENT_ERROR).is_retriable is True
        assert self._error(404, HttpErrorCategory.NOT_FOUND).is_retriable is False

    def test_explicit_retriable_wins(self):
        assert self._error(503, HttpErrorCategory.SERVER_ERROR, is_retriable=False).is_retriable is False
        assert self._error(400, HttpErrorCategory.VALIDATION, is_retriable=True).is_retriable is True

    def test_to_dict(self):
        data = self._error(404, HttpErrorCategory.NOT_FOUND).to_dict()

        assert data["error_type"] == "HttpError"
        assert data["code"] == "HTTP_ERROR"
        assert data["category"] == "NOT_FOUND"
        assert data["response"]["status"] == 404


class TestMetadata:
    def test_to_dict_drops_empty_fields(self):
        data = _metadata().to_dict()

        assert "error" not in data
        assert "retry_count" not in data
        assert data["request"]["method"] == "GET"

    def test_to_dict_with_network_details(self):
        details = NetworkErrorDetails(message="refused", type="connection_refused", code="ECONNREFUSED")
        data = _metadata(retry_count=2, error=details).to_dict()

        assert data["retry_count"] == 2
        assert data["error"] == {"message": "refused", "type": "connection_refused", "code": "ECONNREFUSED"}

    def test_path_parameter_error_message(self):
        error = PathParameterError("id", "/users/:id")
        assert str(error) == "Missing value for path parameter ':id' in '/users/:id'"
