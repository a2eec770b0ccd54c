"""Tests for failure classification."""

import pytest

from resilient_http import (
    HttpErrorCategory,
    TransportFailure,
    TransportResponse,
    classify,
    classify_http_status,
    classify_network_error_type,
    is_http_status_retriable,
)

from conftest import http_failure


class TestHttpStatusClassification:
    """Status code to category mapping."""

    @pytest.mark.parametrize("status,category", [
        (400, HttpErrorCategory.VALIDATION),
        (401, HttpErrorCategory.AUTHENTICATION),
        (403, HttpErrorCategory.AUTHENTICATION),
        (404, HttpErrorCategory.NOT_FOUND),
        (408, HttpErrorCategory.CLIENT_ERROR),
        (409, HttpErrorCategory.CLIENT_ERROR),
        (422, HttpErrorCategory.VALIDATION),
        (429, HttpErrorCategory.RATE_LIMIT),
        (500, HttpErrorCategory.SERVER_ERROR),
        (503, HttpErrorCategory.SERVER_ERROR),
        (599, HttpErrorCategory.SERVER_ERROR),
        (302, HttpErrorCategory.CLIENT_ERROR),
    ])
    def test_categories(self, status, category):
        assert classify_http_status(status) == category

    def test_retriable_statuses(self):
        assert is_http_status_retriable(500, HttpErrorCategory.SERVER_ERROR)
        assert is_http_status_retriable(429, HttpErrorCategory.RATE_LIMIT)
        assert is_http_status_retriable(408, HttpErrorCategory.CLIENT_ERROR)
        assert not is_http_status_retriable(404, HttpErrorCategory.NOT_FOUND)
        assert not is_http_status_retriable(401, HttpErrorCategory.AUTHENTICATION)
        assert not is_http_status_retriable(422, HttpErrorCategory.VALIDATION)


class TestClassify:
    """Decision order of `classify`."""

    def test_rate_limit_is_retriable_http(self, request_stub):
        result = classify(http_failure(request_stub, 429))

        assert result.type == "http"
        assert result.category == HttpErrorCategory.RATE_LIMIT
        assert result.status_code == 429
        assert result.is_retriable is True

    def test_not_found_is_not_retriable(self, request_stub):
        result = classify(http_failure(request_stub, 404))

        assert result.type == "http"
        assert result.is_retriable is False

    def test_request_timeout_status_is_retriable(self, request_stub):
        result = classify(http_failure(request_stub, 408))

        assert result.category == HttpErrorCategory.CLIENT_ERROR
        assert result.is_retriable is True

    def test_timeout_code_wins_over_serialization_message(self, request_stub):
        failure = TransportFailure(
            "Unexpected token in JSON", code="ETIMEDOUT", request=request_stub, kind="SyntaxError"
        )

        result = classify(failure)

        assert result.type == "timeout"
        assert result.is_retriable is True

    def test_timeout_detected_from_message(self, request_stub):
        failure = TransportFailure("timeout of 5000ms exceeded", code="ECONNABORTED", request=request_stub)
        assert classify(failure).type == "timeout"

    def test_timeout_detected_from_flags(self):
        assert classify(TransportFailure("aborted", is_timeout=True)).type == "timeout"
        assert classify(TransportFailure("aborted", cancelled=True)).type == "timeout"

    @pytest.mark.parametrize("code", ["ETIMEDOUT", "ESOCKETTIMEDOUT"])
    def test_timeout_codes(self, code):
        assert classify(TransportFailure("boom", code=code)).type == "timeout"

    def test_serialization_without_response(self, request_stub):
        failure = TransportFailure("Failed to parse JSON response", request=request_stub, kind="JSONDecodeError")

        result = classify(failure)

        assert result.type == "serialization"
        assert result.is_retriable is False

    def test_serialization_detected_from_kind(self):
        failure = TransportFailure("Object of type set is not encodable", kind="TypeError")
        assert classify(failure).type == "serialization"

    def test_error_response_mentioning_json_stays_http(self, request_stub):
        failure = TransportFailure(
            "Invalid JSON payload",
            request=request_stub,
            response=TransportResponse(status=400, body={"message": "Unexpected token < in JSON"}),
        )

        result = classify(failure)

        assert result.type == "http"
        assert result.category == HttpErrorCategory.VALIDATION
        assert result.is_retriable is False

    def test_request_without_response_is_network(self, request_stub):
        failure = TransportFailure("Connection refused", code="ECONNREFUSED", request=request_stub)

        result = classify(failure)

        assert result.type == "network"
        assert result.is_retriable is True
        assert result.status_code is None
        assert result.category is None

    def test_nothing_attached_is_unknown(self):
        result = classify(TransportFailure("something odd happened"))

        assert result.type == "unknown"
        assert result.is_retriable is False

    def test_classification_is_stable(self, request_stub):
        failure = http_failure(request_stub, 503)
        assert classify(failure) == classify(failure)


class TestNetworkErrorType:
    """Diagnostic labels for connection failures."""

    @pytest.mark.parametrize("code,label", [
        ("ECONNREFUSED", "connection_refused"),
        ("ENOTFOUND", "dns_lookup_failed"),
        ("ECONNRESET", "connection_reset"),
        ("ECONNABORTED", "connection_aborted"),
        ("ENETUNREACH", "network_unreachable"),
        ("EHOSTUNREACH", "host_unreachable"),
    ])
    def test_known_codes(self, code, label):
        assert classify_network_error_type(TransportFailure("x", code=code)) == label

    def test_timeout_label(self):
        assert classify_network_error_type(TransportFailure("x", code="ETIMEDOUT")) == "request_timeout"

    def test_fallback_label(self):
        assert classify_network_error_type(TransportFailure("x", code="EPIPE")) == "network_error"
        assert classify_network_error_type(TransportFailure("x")) == "network_error"
