import asyncio
import errno
import socket

import httpx
import pytest

from scrape_guard.classifier import classify_error, http_status_for
from scrape_guard.exceptions import FetchError
from scrape_guard.models import ErrorType


@pytest.mark.parametrize("status", [429])
def test_status_429_is_rate_limited(status):
    result = classify_error(response={"status": status})
    assert result.error_type is ErrorType.RATE_LIMITED
    assert result.message == "Rate limited (429)"


@pytest.mark.parametrize("status", [500, 502, 503, 504, 520, 599])
def test_server_statuses_are_http_errors(status):
    result = classify_error(response={"status": status})
    assert result.error_type is ErrorType.HTTP_ERROR
    assert result.message.startswith(f"Server error ({status})")


@pytest.mark.parametrize("status", [400, 401, 402, 403, 404, 410, 418, 451, 499])
def test_client_statuses_are_http_errors(status):
    result = classify_error(response={"status": status})
    assert result.error_type is ErrorType.HTTP_ERROR


def test_status_messages_carry_reason_text():
    assert classify_error(response={"status": 403}).message == "Access forbidden (403)"
    assert classify_error(response={"status": 404}).message == "Page not found (404)"
    assert classify_error(response={"status": 502}).message == "Server error (502): Bad Gateway"
    assert classify_error(response={"status": 418}).message == "Client error (418): Unknown"


def test_status_read_from_status_code_attribute():
    response = httpx.Response(503)
    assert classify_error(response=response).error_type is ErrorType.HTTP_ERROR


def test_status_wins_over_error_and_content():
    error = FetchError("connect ECONNREFUSED", code="ECONNREFUSED")
    result = classify_error(error, {"status": 429}, "Subscribe now")
    assert result.error_type is ErrorType.RATE_LIMITED


def test_success_status_falls_through_to_content():
    result = classify_error(None, {"status": 200}, "<html><p>Subscribe now to read more...</p></html>")
    assert result.error_type is ErrorType.PAYWALL


def test_dns_error_from_code():
    result = classify_error({"message": "getaddrinfo ENOTFOUND", "code": "ENOTFOUND"})
    assert result.error_type is ErrorType.DNS_ERROR
    assert result.message == "DNS resolution failed"


def test_dns_error_from_code_only():
    assert classify_error({"code": "ENODATA"}).error_type is ErrorType.DNS_ERROR


def test_dns_error_from_gaierror():
    error = socket.gaierror(socket.EAI_NONAME, "Name or service not known")
    assert classify_error(error).error_type is ErrorType.DNS_ERROR


def test_network_error_from_code():
    result = classify_error({"message": "connect ECONNREFUSED", "code": "ECONNREFUSED"})
    assert result.error_type is ErrorType.NETWORK_ERROR


def test_network_error_from_connection_reset():
    assert classify_error(ConnectionResetError()).error_type is ErrorType.NETWORK_ERROR


def test_network_error_from_errno_code():
    error = OSError(errno.ECONNREFUSED, "refused")
    assert classify_error(error).error_type is ErrorType.NETWORK_ERROR


def test_etimedout_code_is_a_network_error():
    result = classify_error({"message": "Request timeout", "code": "ETIMEDOUT"})
    assert result.error_type is ErrorType.NETWORK_ERROR


def test_timeout_from_message():
    result = classify_error(RuntimeError("Operation timeout after 10s"))
    assert result.error_type is ErrorType.TIMEOUT
    assert result.message == "Request timeout"


def test_timeout_from_exception_types():
    assert classify_error(asyncio.TimeoutError()).error_type is ErrorType.TIMEOUT
    assert classify_error(httpx.ReadTimeout("read")).error_type is ErrorType.TIMEOUT


def test_httpx_connect_error_for_dns_failure():
    error = httpx.ConnectError("[Errno -2] Name or service not known")
    assert classify_error(error).error_type is ErrorType.DNS_ERROR


def test_paywall_detection():
    content = "<html><body><h1>Article</h1><p>Subscribe now to read more...</p></body></html>"
    result = classify_error(content=content)
    assert result.error_type is ErrorType.PAYWALL
    assert result.message == "Paywall detected"


def test_javascript_required_detection():
    content = "<html><body><p>Please enable JavaScript to view this content</p></body></html>"
    result = classify_error(content=content)
    assert result.error_type is ErrorType.JAVASCRIPT_REQUIRED
    assert result.message == "JavaScript required for content rendering"


def test_minimal_content_is_javascript_required():
    result = classify_error(content='<div id="app"></div>')
    assert result.error_type is ErrorType.JAVASCRIPT_REQUIRED
    assert "Minimal content" in result.message


def test_short_doctype_page_is_not_flagged():
    result = classify_error(content="<!DOCTYPE html><html></html>")
    assert result.error_type is ErrorType.UNKNOWN


def test_bytes_content_is_decoded():
    result = classify_error(content=b"<p>This content is for subscribers only</p>")
    assert result.error_type is ErrorType.PAYWALL


def test_fallback_uses_error_message():
    result = classify_error(ValueError("something odd"))
    assert result.error_type is ErrorType.UNKNOWN
    assert result.message == "something odd"


def test_fallback_without_anything():
    result = classify_error()
    assert result.error_type is ErrorType.UNKNOWN
    assert result.message == "Unknown error occurred"


def test_classify_never_raises_on_hostile_objects():
    class Hostile(Exception):
        def __str__(self):
            raise RuntimeError("no string for you")

        @property
        def code(self):
            raise RuntimeError("no code either")

    result = classify_error(Hostile(), object(), 12345)
    assert result.error_type is ErrorType.UNKNOWN


def test_http_status_mapping():
    assert http_status_for(ErrorType.HTTP_ERROR) == 502
    assert http_status_for(ErrorType.PAYWALL) == 402
    assert http_status_for(ErrorType.JAVASCRIPT_REQUIRED) == 422
    assert http_status_for(ErrorType.NETWORK_ERROR) == 503
    assert http_status_for(ErrorType.DNS_ERROR) == 503
    assert http_status_for(ErrorType.TIMEOUT) == 504
    assert http_status_for(ErrorType.PARSING_ERROR) == 502
    assert http_status_for(ErrorType.RATE_LIMITED) == 429
    assert http_status_for(ErrorType.UNKNOWN) == 500
    assert http_status_for("validation_error") == 500
