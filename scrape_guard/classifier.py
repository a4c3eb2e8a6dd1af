"""Failure classification for scrape operations"""

import asyncio
import errno
import socket
from typing import Any, Mapping, Optional

import httpx

from .config import (
    DNS_ERROR_CODES,
    DNS_MESSAGE_INDICATORS,
    ERROR_STATUS_MAP,
    HTTP_ERROR_CODES,
    JS_REQUIRED_INDICATORS,
    MIN_CONTENT_LENGTH,
    NETWORK_ERROR_CODES,
    NETWORK_MESSAGE_INDICATORS,
    PAYWALL_INDICATORS,
    TIMEOUT_ERROR_CODES,
    TIMEOUT_MESSAGE_INDICATORS,
)
from .models import Classification, ErrorType

UNKNOWN_MESSAGE = "Unknown error occurred"


def classify_error(
    error: Any = None,
    response: Any = None,
    content: Any = None,
) -> Classification:
    """
    Classify a failed scrape from the raised error, the HTTP response and the
    fetched content. First match wins, in that order.

    Never raises: anything that cannot be inspected is treated as "no signal"
    and the result falls back to ``ErrorType.UNKNOWN``.
    """
    try:
        status = _status_of(response)
        if status is not None and status >= 400:
            return _classify_status(status)

        if error is not None:
            result = _classify_exception(error)
            if result is not None:
                return result

        text = _content_text(content)
        if text:
            result = _classify_content(text)
            if result is not None:
                return result

        return Classification(ErrorType.UNKNOWN, _message_of(error) or UNKNOWN_MESSAGE)
    except Exception:
        return Classification(ErrorType.UNKNOWN, UNKNOWN_MESSAGE)


def http_status_for(error_type: Any) -> int:
    """HTTP status an API front end should answer with for an error type"""
    value = error_type.value if isinstance(error_type, ErrorType) else error_type
    return ERROR_STATUS_MAP.get(value, 500)


def _classify_status(status: int) -> Classification:
    if status == 429:
        return Classification(ErrorType.RATE_LIMITED, f"Rate limited ({status})")
    if status == 403:
        return Classification(ErrorType.HTTP_ERROR, f"Access forbidden ({status})")
    if status == 404:
        return Classification(ErrorType.HTTP_ERROR, f"Page not found ({status})")

    reason = HTTP_ERROR_CODES.get(status, "Unknown")
    if status >= 500:
        return Classification(ErrorType.HTTP_ERROR, f"Server error ({status}): {reason}")
    return Classification(ErrorType.HTTP_ERROR, f"Client error ({status}): {reason}")


def _classify_exception(error: Any) -> Optional[Classification]:
    message = (_message_of(error) or "").lower()
    code = (_code_of(error) or "").lower()

    if (
        isinstance(error, socket.gaierror)
        or code in DNS_ERROR_CODES
        or any(indicator in message for indicator in DNS_MESSAGE_INDICATORS)
    ):
        return Classification(ErrorType.DNS_ERROR, "DNS resolution failed")

    if (
        isinstance(error, (ConnectionError, httpx.NetworkError))
        or code in NETWORK_ERROR_CODES
        or any(indicator in message for indicator in NETWORK_MESSAGE_INDICATORS)
    ):
        return Classification(ErrorType.NETWORK_ERROR, "Network connection failed")

    if (
        isinstance(error, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException))
        or code in TIMEOUT_ERROR_CODES
        or any(indicator in message for indicator in TIMEOUT_MESSAGE_INDICATORS)
    ):
        return Classification(ErrorType.TIMEOUT, "Request timeout")

    return None


def _classify_content(text: str) -> Optional[Classification]:
    lowered = text.lower()

    if any(indicator in lowered for indicator in PAYWALL_INDICATORS):
        return Classification(ErrorType.PAYWALL, "Paywall detected")

    if any(indicator in lowered for indicator in JS_REQUIRED_INDICATORS):
        return Classification(
            ErrorType.JAVASCRIPT_REQUIRED, "JavaScript required for content rendering"
        )

    if len(text.strip()) < MIN_CONTENT_LENGTH and "<!doctype" not in lowered:
        return Classification(
            ErrorType.JAVASCRIPT_REQUIRED,
            "Minimal content detected - likely requires JavaScript",
        )

    return None


def _status_of(response: Any) -> Optional[int]:
    if response is None:
        return None
    if isinstance(response, Mapping):
        status = response.get("status", response.get("status_code"))
    else:
        status = getattr(response, "status", None)
        if status is None:
            status = getattr(response, "status_code", None)
    if status is None or isinstance(status, bool):
        return None
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


def _message_of(error: Any) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, Mapping):
        message = error.get("message")
        return str(message) if message is not None else None
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    try:
        return str(error)
    except Exception:
        return None


def _code_of(error: Any) -> Optional[str]:
    if isinstance(error, Mapping):
        code = error.get("code")
    else:
        code = getattr(error, "code", None)
        if code is None and isinstance(error, OSError) and error.errno is not None:
            code = errno.errorcode.get(error.errno)
    if code is None:
        return None
    return str(code)


def _content_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, (bytes, bytearray)):
        return bytes(content).decode("utf-8", errors="replace")
    if isinstance(content, str):
        return content
    return ""
