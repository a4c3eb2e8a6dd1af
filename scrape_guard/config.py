"""Configuration constants for the scraping error handler"""

from pathlib import Path

# Retry configuration (seconds)
MAX_RETRIES = 3
BASE_DELAY = 1.0
JITTER_RANGE = (0.5, 1.0)  # Multiplier applied to the exponential delay

# Circuit breaker configuration
CIRCUIT_BREAKER_THRESHOLD = 5  # Failures before a domain is blocked
CIRCUIT_BREAKER_TIMEOUT = 60.0  # Seconds before a blocked domain is tried again
UNKNOWN_DOMAIN = "unknown-domain"

# Batch defaults
DEFAULT_CONCURRENCY = 5
DEFAULT_SCRAPE_CONCURRENCY = 3

# Fetch defaults
DEFAULT_REQUEST_TIMEOUT = 10.0  # Seconds
DEFAULT_USER_AGENT = "Demo-Scraper/1.0"
DEFAULT_OUTPUT_DIR = Path("./output")
DEFAULT_LOG_FILE = Path("./logs/scrape_guard.log")

# Prefix of structured error entries; routed to their own log file
SCRAPER_ERROR_TAG = "[SCRAPER_ERROR]"

# Content shorter than this (without a doctype) is treated as an empty SPA shell
MIN_CONTENT_LENGTH = 100

# Reason phrases used in HTTP error messages
HTTP_ERROR_CODES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    429: "Rate Limited",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}

PAYWALL_INDICATORS = (
    "subscribe",
    "subscription",
    "paywall",
    "premium content",
    "sign in to read",
    "register to continue",
    "unlock this article",
    "become a member",
    "this content is for subscribers",
    "continue reading with",
    "free trial",
    "monthly plan",
    "access denied",
)

JS_REQUIRED_INDICATORS = (
    "please enable javascript",
    "javascript is disabled",
    "requires javascript",
    "js is required",
    "enable js to view",
    "javascript must be enabled",
    "this site needs javascript",
)

# Error indicators matched against exception messages and codes
DNS_MESSAGE_INDICATORS = (
    "getaddrinfo",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
)
DNS_ERROR_CODES = ("enotfound", "enodata")

NETWORK_MESSAGE_INDICATORS = ("connect", "network")
NETWORK_ERROR_CODES = ("econnrefused", "econnreset", "etimedout")

TIMEOUT_MESSAGE_INDICATORS = ("timeout",)
TIMEOUT_ERROR_CODES = ("etimeout",)

# Status codes an HTTP front end should answer with, per error type value
ERROR_STATUS_MAP = {
    "http_error": 502,  # Bad Gateway
    "paywall": 402,  # Payment Required
    "javascript_required": 422,  # Unprocessable Entity
    "network_error": 503,  # Service Unavailable
    "dns_error": 503,  # Service Unavailable
    "timeout": 504,  # Gateway Timeout
    "parsing_error": 502,  # Bad Gateway
    "rate_limited": 429,  # Too Many Requests
    "unknown": 500,  # Internal Server Error
}
