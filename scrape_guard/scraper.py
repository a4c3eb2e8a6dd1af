"""Article scraping operations built on the error handler"""

import random
import re
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Iterable, Optional

import httpx
from loguru import logger

from .circuit_breaker import CircuitBreaker
from .classifier import classify_error
from .config import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SCRAPE_CONCURRENCY,
    DEFAULT_USER_AGENT,
)
from .exceptions import FetchError
from .handler import ScrapingErrorHandler, get_error_handler
from .models import ErrorType

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1[^>]*>([^<]+)</h1>", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(
    r'<meta[^>]*property="og:description"[^>]*content="([^"]+)"', re.IGNORECASE
)
_ARTICLE_RE = re.compile(r"<article[^>]*>(.*?)</article>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

# Content failures that a 200 response can still carry
_CONTENT_FAILURES = (ErrorType.PAYWALL, ErrorType.JAVASCRIPT_REQUIRED)

DEMO_URLS = [
    "https://example.com/article1",
    "https://paywall-news.com/premium-article",
    "https://js-heavy.com/spa-content",
    "https://flaky-server.com/unreliable",
    "https://not-found.com/missing-page",
    "https://rate-limited.com/popular-article",
    "https://dns-error.com/article",
    "https://good-site.com/normal-article",
    "https://another-good-site.com/story",
]


def extract_article(html: str, url: str) -> Dict[str, Any]:
    """Pull title, description and article text out of a page (best effort)"""
    title = _TITLE_RE.search(html) or _H1_RE.search(html)
    description = _DESCRIPTION_RE.search(html)
    article = _ARTICLE_RE.search(html)

    content = ""
    if article:
        content = _SPACE_RE.sub(" ", _TAG_RE.sub(" ", article.group(1))).strip()

    return {
        "title": title.group(1).strip() if title else "No title",
        "description": description.group(1) if description else "",
        "content": content,
        "url": url,
        "extracted_at": datetime.now(timezone.utc).isoformat(),
        "content_length": len(content),
    }


async def fetch_article(
    url: str,
    client: httpx.AsyncClient,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Dict[str, Any]:
    """
    Fetch ``url`` and extract its article.

    Raises:
        FetchError: The server answered with an error status, or the page has
            no article text and looks like a paywall or a JavaScript shell.
            The response and body are attached for classification.
        httpx.HTTPError: Transport failures are left to the classifier.
    """
    response = await client.get(
        url,
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    )
    html = response.text

    if response.status_code >= 400:
        raise FetchError("HTTP Error", response=response, content=html)

    article = extract_article(html, url)
    if not article["content"]:
        classification = classify_error(content=html)
        if classification.error_type in _CONTENT_FAILURES:
            raise FetchError(classification.message, response=response, content=html)

    article["http_status"] = response.status_code
    return article


def _operation(
    url: str, client: httpx.AsyncClient, timeout: float, user_agent: str
) -> Callable[[], Any]:
    return partial(fetch_article, url, client, timeout=timeout, user_agent=user_agent)


async def scrape_url(
    url: str,
    handler: Optional[ScrapingErrorHandler] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Dict[str, Any]:
    """Scrape one URL and return the handler envelope"""
    handler = handler or get_error_handler()
    context = {"source": "scrape-guard", "user_agent": user_agent}

    if client is None:
        async with httpx.AsyncClient() as owned_client:
            return await handler.wrap(
                url, _operation(url, owned_client, timeout, user_agent), context
            )
    return await handler.wrap(url, _operation(url, client, timeout, user_agent), context)


async def scrape_urls(
    urls: Iterable[str],
    handler: Optional[ScrapingErrorHandler] = None,
    client: Optional[httpx.AsyncClient] = None,
    concurrency: int = DEFAULT_SCRAPE_CONCURRENCY,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Dict[str, Any]:
    """Scrape many URLs as one batch with per-URL error isolation"""
    handler = handler or get_error_handler()
    urls = list(urls)

    async def run(active_client: httpx.AsyncClient) -> Dict[str, Any]:
        submitted_at = datetime.now(timezone.utc).isoformat()
        items = [
            {
                "url": url,
                "operation": _operation(url, active_client, timeout, user_agent),
                "context": {"batch": True, "submitted_at": submitted_at},
            }
            for url in urls
        ]
        logger.info(f"Scraping {len(items)} URLs with concurrency={concurrency}")
        return await handler.wrap_batch(
            items, concurrency=concurrency, continue_on_error=True, collect_errors=True
        )

    if client is None:
        async with httpx.AsyncClient() as owned_client:
            return await run(owned_client)
    return await run(client)


async def scrape_for_app(
    url: str,
    handler: Optional[ScrapingErrorHandler] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    """Scrape for an application front end: article on success, fallback otherwise"""
    result = await scrape_url(url, handler=handler, client=client, timeout=timeout)

    if result["success"]:
        return {
            "success": True,
            "article": result["data"],
            "metadata": result["metadata"],
        }

    error = result["error"]
    logger.warning(f"Scraping failed for {url}: {error['type']}")
    return {
        "success": False,
        "error": error,
        "fallback": {
            "title": f"Failed to load: {error['type']}",
            "content": "Content could not be retrieved due to technical issues.",
            "url": url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }


def demo_transport(rand: Callable[[], float] = random.random) -> httpx.MockTransport:
    """
    Simulated network for demos and tests.

    Hosts containing ``paywall-news``, ``js-heavy``, ``flaky-server``,
    ``not-found``, ``rate-limited`` or ``dns-error`` misbehave the way their
    names suggest; every other host serves a small article.
    """

    def handle(request: httpx.Request) -> httpx.Response:
        host = request.url.host

        if "paywall-news.com" in host:
            return httpx.Response(
                200,
                html=(
                    "<html><body><h1>Breaking News</h1>"
                    "<p>This is a preview. Subscribe now to read the full article...</p>"
                    '<div class="paywall">Sign up for our premium subscription</div>'
                    "</body></html>"
                ),
            )

        if "js-heavy.com" in host:
            return httpx.Response(
                200,
                html=(
                    "<html><body><p>Please enable JavaScript to view this content</p>"
                    '<script>document.body.innerHTML = "Loaded by JavaScript"</script>'
                    "</body></html>"
                ),
            )

        if "flaky-server.com" in host and rand() < 0.7:
            raise httpx.ConnectError("Connection reset by peer", request=request)

        if "not-found.com" in host:
            return httpx.Response(404, html="<html><body><h1>404 Not Found</h1></body></html>")

        if "rate-limited.com" in host:
            return httpx.Response(
                429, html="<html><body><h1>Too Many Requests</h1></body></html>"
            )

        if "dns-error.com" in host:
            raise httpx.ConnectError(
                f"[Errno -2] Name or service not known: getaddrinfo {host}",
                request=request,
            )

        return httpx.Response(
            200,
            html=(
                "<!DOCTYPE html><html><head>"
                f"<title>Sample Article - {host}</title>"
                '<meta property="og:title" content="Sample Article">'
                '<meta property="og:description" content="This is a sample article description">'
                "</head><body><article>"
                "<h1>Sample News Article</h1>"
                "<p>This is the main content of the article. "
                "It contains important information about the topic.</p>"
                "<p>Additional paragraphs with more details and analysis.</p>"
                "</article></body></html>"
            ),
        )

    return httpx.MockTransport(handle)


async def run_demo(
    urls: Optional[Iterable[str]] = None,
    handler: Optional[ScrapingErrorHandler] = None,
    concurrency: int = 4,
    rand: Callable[[], float] = random.random,
) -> Dict[str, Any]:
    """Scrape ``DEMO_URLS`` against the simulated network"""
    if handler is None:
        handler = ScrapingErrorHandler(
            base_delay=0.1, circuit_breaker=CircuitBreaker(name="demo")
        )

    async with httpx.AsyncClient(transport=demo_transport(rand)) as client:
        return await scrape_urls(
            urls if urls is not None else DEMO_URLS,
            handler=handler,
            client=client,
            concurrency=concurrency,
            timeout=5.0,
        )
