"""HTTP client and resilience helpers."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter  # noqa: TC002
from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from versiontracker import __version__
from versiontracker.clients.cache import ResponseCache
from versiontracker.utils.parsing import parse_content_length

if TYPE_CHECKING:
    from versiontracker.settings import Settings

RATE_LIMIT_STATUSES = frozenset({403, 429})
RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class SoftErrorDetected(Exception):
    """Raised when a response is successful but its payload has an unexpected shape."""


class RetryableStatusError(Exception):
    """Raised when a response has a retryable HTTP status code, so tenacity can retry."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Retryable HTTP {status_code}")


class RateLimitMonitor:
    """Tracks a rolling window of status codes and the last reported API quota."""

    def __init__(self, window: int = 200, threshold_percent: float = 10.0) -> None:
        self.window = window
        self.threshold_percent = threshold_percent
        self._codes: deque[int] = deque(maxlen=window)
        self.remaining: int | None = None

    def push_response(self, response: httpx.Response) -> None:
        self._codes.append(response.status_code)
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining is not None and remaining.isdigit():
            self.remaining = int(remaining)

    @property
    def rate_limited_percent(self) -> float:
        if not self._codes:
            return 0.0
        limited = sum(1 for code in self._codes if code in RATE_LIMIT_STATUSES)
        return limited * 100.0 / len(self._codes)

    @property
    def should_warn(self) -> bool:
        return self.remaining == 0 or (
            len(self._codes) >= self.window and self.rate_limited_percent >= self.threshold_percent
        )


@dataclass
class RequestContext:
    """Fetch context passed to every source provider."""

    limiter: AsyncLimiter
    monitor: RateLimitMonitor = field(default_factory=RateLimitMonitor)
    cache: ResponseCache | None = None
    _limiter_loop_map: dict[int, AsyncLimiter] = field(default_factory=dict, repr=False, compare=False)

    def get_limiter(self) -> AsyncLimiter:
        """Return an AsyncLimiter bound to the current event loop."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self.limiter

        loop_id = id(loop)
        if loop_id not in self._limiter_loop_map:
            self._limiter_loop_map[loop_id] = AsyncLimiter(self.limiter.max_rate, self.limiter.time_period)
        return self._limiter_loop_map[loop_id]


def build_request_context(settings: Settings, *, cache: ResponseCache | None = None) -> RequestContext:
    """Create the per-run request context from settings."""

    return RequestContext(
        limiter=AsyncLimiter(settings.rate_limit_per_second, 1),
        monitor=RateLimitMonitor(),
        cache=cache if cache is not None else ResponseCache(ttl_seconds=settings.cache_ttl_seconds),
    )


def _log_before_sleep(retry_state: RetryCallState) -> None:
    """Loguru-compatible before_sleep callback for tenacity."""
    if retry_state.next_action:
        logger.warning(
            "Retrying {} (attempt {}), sleeping {:.1f}s",
            retry_state.fn.__name__ if retry_state.fn else "unknown",
            retry_state.attempt_number,
            retry_state.next_action.sleep,
        )


def _default_headers(settings: Settings) -> dict[str, str]:
    headers = {
        "User-Agent": f"versiontracker/{__version__}",
        "Accept": "application/vnd.github.v3+json, application/json;q=0.9, text/html;q=0.8, */*;q=0.5",
    }
    if settings.github_token is not None:
        headers["Authorization"] = f"token {settings.github_token.get_secret_value()}"
    return headers


async def create_http_client(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Create shared async client with predictable defaults."""

    return httpx.AsyncClient(
        transport=transport,
        http2=True,
        timeout=httpx.Timeout(
            connect=5.0,
            read=settings.request_timeout,
            write=10.0,
            pool=10.0,
        ),
        limits=httpx.Limits(
            max_connections=max(10, settings.concurrency),
            max_keepalive_connections=max(5, settings.concurrency // 2),
            keepalive_expiry=30.0,
        ),
        headers=_default_headers(settings),
        follow_redirects=True,
    )


@retry(
    retry=retry_if_exception_type((httpx.TransportError, httpx.TimeoutException, RetryableStatusError)),
    wait=wait_exponential(multiplier=1, min=1, max=10) + wait_random(0, 1),
    stop=stop_after_attempt(3),
    before_sleep=_log_before_sleep,
    reraise=True,
)
async def fetch_with_retry(
    client: httpx.AsyncClient,
    ctx: RequestContext,
    url: str,
) -> httpx.Response:
    """Rate-limited resilient request."""

    async with ctx.get_limiter():
        response = await client.get(url)
        ctx.monitor.push_response(response)
        if response.status_code in RETRYABLE_STATUSES:
            status = response.status_code
            await response.aclose()
            raise RetryableStatusError(status)
        return response


async def fetch_json(client: httpx.AsyncClient, ctx: RequestContext, url: str) -> Any:
    """Fetch a JSON document (object or array) with retries, the response cache and fail-fast on non-2xx."""

    if ctx.cache is not None:
        cached = ctx.cache.get(url)
        if cached is not None:
            return cached

    response = await fetch_with_retry(client, ctx, url)
    response.raise_for_status()
    try:
        payload = response.json()
    except ValueError as exc:
        raise SoftErrorDetected(f"Invalid JSON payload from {url}") from exc

    if ctx.cache is not None:
        ctx.cache.set(url, payload)
    return payload


async def fetch_json_list(client: httpx.AsyncClient, ctx: RequestContext, url: str) -> list[Any]:
    """Fetch a JSON array; any other top-level shape is a soft error."""

    payload = await fetch_json(client, ctx, url)
    if not isinstance(payload, list):
        raise SoftErrorDetected(f"Expected array JSON payload from {url}")
    return payload


async def fetch_text(client: httpx.AsyncClient, ctx: RequestContext, url: str) -> str:
    """Fetch text payload with retries and fail-fast on non-2xx."""

    response = await fetch_with_retry(client, ctx, url)
    response.raise_for_status()
    return response.text


async def probe_content_length(client: httpx.AsyncClient, url: str, *, timeout: float = 5.0) -> int | None:
    """HEAD a download URL and return its Content-Length, or None when unknown.

    Probes are best effort: any transport error or non-2xx status yields None.
    """

    try:
        response = await client.head(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as exc:
        logger.debug("Size probe failed for {}: {}", url, exc)
        return None
    if not response.is_success:
        return None
    return parse_content_length(response.headers.get("content-length"))
