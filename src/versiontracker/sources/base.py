"""Source provider contract and the shared early-stop pagination helper."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Container  # noqa: TC003
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from pydantic import ValidationError

from versiontracker.clients.http import (
    RequestContext,
    RetryableStatusError,
    SoftErrorDetected,
    fetch_json,
    fetch_json_list,
    fetch_text,
)

if TYPE_CHECKING:
    from versiontracker.models.release import FetchResult
    from versiontracker.settings import Settings

# Failures a provider converts into SourceFetchError at its boundary.
PROVIDER_ERRORS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    RetryableStatusError,
    SoftErrorDetected,
    ValidationError,
    AttributeError,
    LookupError,
    TypeError,
    ValueError,
)


class SourceFetchError(Exception):
    """An upstream could not be checked: network error, HTTP error status, timeout or malformed payload."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


def describe_error(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or type(exc).__name__


def dig(payload: Any, *keys: str) -> Any:
    """Walk nested JSON objects; None as soon as a level is missing or not an object."""

    for key in keys:
        if not isinstance(payload, dict):
            return None
        payload = payload.get(key)
    return payload


@dataclass
class SourceSession:
    """Everything a provider needs to talk to upstreams during one run."""

    client: httpx.AsyncClient
    ctx: RequestContext
    settings: Settings

    async def get_json(self, url: str) -> Any:
        return await fetch_json(self.client, self.ctx, url)

    async def get_json_list(self, url: str) -> list[Any]:
        return await fetch_json_list(self.client, self.ctx, url)

    async def get_text(self, url: str) -> str:
        return await fetch_text(self.client, self.ctx, url)

    def github_url(self, path: str) -> str:
        return f"{self.settings.github_api_url.rstrip('/')}/{path.lstrip('/')}"


class SourceProvider(ABC):
    """Fetches release data for one tracked software from one upstream.

    ``fetch`` returns only versions absent from ``existing``; reconciling with
    history is the merge engine's job. A provider that cannot check its
    upstream raises :class:`SourceFetchError`; an empty result means "nothing
    new".
    """

    @property
    @abstractmethod
    def label(self) -> str:
        """Short upstream description used in logs and errors."""

    @abstractmethod
    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        """Fetch new release records. May raise any upstream or parsing error."""

    async def fetch(self, session: SourceSession, existing: set[str]) -> FetchResult:
        try:
            return await self.collect(session, existing)
        except SourceFetchError:
            raise
        except PROVIDER_ERRORS as exc:
            raise SourceFetchError(self.label, describe_error(exc)) from exc
        except Exception as exc:
            logger.opt(exception=exc).debug("{}: unexpected failure", self.label)
            raise SourceFetchError(self.label, describe_error(exc)) from exc


@dataclass
class PageScan:
    """New items found by :func:`paginate_new_items`, newest first."""

    items: list[tuple[str, Any]] = field(default_factory=list)
    pages: int = 0
    stopped_early: bool = False


async def paginate_new_items(
    fetch_page: Callable[[int], Awaitable[list[Any]]],
    select: Callable[[Any], str | None],
    existing: Container[str],
    *,
    page_size: int,
    max_consecutive_known: int = 20,
    page_delay: float = 0.0,
) -> PageScan:
    """Walk a newest-first paginated listing, collecting items whose version is not yet known.

    ``select`` maps a raw item to its version identity, or None to skip it;
    skipped items neither count as known nor reset the known-run counter.
    Pagination ends on an empty page, on a page shorter than ``page_size``,
    or once ``max_consecutive_known`` known versions are seen in a row.
    """

    scan = PageScan()
    seen: set[str] = set()
    consecutive_known = 0
    page = 1
    while True:
        raw_items = await fetch_page(page)
        scan.pages = page
        if not raw_items:
            break
        for raw in raw_items:
            version = select(raw)
            if version is None:
                continue
            if version in existing:
                consecutive_known += 1
                if consecutive_known >= max_consecutive_known:
                    logger.info("Stopping after {} consecutive known versions (page {})", consecutive_known, page)
                    scan.stopped_early = True
                    return scan
                continue
            consecutive_known = 0
            if version in seen:
                continue
            seen.add(version)
            scan.items.append((version, raw))
        if len(raw_items) < page_size:
            break
        page += 1
        if page_delay > 0:
            await asyncio.sleep(page_delay)
    return scan
