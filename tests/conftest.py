"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from aiolimiter import AsyncLimiter

from tests.factories import make_settings
from versiontracker.clients.cache import ResponseCache
from versiontracker.clients.http import RateLimitMonitor, RequestContext
from versiontracker.settings import Settings


@pytest.fixture
def request_context() -> RequestContext:
    return RequestContext(
        limiter=AsyncLimiter(100, 1),
        monitor=RateLimitMonitor(window=10, threshold_percent=50.0),
        cache=ResponseCache(ttl_seconds=0),
    )


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    return tmp_path / "versions"


@pytest.fixture
def settings(tmp_output_dir: Path, tmp_path: Path) -> Settings:
    return make_settings(output_dir=tmp_output_dir, api_dir=tmp_path / "api" / "v1")


@pytest.fixture
def no_retry_wait():
    """Make tenacity retries immediate for the duration of a test."""
    from tenacity import wait_none

    from versiontracker.clients.http import fetch_with_retry

    original_wait = fetch_with_retry.retry.wait
    fetch_with_retry.retry.wait = wait_none()
    yield
    fetch_with_retry.retry.wait = original_wait
