"""Client abstractions."""

from .cache import ResponseCache
from .http import RateLimitMonitor, RequestContext, build_request_context, create_http_client

__all__ = ["RateLimitMonitor", "RequestContext", "ResponseCache", "build_request_context", "create_http_client"]
