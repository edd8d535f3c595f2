"""
Request context middleware.

WHAT: Middleware that captures per-request context (request ID, client IP,
user agent) and makes it available throughout the request lifecycle.

WHY: Two consumers need it without having the Request object at hand:
- ResponseService stamps ip_address and user_agent into a submitted
  response's metadata and detects the device type of new sessions
- The logging filter stamps the request ID onto every log line

HOW: Stores the context in request.state and in a ContextVar, so services
and the logging filter can read it from anywhere in the same async task.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    """
    Request-scoped context data.

    Fields:
    - request_id: Identifier for log correlation (client supplied or UUID4)
    - ip_address: Client's real IP (considering proxies)
    - user_agent: Client's User-Agent, used for device detection
    - path: Request path
    - method: HTTP method
    """

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


# ContextVar gives each concurrent request its own isolated context
_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """
    Get the current request context.

    Returns:
        RequestContext if within a request, None otherwise (scheduler jobs,
        tests calling services directly)
    """
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the real client IP address from a request.

    HOW: Checks headers in order of trust:
    1. X-Real-IP (set by nginx and similar proxies)
    2. X-Forwarded-For (first entry is the original client)
    3. request.client.host (direct connection IP)

    Security Note:
        These headers can be spoofed unless a trusted proxy overwrites them.
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        # Format: "client, proxy1, proxy2"
        return x_forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    """Extract the User-Agent header, or None if absent."""
    return request.headers.get("User-Agent")


def get_request_id(request: Request) -> str:
    """
    Reuse a sane client-supplied request ID, otherwise generate one.

    WHY: A gateway in front of the service may already have assigned an ID;
    keeping it lets logs be joined across both.
    """
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= 128 and supplied.isprintable():
        return supplied
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures and stores request context.

    Also logs one line per request with status and duration at DEBUG level.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and add context.

        Returns:
            Response with the X-Request-ID header added
        """
        context = RequestContext(
            request_id=get_request_id(request),
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id
            logger.debug(
                f"{context.method} {context.path} -> {response.status_code} "
                f"in {(time.perf_counter() - started) * 1000:.1f}ms"
            )
            return response
        finally:
            _request_context.reset(token)
