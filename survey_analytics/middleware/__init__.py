"""
Middleware package.

WHY: Middleware provides cross-cutting concerns like security headers and
request context that apply to all requests.
"""

from survey_analytics.middleware.security_headers import SecurityHeadersMiddleware
from survey_analytics.middleware.request_context import (
    RequestContextMiddleware,
    get_request_context,
    get_client_ip,
    get_user_agent,
    get_request_id,
    RequestContext,
)

__all__ = [
    # Security
    "SecurityHeadersMiddleware",
    # Request context
    "RequestContextMiddleware",
    "get_request_context",
    "get_client_ip",
    "get_user_agent",
    "get_request_id",
    "RequestContext",
]
