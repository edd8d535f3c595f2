"""
Tests for security headers middleware.

WHY: API responses carry respondent answers; they must not be framed,
sniffed or cached by browsers and proxies.
"""

import pytest
from httpx import AsyncClient

from survey_analytics.middleware.security_headers import (
    API_CONTENT_SECURITY_POLICY,
    SECURITY_HEADERS,
)


class TestSecurityHeadersMiddleware:
    """Test security headers middleware."""

    @pytest.mark.asyncio
    async def test_common_headers_present(self, client: AsyncClient):
        response = await client.get("/health")

        for header, value in SECURITY_HEADERS.items():
            assert response.headers[header] == value
        assert "max-age=31536000" in response.headers["Strict-Transport-Security"]

    @pytest.mark.asyncio
    async def test_csp_on_non_docs_paths(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers["Content-Security-Policy"] == API_CONTENT_SECURITY_POLICY
        # Not under /api, so caching is left alone
        assert "Cache-Control" not in response.headers

    @pytest.mark.asyncio
    async def test_api_responses_not_cached(self, client: AsyncClient):
        """
        WHY: Error responses are cached too if no-store is missing.
        """
        response = await client.get("/api/analytics/kpis")

        assert response.status_code == 401
        assert "no-store" in response.headers["Cache-Control"]
        assert response.headers["Pragma"] == "no-cache"

    @pytest.mark.asyncio
    async def test_docs_skip_strict_csp(self, client: AsyncClient):
        """
        WHY: Swagger UI loads scripts from a CDN, which default-src 'none'
        would block.
        """
        response = await client.get("/api/docs")

        assert response.status_code == 200
        assert "Content-Security-Policy" not in response.headers
        assert response.headers["X-Frame-Options"] == "DENY"
