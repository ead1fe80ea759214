"""
Security Middleware for FileHub.

- Security headers on every response (HSTS in production only)
- HTTP to HTTPS redirect in production
"""

import logging
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# The API only returns JSON and stored objects; nothing needs scripts or frames
CONTENT_SECURITY_POLICY = (
    "default-src 'none'; "
    "img-src 'self' data:; "
    "media-src 'self'; "
    "frame-ancestors 'none'; "
    "base-uri 'none'; "
    "form-action 'none'"
)

PERMISSIONS_POLICY = (
    "geolocation=(), microphone=(), camera=(), payment=(), usb=()"
)

BASE_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Permissions-Policy": PERMISSIONS_POLICY,
}

HSTS_HEADER = "max-age=31536000; includeSubDomains"

# =============================================================================
# Security Headers Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses without overriding ones already set."""

    def __init__(self, app: ASGIApp, environment: str = "development"):
        super().__init__(app)
        self.is_production = environment == "production"

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        for header, value in BASE_SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)

        if self.is_production:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER

        return response

# =============================================================================
# HTTPS Redirect Middleware
# =============================================================================

class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """
    Redirect plain HTTP requests to HTTPS.

    Honors X-Forwarded-Proto so a TLS-terminating proxy does not cause a
    redirect loop.
    """

    def __init__(self, app: ASGIApp, environment: str = "development"):
        super().__init__(app)
        self.is_production = environment == "production"

    async def dispatch(self, request: Request, call_next):
        if self.is_production:
            scheme = request.headers.get("x-forwarded-proto", request.url.scheme)
            if scheme == "http":
                https_url = request.url.replace(scheme="https")
                logger.info(f"Redirecting HTTP to HTTPS: {request.url.path}")
                return Response(status_code=301, headers={"Location": str(https_url)})

        return await call_next(request)
