"""Response hardening headers."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

# Public invitation routes carry the raw token in the path
TOKEN_PATH_PREFIX = "/api/v1/invites/t/"

# Swagger UI needs inline scripts and its CDN
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' cdn.jsdelivr.net; "
    "img-src 'self' data: cdn.jsdelivr.net; "
    "frame-ancestors 'none'"
)
API_CSP = "default-src 'none'; frame-ancestors 'none'"

TOKEN_PAGE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
    "Referrer-Policy": "no-referrer",
}


def base_headers(content_security_policy: str) -> dict[str, str]:
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-Permitted-Cross-Domain-Policies": "none",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": content_security_policy,
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Set hardening headers on every response.

    Responses under ``TOKEN_PATH_PREFIX`` are also uncacheable and sent with
    ``Referrer-Policy: no-referrer``, keeping invitation tokens out of shared
    caches and out of the Referer header of outbound links.
    """

    def __init__(self, app: ASGIApp, serve_docs: bool = False):
        super().__init__(app)
        self.headers = base_headers(DOCS_CSP if serve_docs else API_CSP)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)
        if request.url.path.startswith(TOKEN_PATH_PREFIX):
            response.headers.update(TOKEN_PAGE_HEADERS)
        return response
