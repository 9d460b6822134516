import logging
from typing import Optional, Sequence

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

INSECURE_JWT_SECRET = "dev-secret-please-change"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers for ledger responses.

    Balances, payments and receipts are per-resident data, so API responses are
    marked ``no-store``. Uploaded images under ``cacheable_prefixes`` keep their
    default caching.
    """

    def __init__(
        self,
        app,
        *,
        enable_hsts: bool = True,
        csp: Optional[str] = None,
        cacheable_prefixes: Sequence[str] = ("/uploads",),
    ) -> None:
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.csp = csp
        self.cacheable_prefixes = tuple(cacheable_prefixes)

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        headers = response.headers

        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Referrer-Policy", "same-origin")
        if not request.url.path.startswith(self.cacheable_prefixes):
            headers.setdefault("Cache-Control", "no-store")
        if self.enable_hsts and request.url.scheme == "https":
            headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        if self.csp:
            headers.setdefault("Content-Security-Policy", self.csp)

        return response


def log_security_warnings(jwt_secret: str, using_default_admin_password: bool) -> None:
    if jwt_secret == INSECURE_JWT_SECRET:
        logger.warning("JWT secret is using the insecure default; set JWT_SECRET in the environment.")
    if using_default_admin_password:
        logger.warning("Admin account still uses the default password; change it from the system settings.")
