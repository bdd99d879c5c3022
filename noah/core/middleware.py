"""HTTP middleware: request context, size limit, host allow list, security headers."""

import ipaddress
import secrets
import time
from typing import Callable, Iterable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from noah.core.logging import get_logger, request_context

logger = get_logger(__name__)

DEFAULT_ALLOWED_HOSTS = ("localhost", "127.0.0.1")

# X-Forwarded-For is only believed when the direct peer is on one of these
TRUSTED_PROXY_NETS = tuple(
    ipaddress.ip_network(net) for net in ("127.0.0.0/8", "::1/128", "10.0.0.0/8", "172.16.0.0/12")
)

# Saved tools are rendered inside an iframe by the UI
FRAMEABLE_PREFIXES = ("/api/filesystem/serve",)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def _reject(status_code: int, code: str, message: str) -> JSONResponse:
    """Envelope-shaped error for requests stopped before routing."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "error": {"code": code, "message": message}},
    )


def get_client_ip(request: Request) -> str:
    """Client address used for session fingerprinting."""
    direct_ip = request.client.host if request.client else None
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if not (forwarded and direct_ip):
        return direct_ip or "unknown"

    try:
        peer = ipaddress.ip_address(direct_ip)
    except ValueError:
        return direct_ip
    return forwarded if any(peer in net for net in TRUSTED_PROXY_NETS) else direct_ip


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id and path for log records and time each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or secrets.token_hex(8)
        token = request_context.set({"request_id": request_id, "path": request.url.path})
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            request_context.reset(token)

        logger.info(
            "Request handled",
            data={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
                "request_id": request_id,
            },
        )
        response.headers["X-Request-ID"] = request_id
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Refuse bodies whose Content-Length is above ``max_bytes``."""

    def __init__(self, app, max_bytes: int = 1_048_576):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length")
        if declared is None:
            return await call_next(request)

        if not declared.isdigit():
            return _reject(400, "E4000", "Invalid Content-Length")
        if int(declared) > self.max_bytes:
            logger.warning(
                "Request body too large",
                data={"content_length": int(declared), "max_bytes": self.max_bytes},
            )
            return _reject(413, "E4130", "Request body too large")
        return await call_next(request)


def host_matches(host: str, patterns: Iterable[str]) -> bool:
    """Match a Host header (port ignored) against exact names, ``*`` or ``*.domain``."""
    hostname = host.rsplit(":", 1)[0] if not host.endswith("]") else host
    for pattern in patterns:
        if pattern == "*" or hostname == pattern:
            return True
        if pattern.startswith("*.") and hostname.endswith(pattern[1:]):
            return True
    return False


class TrustedHostMiddleware(BaseHTTPMiddleware):
    """Reject requests whose Host header is not in the allow list."""

    def __init__(self, app, allowed_hosts: Optional[List[str]] = None):
        super().__init__(app)
        self.allowed_hosts = list(allowed_hosts or DEFAULT_ALLOWED_HOSTS)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        host = request.headers.get("host", "")
        if host and not host_matches(host, self.allowed_hosts):
            logger.warning("Host not allowed", data={"host": host})
            return _reject(400, "E1001", "Host header not authorized")
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline security headers; saved-tool files may be framed by the same origin."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)

        framing = "SAMEORIGIN" if request.url.path.startswith(FRAMEABLE_PREFIXES) else "DENY"
        response.headers.setdefault("X-Frame-Options", framing)
        return response
