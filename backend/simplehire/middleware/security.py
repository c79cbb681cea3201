"""Security middleware and rate limiting for Simplehire."""

import logging
import re
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from simplehire.config import settings
from simplehire.services.audit_service import SecurityEventType, audit_service, client_ip
from simplehire.utils.errors import RateLimited, error_response

# Configure logging
logger = logging.getLogger(__name__)


class SlidingWindow:
    """Per-key request timestamps over a sliding time window."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.windows: Dict[str, Deque[float]] = defaultdict(deque)

    def _cleanup(self, key: str, now: float):
        cutoff = now - self.window_seconds
        window = self.windows[key]
        while window and window[0] <= cutoff:
            window.popleft()

    def hit(self, key: str, now: float = None) -> bool:
        """Record a request; False when the key is already at its limit."""
        now = time.time() if now is None else now
        self._cleanup(key, now)
        if len(self.windows[key]) >= self.max_requests:
            return False
        self.windows[key].append(now)
        return True

    def remaining(self, key: str) -> int:
        return max(0, self.max_requests - len(self.windows[key]))

    def retry_after(self, key: str, now: float = None) -> int:
        now = time.time() if now is None else now
        window = self.windows[key]
        if not window:
            return 0
        return max(1, int(window[0] + self.window_seconds - now))

    def reset(self):
        self.windows.clear()


class RateLimiter:
    """
    Route dependency limiting requests per client IP.

    Usage: ``Depends(login_rate_limiter)`` on the protected route.
    """

    def __init__(self, name: str, max_requests: int, window_seconds: int):
        self.name = name
        self.window = SlidingWindow(max_requests, window_seconds)

    async def __call__(self, request: Request):
        ip = client_ip(request)
        if not self.window.hit(ip):
            logger.warning(f"{self.name} rate limit exceeded for IP: {ip}")
            audit_service.log_security_event(
                event_type=SecurityEventType.RATE_LIMIT_EXCEEDED,
                severity="MEDIUM",
                request=request,
                details={"limiter": self.name, "limit": self.window.max_requests},
                blocked=True,
                action_taken="request_blocked"
            )
            raise RateLimited(retry_after=self.window.retry_after(ip))

    def reset(self):
        self.window.reset()


login_rate_limiter = RateLimiter(
    "login", settings.login_rate_limit_max, settings.rate_limit_window_seconds
)
public_certificate_rate_limiter = RateLimiter(
    "public-certificate", settings.public_cert_rate_limit_max, settings.rate_limit_window_seconds
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    def __init__(self, app, enforce_https: bool = False):
        super().__init__(app)
        self.enforce_https = enforce_https

    async def dispatch(self, request: Request, call_next):
        if self.enforce_https and request.url.scheme != "https" and not self._is_local_request(request):
            https_url = request.url.replace(scheme="https")
            return RedirectResponse(url=str(https_url), status_code=301)

        response = await call_next(request)
        self._add_security_headers(response)
        return response

    def _is_local_request(self, request: Request) -> bool:
        host = request.client.host if request.client else ""
        return host in ["127.0.0.1", "localhost", "::1", "testclient"]

    def _add_security_headers(self, response: Response):
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Camera and microphone are used by the interview client, not by the API
        response.headers["Permissions-Policy"] = "geolocation=(), payment=(), usb=()"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global per-IP rate limit over a sliding window."""

    def __init__(self, app, max_requests: int = 100, window_seconds: int = 900, exempt_paths=("/health",)):
        super().__init__(app)
        self.window = SlidingWindow(max_requests, window_seconds)
        self.exempt_paths = set(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths or request.method == "OPTIONS":
            return await call_next(request)

        ip = client_ip(request)
        if not self.window.hit(ip):
            logger.warning(f"Rate limit exceeded for IP: {ip}")
            # Raising here would bypass the exception handlers
            return error_response(
                status.HTTP_429_TOO_MANY_REQUESTS,
                "Too many requests, please try again later",
                "RATE_LIMIT_EXCEEDED",
                headers={"Retry-After": str(self.window.retry_after(ip))},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.window.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(self.window.remaining(ip))
        return response


class InputValidationMiddleware(BaseHTTPMiddleware):
    """Rejects path traversal and script injection in the path and query string."""

    def __init__(self, app):
        super().__init__(app)
        self.xss_patterns = [
            r"<script[^>]*>.*?</script>",
            r"javascript:",
            r"<iframe[^>]*>",
        ]
        self.path_traversal_patterns = [
            r"\.\./",
            r"\.\.\\",
            r"%2e%2e%2f",
            r"%2e%2e\\",
        ]

    async def dispatch(self, request: Request, call_next):
        if self._matches(request.url.path, self.path_traversal_patterns):
            logger.warning(f"Path traversal attempt detected: {request.url.path}")
            return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request path", "INVALID_REQUEST")

        for key, value in request.query_params.items():
            if self._matches(value, self.xss_patterns + self.path_traversal_patterns):
                logger.warning(f"Malicious query parameter detected: {key}")
                audit_service.log_security_event(
                    event_type=SecurityEventType.MALICIOUS_INPUT_DETECTED,
                    severity="MEDIUM",
                    request=request,
                    details={"parameter": key},
                    blocked=True,
                    action_taken="request_blocked"
                )
                return error_response(status.HTTP_400_BAD_REQUEST, "Invalid query parameter", "INVALID_REQUEST")

        return await call_next(request)

    def _matches(self, text: str, patterns: list) -> bool:
        return any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns)
