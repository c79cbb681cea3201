"""Audit middleware for automatic request logging."""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from simplehire.services.audit_service import AuditEventType, SecurityEventType, audit_service


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs every request as an audit event and tags the response for tracing."""

    def __init__(self, app):
        super().__init__(app)
        # Endpoints that are not logged
        self.excluded_paths = {"/", "/health", "/docs", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        # Generate request ID for tracing
        request_id = f"req_{int(time.time() * 1000000)}"
        request.state.request_id = request_id

        response = await call_next(request)
        process_time = time.time() - start_time

        if request.url.path not in self.excluded_paths:
            # Set by the auth dependency during the request
            user_id = getattr(request.state, "user_id", None)
            audit_service.log_audit_event(
                event_type=self._determine_event_type(request.url.path, request.method),
                request=request,
                user_id=user_id,
                user_email=getattr(request.state, "user_email", None),
                status_code=response.status_code,
                details={"processing_time_ms": round(process_time * 1000, 2)},
                request_id=request_id
            )
            if response.status_code in (401, 403):
                self._log_access_failure(request, response, user_id)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = str(round(process_time * 1000, 2))
        return response

    def _determine_event_type(self, path: str, method: str) -> AuditEventType:
        """Determine audit event type based on endpoint and method."""
        if "/auth/login" in path or "/auth/google" in path:
            return AuditEventType.USER_LOGIN
        elif "/auth/logout" in path:
            return AuditEventType.USER_LOGOUT
        elif "/auth/signup" in path:
            return AuditEventType.USER_REGISTRATION
        elif "/auth/refresh" in path:
            return AuditEventType.TOKEN_REFRESH
        elif "/users/me" in path:
            if method == "GET":
                return AuditEventType.PROFILE_VIEW
            elif method == "DELETE":
                return AuditEventType.ACCOUNT_DELETION
            return AuditEventType.PROFILE_UPDATE
        elif "/payments" in path:
            return AuditEventType.PAYMENT
        elif "/id-verification" in path:
            return AuditEventType.DOCUMENT_UPLOAD
        elif "/interviews" in path:
            return AuditEventType.ASSESSMENT
        elif "/references" in path:
            return AuditEventType.REFERENCE_CHECK
        elif "/certificates" in path:
            return AuditEventType.CERTIFICATE_ACCESS
        elif "/proctoring" in path:
            return AuditEventType.PROCTORING
        return AuditEventType.DATA_ACCESS

    def _log_access_failure(self, request: Request, response: Response, user_id: Optional[str]):
        audit_service.log_security_event(
            event_type=SecurityEventType.UNAUTHORIZED_ACCESS_ATTEMPT,
            severity="HIGH" if response.status_code == 403 else "MEDIUM",
            request=request,
            details={"status_code": response.status_code, "endpoint": request.url.path},
            user_id=user_id
        )
