"""Audit and security event logging for Simplehire."""

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request

from simplehire.config import settings

# Configure audit logger
audit_logger = logging.getLogger("simplehire.audit")
audit_logger.setLevel(logging.INFO)

_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

audit_handler = logging.FileHandler(settings.audit_log_file, delay=True)
audit_handler.setFormatter(_formatter)
audit_logger.addHandler(audit_handler)

# Security event logger
security_logger = logging.getLogger("simplehire.security")
security_logger.setLevel(logging.WARNING)

security_handler = logging.FileHandler(settings.security_log_file, delay=True)
security_handler.setFormatter(_formatter)
security_logger.addHandler(security_handler)

logger = logging.getLogger(__name__)


class AuditEventType(str, Enum):
    """Types of audit events."""
    USER_LOGIN = "user_login"
    USER_LOGOUT = "user_logout"
    USER_REGISTRATION = "user_registration"
    TOKEN_REFRESH = "token_refresh"
    PROFILE_VIEW = "profile_view"
    PROFILE_UPDATE = "profile_update"
    ACCOUNT_DELETION = "account_deletion"
    PAYMENT = "payment"
    DOCUMENT_UPLOAD = "document_upload"
    ASSESSMENT = "assessment"
    REFERENCE_CHECK = "reference_check"
    CERTIFICATE_ACCESS = "certificate_access"
    PROCTORING = "proctoring"
    DATA_ACCESS = "data_access"
    AUTHENTICATION_FAILURE = "authentication_failure"


class SecurityEventType(str, Enum):
    """Types of security events."""
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNAUTHORIZED_ACCESS_ATTEMPT = "unauthorized_access_attempt"
    INVALID_WEBHOOK_SIGNATURE = "invalid_webhook_signature"
    MALICIOUS_INPUT_DETECTED = "malicious_input_detected"
    PROCTORING_ALERT = "proctoring_alert"


@dataclass
class AuditEvent:
    """Audit event data structure."""
    event_id: str
    timestamp: str
    event_type: AuditEventType
    user_id: Optional[str]
    user_email: Optional[str]
    ip_address: str
    user_agent: str
    endpoint: str
    method: str
    status_code: Optional[int]
    resource_id: Optional[str]
    resource_type: Optional[str]
    details: Dict[str, Any]
    request_id: Optional[str]


@dataclass
class SecurityEvent:
    """Security event data structure."""
    event_id: str
    timestamp: str
    event_type: SecurityEventType
    severity: str  # LOW, MEDIUM, HIGH, CRITICAL
    ip_address: str
    user_agent: str
    endpoint: str
    method: str
    details: Dict[str, Any]
    user_id: Optional[str]
    blocked: bool
    action_taken: str


def client_ip(request: Request) -> str:
    """Client address, honouring proxy headers."""
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class AuditService:
    """Writes structured audit and security events."""

    def __init__(self):
        self._event_counter = 0

    def _generate_event_id(self) -> str:
        self._event_counter += 1
        timestamp = int(time.time() * 1000000)
        return f"evt_{timestamp}_{self._event_counter}"

    def log_audit_event(
        self,
        event_type: AuditEventType,
        request: Request,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        status_code: Optional[int] = None,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> AuditEvent:
        """Log an audit event."""
        event = AuditEvent(
            event_id=self._generate_event_id(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            event_type=event_type,
            user_id=user_id,
            user_email=user_email,
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent", "unknown"),
            endpoint=str(request.url.path),
            method=request.method,
            status_code=status_code,
            resource_id=resource_id,
            resource_type=resource_type,
            details=details or {},
            request_id=request_id
        )
        audit_logger.info(json.dumps(asdict(event), default=str))
        if settings.debug:
            logger.debug(f"AUDIT: {event_type.value} - User: {user_email} - Endpoint: {request.url.path}")
        return event

    def log_security_event(
        self,
        event_type: SecurityEventType,
        severity: str,
        request: Request,
        details: Dict[str, Any],
        user_id: Optional[str] = None,
        blocked: bool = False,
        action_taken: str = "logged"
    ) -> SecurityEvent:
        """Log a security event; HIGH and CRITICAL events are also raised as alerts."""
        event = SecurityEvent(
            event_id=self._generate_event_id(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            event_type=event_type,
            severity=severity,
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent", "unknown"),
            endpoint=str(request.url.path),
            method=request.method,
            details=details,
            user_id=user_id,
            blocked=blocked,
            action_taken=action_taken
        )
        security_logger.warning(json.dumps(asdict(event), default=str))
        if severity in ("HIGH", "CRITICAL"):
            self._send_security_alert(event)
        return event

    def _send_security_alert(self, event: SecurityEvent):
        alert_message = (
            f"SECURITY ALERT: {event.event_type.value} detected from {event.ip_address} "
            f"at {event.timestamp}. Severity: {event.severity}. "
            f"Details: {json.dumps(event.details, default=str)}"
        )
        security_logger.critical(alert_message)
        audit_logger.critical(alert_message)

    def log_authentication_event(
        self,
        request: Request,
        user_email: str,
        success: bool,
        user_id: Optional[str] = None,
        failure_reason: Optional[str] = None
    ):
        """Log a login attempt; failures are also recorded as security events."""
        event_details = {"success": success, "failure_reason": failure_reason}
        if success:
            self.log_audit_event(
                event_type=AuditEventType.USER_LOGIN,
                request=request,
                user_id=user_id,
                user_email=user_email,
                details=event_details
            )
            return

        self.log_audit_event(
            event_type=AuditEventType.AUTHENTICATION_FAILURE,
            request=request,
            user_email=user_email,
            details=event_details
        )
        self.log_security_event(
            event_type=SecurityEventType.UNAUTHORIZED_ACCESS_ATTEMPT,
            severity="MEDIUM",
            request=request,
            details=event_details
        )


# Global audit service instance
audit_service = AuditService()
