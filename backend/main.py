# FastAPI main application entry point
import logging
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from simplehire.api import (
    auth,
    certificates,
    id_verification,
    interviews,
    payments,
    proctoring,
    references,
    sessions,
    users,
)
from simplehire.config import get_settings
from simplehire.database import check_database_health, get_db, init_db
from simplehire.middleware.audit import AuditMiddleware
from simplehire.middleware.security import (
    InputValidationMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from simplehire.services.document_verification import document_verification_service
from simplehire.services.storage_service import storage_service
from simplehire.utils.errors import register_exception_handlers

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"
STARTED_AT = time.monotonic()

app = FastAPI(title="Simplehire API", version=VERSION)

register_exception_handlers(app)

# Middleware (order matters - add from innermost to outermost)
# Audit logging (innermost, sees the final status of every routed request)
app.add_middleware(AuditMiddleware)

# Rate limiting
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds
)

# Input validation
app.add_middleware(InputValidationMiddleware)

# Security headers and HTTPS enforcement
app.add_middleware(SecurityHeadersMiddleware, enforce_https=settings.enforce_https)

# Configure CORS; credentials are needed for the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

# Include routers
API_PREFIX = "/api"
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(payments.products_router, prefix=API_PREFIX)
app.include_router(payments.router, prefix=API_PREFIX)
app.include_router(interviews.router, prefix=API_PREFIX)
app.include_router(id_verification.router, prefix=API_PREFIX)
app.include_router(references.router, prefix=API_PREFIX)
app.include_router(certificates.router, prefix=API_PREFIX)
app.include_router(sessions.router, prefix=API_PREFIX)
app.include_router(proctoring.router, prefix=API_PREFIX)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    init_db()
    logger.info(f"Simplehire API {VERSION} started ({settings.environment})")


@app.get("/health")
async def health(db: Session = Depends(get_db)):
    """Liveness plus the availability of each backing service; 503 when the database is down."""
    database_ok = check_database_health(db)
    body = {
        "success": database_ok,
        "message": "Simplehire API is running" if database_ok else "Database unavailable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "version": VERSION,
        "uptime": round(time.monotonic() - STARTED_AT, 2),
        "services": {
            "database": database_ok,
            "storage": storage_service.provider,
            "payments": settings.payments_configured,
            "email": settings.email_configured,
            "documentVerification": document_verification_service.configured,
        },
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=body)


@app.get("/")
async def root():
    return {"success": True, "message": "Simplehire API is running", "docs": "/docs"}
