"""Certificate API endpoints for Simplehire."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.middleware.security import public_certificate_rate_limiter
from simplehire.models.database import UserDB
from simplehire.services.certificate_service import (
    certificate_service,
    certificate_to_dict,
    certificate_url,
)
from simplehire.utils.responses import success

router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.get("")
async def list_certificates(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    certificates = certificate_service.list_for_user(db, current_user.id)
    return success([certificate_to_dict(c) for c in certificates])


@router.get("/public/{certificate_number}", dependencies=[Depends(public_certificate_rate_limiter)])
async def get_public_certificate(certificate_number: str, db: Session = Depends(get_db)):
    """Public certificate page data; 404 unless the certificate is active."""
    return success(certificate_service.get_public(db, certificate_number))


@router.get("/verify/{certificate_number}", dependencies=[Depends(public_certificate_rate_limiter)])
async def verify_certificate(certificate_number: str, db: Session = Depends(get_db)):
    """
    Check whether a certificate number is valid.

    Always answers 200 with ``valid``; unknown and revoked numbers are not errors.
    """
    return success(certificate_service.verify(db, certificate_number))


@router.get("/{certificate_id}")
async def get_certificate(
    certificate_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    certificate = certificate_service.get_owned(db, current_user.id, certificate_id)
    return success(certificate_to_dict(certificate))


@router.post("/{certificate_id}/share")
async def share_certificate(
    certificate_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    certificate = certificate_service.get_owned(db, current_user.id, certificate_id)
    return success({"shareableUrl": certificate_url(certificate.certificate_number)})
