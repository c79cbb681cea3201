"""Certificate issuance and public lookup."""

import logging
import secrets
import string
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from simplehire.config import settings
from simplehire.models.database import CertificateDB, UserDB
from simplehire.models.user import CertificateStatus
from simplehire.utils.errors import AppError, NotFound

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = "SH"
SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 6
MAX_NUMBER_ATTEMPTS = 5


def generate_certificate_number(year: Optional[int] = None) -> str:
    """Return a number like ``SH-2024-7QK2ZP``."""
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{CERTIFICATE_PREFIX}-{year or datetime.utcnow().year}-{suffix}"


def certificate_url(certificate_number: str) -> str:
    return f"{settings.app_url}/certificate/{certificate_number}"


def certificate_to_dict(certificate: CertificateDB) -> Dict[str, Any]:
    return {
        "id": certificate.id,
        "certificateNumber": certificate.certificate_number,
        "productId": certificate.product_id,
        "issueDate": certificate.issue_date,
        "status": certificate.status,
        "skillsData": certificate.skills_data,
        "certificateUrl": certificate_url(certificate.certificate_number),
    }


def public_view(certificate: CertificateDB) -> Dict[str, Any]:
    """Fields safe to show to anyone holding the certificate number."""
    return {
        "certificateNumber": certificate.certificate_number,
        "candidateName": certificate.user.name if certificate.user else None,
        "productId": certificate.product_id,
        "issueDate": certificate.issue_date,
        "status": certificate.status,
        "skillsData": certificate.skills_data,
    }


class CertificateService:
    """Issues certificates and answers public verification queries."""

    def issue(self, db: Session, user: UserDB, product_id: str, skills_data: Optional[Dict[str, Any]] = None) -> CertificateDB:
        """
        Issue a certificate with a fresh unique number.

        Retries number generation when the unique constraint rejects a collision.
        """
        for _ in range(MAX_NUMBER_ATTEMPTS):
            certificate = CertificateDB(
                user_id=user.id,
                product_id=product_id,
                certificate_number=generate_certificate_number(),
                issue_date=datetime.utcnow(),
                status=CertificateStatus.ACTIVE.value,
                skills_data=skills_data or {},
            )
            db.add(certificate)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning("Certificate number collision, retrying")
                continue
            db.refresh(certificate)
            logger.info(f"Issued certificate {certificate.certificate_number} to user {user.id}")
            return certificate
        raise AppError("Could not allocate a certificate number", 500, "CERTIFICATE_ERROR")

    def find_for_product(self, db: Session, user_id: str, product_id: str) -> Optional[CertificateDB]:
        return db.query(CertificateDB).filter(
            CertificateDB.user_id == user_id,
            CertificateDB.product_id == product_id,
            CertificateDB.status == CertificateStatus.ACTIVE.value,
        ).first()

    def list_for_user(self, db: Session, user_id: str) -> List[CertificateDB]:
        return db.query(CertificateDB).filter(
            CertificateDB.user_id == user_id
        ).order_by(CertificateDB.issue_date.desc()).all()

    def get_owned(self, db: Session, user_id: str, certificate_id: str) -> CertificateDB:
        certificate = db.query(CertificateDB).filter(
            CertificateDB.id == certificate_id,
            CertificateDB.user_id == user_id,
        ).first()
        if certificate is None:
            raise NotFound("Certificate not found")
        return certificate

    def get_public(self, db: Session, certificate_number: str) -> Dict[str, Any]:
        certificate = db.query(CertificateDB).filter(
            CertificateDB.certificate_number == certificate_number
        ).first()
        if certificate is None or certificate.status != CertificateStatus.ACTIVE.value:
            raise NotFound("Certificate not found")
        return public_view(certificate)

    def verify(self, db: Session, certificate_number: str) -> Dict[str, Any]:
        """
        Public validity check.

        Unknown, revoked or unreadable certificates yield ``valid: False``;
        this never raises.
        """
        try:
            certificate = db.query(CertificateDB).filter(
                CertificateDB.certificate_number == certificate_number
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Certificate verification lookup failed: {e}")
            db.rollback()
            return {"valid": False}
        if certificate is None or certificate.status != CertificateStatus.ACTIVE.value:
            return {"valid": False}
        return {"valid": True, "certificate": public_view(certificate)}

    def revoke(self, db: Session, certificate: CertificateDB) -> CertificateDB:
        certificate.status = CertificateStatus.REVOKED.value
        db.commit()
        db.refresh(certificate)
        logger.info(f"Revoked certificate {certificate.certificate_number}")
        return certificate


certificate_service = CertificateService()
