"""ID and visa verification API endpoints for Simplehire."""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.database import UserDB
from simplehire.services.id_verification_service import (
    DOCUMENT_ID,
    DOCUMENT_SELFIE,
    DOCUMENT_VISA,
    FOLDERS,
    id_verification_service,
)
from simplehire.services.storage_service import IMAGE_MIME_TYPES, storage_service
from simplehire.utils.responses import success

router = APIRouter(prefix="/id-verification", tags=["id-verification"])


async def _upload(db: Session, user: UserDB, document: str, file: Optional[UploadFile]) -> dict:
    content = await storage_service.read_upload(file, IMAGE_MIME_TYPES)
    stored = storage_service.save(content, file.filename, file.content_type, FOLDERS[document])
    record = id_verification_service.record_upload(db, user, document, stored)
    return {"url": stored.url, "status": record.status, "verificationId": record.id}


@router.post("/id")
async def upload_id_document(
    file: Optional[UploadFile] = File(None),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upload a government ID (JPEG, PNG, WebP or PDF, 10MB max)."""
    return success(await _upload(db, current_user, DOCUMENT_ID, file))


@router.post("/visa")
async def upload_visa_document(
    file: Optional[UploadFile] = File(None),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(await _upload(db, current_user, DOCUMENT_VISA, file))


@router.post("/selfie")
async def upload_selfie(
    file: Optional[UploadFile] = File(None),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(await _upload(db, current_user, DOCUMENT_SELFIE, file))


@router.post("/submit")
async def submit_verification(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit the uploaded documents for review.

    Requires an ID document and a selfie. The automatic check, when
    available, can verify immediately; otherwise the submission waits for
    manual review.
    """
    return success(id_verification_service.submit(db, current_user))


@router.get("/status")
async def get_verification_status(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(id_verification_service.get_status(db, current_user.id))
