"""Skill assessment API endpoints for Simplehire."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.database import UserDB
from simplehire.models.verification import (
    CodingSubmitRequest,
    McqSubmitRequest,
    VoiceCompleteRequest,
    VoiceStartRequest,
)
from simplehire.services.assessment_service import assessment_service
from simplehire.utils.responses import success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["interviews"])


@router.post("/documents")
async def upload_documents(
    resume: Optional[UploadFile] = File(None),
    cover_letter: Optional[UploadFile] = File(None, alias="coverLetter"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Upload the resume and an optional cover letter.

    Args:
        resume: Resume file, required
        cover_letter: Optional cover letter
        current_user: The current authenticated user
        db: Database session

    Returns:
        dict: stored urls and the updated interview progress
    """
    result = await assessment_service.upload_documents(db, current_user, resume, cover_letter)
    return success(result)


@router.post("/start-assessment")
async def start_assessment(
    resume: UploadFile = File(...),
    id_card: Optional[UploadFile] = File(None, alias="idCard"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Parse the resume and open the assessment session."""
    result = await assessment_service.start_assessment(db, current_user, resume, id_card)
    return success(result)


@router.post("/voice/start")
async def start_voice_interview(
    voice_request: Optional[VoiceStartRequest] = None,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    role = voice_request.role if voice_request else None
    return success(assessment_service.start_voice(db, current_user, role))


@router.post("/voice/complete")
async def complete_voice_interview(
    voice_request: VoiceCompleteRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    answers = [answer.model_dump() for answer in voice_request.answers]
    return success(assessment_service.complete_voice(db, current_user, voice_request.sessionId, answers))


@router.get("/mcq")
async def get_mcq_questions(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """MCQ questions for the current session, without their answers."""
    return success(assessment_service.get_mcq(db, current_user))


@router.post("/mcq/submit")
async def submit_mcq(
    mcq_request: McqSubmitRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    answers = [answer.model_dump() for answer in mcq_request.answers]
    return success(assessment_service.submit_mcq(db, current_user, answers))


@router.get("/coding")
async def get_coding_challenges(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(assessment_service.get_coding(db, current_user))


@router.post("/coding/submit")
async def submit_coding(
    coding_request: CodingSubmitRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    result = assessment_service.submit_coding(
        db, current_user, coding_request.challengeId, coding_request.code, coding_request.language
    )
    return success(result)


@router.get("/evaluation")
async def get_evaluation(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(assessment_service.evaluation(db, current_user))


@router.post("/certificate")
async def issue_certificate(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Issue the skill certificate once voice, MCQ and coding are complete."""
    return success(assessment_service.issue_certificate(db, current_user))
