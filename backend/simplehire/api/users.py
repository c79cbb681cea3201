"""Current-user API endpoints for Simplehire."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from simplehire.api.auth import clear_session_cookie
from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.auth import ChangePasswordRequest
from simplehire.models.database import UserDB
from simplehire.models.user import (
    InterviewProgressUpdate,
    IdVerificationStatusUpdate,
    ReferenceCheckStatusUpdate,
    UpdateProfileRequest,
    UserDataResponse,
)
from simplehire.services.auth import auth_service
from simplehire.services.user_service import user_service
from simplehire.utils.responses import success

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/data")
async def get_user_data(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the dashboard record: products, step flags, statuses, references and progress.

    Args:
        current_user: The current authenticated user
        db: Database session

    Returns:
        UserDataResponse wrapped in the success envelope
    """
    data = UserDataResponse(**user_service.get_user_data(db, current_user))
    return success(data.model_dump(mode="json"))


@router.patch("/me")
async def update_profile(
    update_request: UpdateProfileRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    changes = update_request.model_dump(exclude_unset=True)
    user = user_service.update_profile(db, current_user, changes)
    return success(auth_service.to_profile(user).model_dump(mode="json"))


@router.get("/me/products")
async def get_products(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(user_service.get_products(db, current_user))


@router.get("/me/progress")
async def get_progress(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(user_service.get_progress(db, current_user))


@router.patch("/me/interview-progress")
async def update_interview_progress(
    progress_update: InterviewProgressUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Merge step flags into the stored progress; unknown keys are rejected."""
    updates = progress_update.model_dump(exclude_unset=True, exclude_none=True)
    progress = user_service.update_interview_progress(db, current_user, updates)
    return success({"interviewProgress": progress})


@router.patch("/me/id-verification-status")
async def update_id_verification_status(
    status_update: IdVerificationStatusUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    status = user_service.set_id_verification_status(db, current_user, status_update.status)
    return success({"idVerificationStatus": status})


@router.patch("/me/reference-check-status")
async def update_reference_check_status(
    status_update: ReferenceCheckStatusUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    status = user_service.set_reference_check_status(db, current_user, status_update.status)
    return success({"referenceCheckStatus": status})


@router.post("/me/password")
async def change_password(
    password_request: ChangePasswordRequest,
    response: Response,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the password; every refresh token of the user is revoked."""
    user_service.change_password(db, current_user, password_request.currentPassword, password_request.newPassword)
    clear_session_cookie(response)
    return success(message="Password changed. Please sign in again.")


@router.delete("/me")
async def delete_account(
    response: Response,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete the account and everything it owns."""
    user_service.delete_account(db, current_user)
    clear_session_cookie(response)
    return success(message="Account deleted")
