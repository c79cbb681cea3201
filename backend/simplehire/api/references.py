"""Reference check API endpoints for Simplehire."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.database import UserDB
from simplehire.models.verification import (
    ReferenceCreateRequest,
    ReferenceUpdateRequest,
    SubmitReferencesRequest,
)
from simplehire.services.reference_service import reference_service, reference_to_dict
from simplehire.utils.responses import success

router = APIRouter(prefix="/references", tags=["references"])


@router.get("")
async def list_references(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    references = reference_service.list_references(db, current_user.id)
    return success([reference_to_dict(r) for r in references])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_reference(
    reference_request: ReferenceCreateRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Add a referee in draft state.

    A candidate can have at most five references.
    """
    reference = reference_service.create(db, current_user.id, reference_request.model_dump())
    return success(reference_to_dict(reference))


# Declared before the /{reference_id} routes so the literal paths win
@router.get("/summary")
async def reference_summary(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(reference_service.summary(db, current_user.id))


@router.post("/submit")
async def submit_references(
    submit_request: SubmitReferencesRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Send reference requests to the selected referees."""
    result = reference_service.submit(db, current_user, submit_request.referenceIds)
    return success(result, message=f"{result['submitted']} reference request(s) sent")


@router.patch("/{reference_id}")
async def update_reference(
    reference_id: str,
    update_request: ReferenceUpdateRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    changes = update_request.model_dump(exclude_unset=True)
    reference = reference_service.update(db, current_user.id, reference_id, changes)
    return success(reference_to_dict(reference))


@router.delete("/{reference_id}")
async def delete_reference(
    reference_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    reference_service.delete(db, current_user.id, reference_id)
    return success(message="Reference deleted")


@router.post("/{reference_id}/resend")
async def resend_reference(
    reference_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    reference = reference_service.resend(db, current_user, reference_id)
    return success(reference_to_dict(reference), message="Reference request resent")
