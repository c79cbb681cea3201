"""Product catalog and payment API endpoints for Simplehire."""

import logging

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.database import UserDB
from simplehire.models.verification import ConfirmPaymentRequest, CreatePaymentIntentRequest
from simplehire.services.audit_service import SecurityEventType, audit_service
from simplehire.services.catalog import PRODUCTS, get_product
from simplehire.services.payment_service import payment_service
from simplehire.utils.errors import AppError, NotFound
from simplehire.utils.responses import success

logger = logging.getLogger(__name__)

products_router = APIRouter(prefix="/products", tags=["products"])
router = APIRouter(prefix="/payments", tags=["payments"])


@products_router.get("")
async def list_products():
    return success(PRODUCTS)


@products_router.get("/{product_id}")
async def get_product_by_id(product_id: str):
    product = get_product(product_id)
    if product is None:
        raise NotFound("Product not found")
    return success(product)


@router.post("/create-intent")
async def create_payment_intent(
    intent_request: CreatePaymentIntentRequest,
    current_user: UserDB = Depends(get_current_user)
):
    """
    Create a Stripe PaymentIntent for a product.

    Returns:
        dict: clientSecret for the client SDK and the paymentIntentId
    """
    return success(payment_service.create_intent(current_user.id, intent_request.productId))


@router.post("/confirm")
async def confirm_payment(
    confirm_request: ConfirmPaymentRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Confirm a succeeded payment and grant the product.

    Confirming the same payment intent again returns the stored result.
    """
    result = payment_service.confirm(
        db, current_user.id, confirm_request.paymentIntentId, confirm_request.productId
    )
    return success(result)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default="", alias="Stripe-Signature"),
    db: Session = Depends(get_db)
):
    """Stripe webhook; the raw body is needed for signature verification."""
    payload = await request.body()
    try:
        result = payment_service.handle_webhook(db, payload, stripe_signature)
    except AppError as e:
        if e.code == "INVALID_SIGNATURE":
            audit_service.log_security_event(
                event_type=SecurityEventType.INVALID_WEBHOOK_SIGNATURE,
                severity="HIGH",
                request=request,
                details={"reason": e.message},
                blocked=True,
                action_taken="request_rejected"
            )
        raise
    return success(result)


@router.get("/history")
async def payment_history(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success(payment_service.history(db, current_user.id))
