"""Stripe payments and product entitlement."""

import logging
from typing import Any, Dict, List, Optional

import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from simplehire.config import settings
from simplehire.models.database import PaymentDB, UserDataDB
from simplehire.models.user import default_interview_progress
from simplehire.services.catalog import get_product, grant_products
from simplehire.utils.errors import AppError, Forbidden, NotFound, PaymentFailed, ServiceUnavailable, ValidationFailed

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"


class StripeGateway:
    """Thin wrapper over the Stripe SDK so it can be swapped in tests."""

    def __init__(self, api_key: str = "", webhook_secret: str = ""):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _require(self):
        if not self.configured:
            raise ServiceUnavailable("Payments are not configured", code="PAYMENTS_NOT_CONFIGURED")
        stripe.api_key = self.api_key

    def create_payment_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> Any:
        self._require()
        return stripe.PaymentIntent.create(
            amount=amount,
            currency=currency,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
        )

    def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        self._require()
        return stripe.PaymentIntent.retrieve(payment_intent_id)

    def construct_event(self, payload: bytes, signature: str) -> Any:
        if not self.webhook_secret:
            raise ServiceUnavailable("Stripe webhook secret is not configured", code="PAYMENTS_NOT_CONFIGURED")
        return stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=self.webhook_secret)


class PaymentService:
    """Creates payment intents and applies entitlements exactly once per intent."""

    def __init__(self, gateway: Optional[StripeGateway] = None):
        self.gateway = gateway or StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)

    def create_intent(self, user_id: str, product_id: str) -> Dict[str, str]:
        """
        Create a Stripe PaymentIntent for a catalog product.

        Args:
            user_id: Purchasing user
            product_id: Catalog product id

        Returns:
            dict: clientSecret and paymentIntentId

        Raises:
            NotFound: Unknown product
        """
        product = get_product(product_id)
        if product is None:
            raise NotFound("Product not found")
        try:
            intent = self.gateway.create_payment_intent(
                amount=product["price"],
                currency=product["currency"],
                metadata={"userId": user_id, "productId": product_id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe intent creation failed for user {user_id}: {e}")
            raise AppError("Payment provider error", 502, "PAYMENT_PROVIDER_ERROR")
        logger.info(f"Created payment intent {intent['id']} for user {user_id}, product {product_id}")
        return {"clientSecret": intent["client_secret"], "paymentIntentId": intent["id"]}

    def confirm(self, db: Session, user_id: str, payment_intent_id: str, product_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Confirm a payment and grant the purchased product.

        The intent is fetched from Stripe; only a succeeded intent owned by
        ``user_id`` is accepted.
        """
        try:
            intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe retrieve failed for {payment_intent_id}: {e}")
            raise AppError("Payment provider error", 502, "PAYMENT_PROVIDER_ERROR")

        if intent["status"] != SUCCEEDED:
            raise PaymentFailed("Payment not completed", details={"status": intent["status"]})

        metadata = intent.get("metadata") or {}
        if metadata.get("userId") and metadata["userId"] != user_id:
            raise Forbidden("Payment belongs to another user")
        product_id = metadata.get("productId") or product_id
        if not product_id:
            raise ValidationFailed("productId is required")

        return self.apply_entitlement(db, user_id, product_id, intent)

    def apply_entitlement(self, db: Session, user_id: str, product_id: str, intent: Any) -> Dict[str, Any]:
        """
        Record the payment and extend the user's products in one transaction.

        Keyed on the unique payment intent id: a repeated call returns the
        stored result without granting anything twice.
        """
        payment_intent_id = intent["id"]
        existing = db.query(PaymentDB).filter(PaymentDB.payment_intent_id == payment_intent_id).first()
        if existing is not None:
            return self._confirmation(db, existing)

        product = get_product(product_id)
        if product is None:
            raise NotFound("Product not found")

        user_data = db.query(UserDataDB).filter(UserDataDB.user_id == user_id).first()
        if user_data is None:
            user_data = UserDataDB(user_id=user_id, purchased_products=[], interview_progress=default_interview_progress())
            db.add(user_data)

        user_data.purchased_products = grant_products(user_data.purchased_products, product_id)
        payment = PaymentDB(
            user_id=user_id,
            product_id=product_id,
            amount=intent.get("amount") or product["price"],
            currency=intent.get("currency") or product["currency"],
            status=SUCCEEDED,
            payment_intent_id=payment_intent_id,
            payment_method_id=intent.get("payment_method"),
            granted_products=list(user_data.purchased_products),
        )
        db.add(payment)
        try:
            db.commit()
        except IntegrityError:
            # Another request recorded this intent first
            db.rollback()
            existing = db.query(PaymentDB).filter(PaymentDB.payment_intent_id == payment_intent_id).one()
            return self._confirmation(db, existing)

        logger.info(f"Granted {product_id} to user {user_id} via {payment_intent_id}")
        return self._confirmation(db, payment)

    def _confirmation(self, db: Session, payment: PaymentDB) -> Dict[str, Any]:
        user_data = db.query(UserDataDB).filter(UserDataDB.user_id == payment.user_id).first()
        return {
            "success": True,
            "purchasedProduct": payment.product_id,
            "purchasedProducts": list(user_data.purchased_products) if user_data else [],
            "paymentId": payment.id,
        }

    def handle_webhook(self, db: Session, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify a Stripe webhook and apply entitlement for succeeded intents."""
        try:
            event = self.gateway.construct_event(payload, signature)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Rejected Stripe webhook: {e}")
            raise ValidationFailed("Invalid webhook signature", code="INVALID_SIGNATURE")

        if event["type"] != "payment_intent.succeeded":
            return {"received": True, "handled": False}

        intent = event["data"]["object"]
        metadata = intent.get("metadata") or {}
        user_id = metadata.get("userId")
        product_id = metadata.get("productId")
        if not user_id or not product_id:
            logger.warning(f"Webhook intent {intent.get('id')} has no user/product metadata")
            return {"received": True, "handled": False}

        self.apply_entitlement(db, user_id, product_id, intent)
        return {"received": True, "handled": True}

    def history(self, db: Session, user_id: str) -> List[Dict[str, Any]]:
        payments = db.query(PaymentDB).filter(PaymentDB.user_id == user_id).order_by(PaymentDB.created_at.desc()).all()
        history = []
        for payment in payments:
            product = get_product(payment.product_id)
            history.append({
                "id": payment.id,
                "productId": payment.product_id,
                "productName": product["name"] if product else payment.product_id,
                "amount": payment.amount,
                "currency": payment.currency,
                "status": payment.status,
                "createdAt": payment.created_at,
            })
        return history


payment_service = PaymentService()
