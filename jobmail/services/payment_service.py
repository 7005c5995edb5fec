"""
Payment service for credit purchases.

Handles order creation, signed payment verification, subscription state and
payment history. Crediting an order is idempotent: payments.gateway_order_id
is unique, so a replayed confirmation can never credit twice.
"""
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobmail.core.config import SUBSCRIPTION_VALIDITY_DAYS
from jobmail.core.exceptions import (
    InvalidPlanError,
    InvalidSignatureError,
    PaymentAlreadyProcessedError,
    PaymentConflictError,
    PaymentGatewayError,
    SubscriptionStateError,
)
from jobmail.core.plan_catalog import PlanDetails, lookup
from jobmail.db.models.payment import Payment
from jobmail.db.models.subscription import Subscription
from jobmail.db.models.user import User
from jobmail.services.credit_service import add_credits
from jobmail.services.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

PAYMENT_METHOD = "razorpay"


@dataclass
class CreditedPayment:
    """Outcome of a successful verification."""
    payment: Payment
    user: User
    subscription: Subscription


@dataclass
class OrderMetadata:
    """Order facts taken from the gateway, never from the client."""
    account_id: int
    plan: str
    credits: int
    amount: Decimal
    currency: str


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "order_id|payment_id"."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Check a gateway payment signature in constant time.

    Returns:
        True only if every input is present and the signature matches
    """
    if not (order_id and payment_id and signature and secret):
        return False
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def create_order(gateway: PaymentGateway, user: User, plan_name: str) -> Tuple[Dict[str, Any], PlanDetails]:
    """
    Create a gateway order for a plan.

    Args:
        gateway: Payment gateway
        user: Purchasing user
        plan_name: Plan name (basic or premium)

    Returns:
        Tuple of (gateway order dict, plan details)

    Raises:
        InvalidPlanError: If the plan is unknown
        PaymentGatewayError: If the gateway call fails
    """
    plan = lookup(plan_name)
    if not plan:
        raise InvalidPlanError(plan=plan_name)

    order = gateway.create_order(
        amount=plan.amount_minor_units,
        currency=plan.currency,
        notes={
            "account_id": user.id,
            "plan": plan_name.strip().lower(),
            "credits": plan.credits,
        },
        receipt=f"order_{int(time.time() * 1000)}",
    )

    logger.info(f"Created payment order: order_id={order.get('id')}, user_id={user.id}, plan={plan_name}")
    return order, plan


def _parse_order(order: Dict[str, Any]) -> OrderMetadata:
    notes = order.get("notes") or {}
    try:
        metadata = OrderMetadata(
            account_id=int(notes["account_id"]),
            plan=str(notes["plan"]).lower(),
            credits=int(notes["credits"]),
            amount=Decimal(str(order["amount"])) / 100,
            currency=str(order.get("currency") or "INR"),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        error = PaymentGatewayError("Payment order metadata is incomplete")
        error.retryable = False
        raise error from e

    if metadata.credits <= 0 or lookup(metadata.plan) is None:
        error = PaymentGatewayError("Payment order metadata is invalid")
        error.retryable = False
        raise error

    return metadata


_UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _activate_subscription(db: Session, user_id: int, plan: str) -> Subscription:
    """
    Start a fresh term on the user's subscription, creating the row if needed.

    On PostgreSQL and SQLite this is a single INSERT ... ON CONFLICT (user_id)
    DO UPDATE, so two first purchases racing for the same account both land
    on one row instead of one of them failing the unique constraint.
    """
    now = datetime.utcnow()
    values = {
        "plan": plan,
        "start_date": now,
        "end_date": now + timedelta(days=SUBSCRIPTION_VALIDITY_DAYS),
        "status": "active",
    }

    insert_for_dialect = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert_for_dialect is None:
        subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()
        if not subscription:
            subscription = Subscription(user_id=user_id)
            db.add(subscription)
        for key, value in values.items():
            setattr(subscription, key, value)
        return subscription

    db.execute(
        insert_for_dialect(Subscription)
        .values(user_id=user_id, **values)
        .on_conflict_do_update(index_elements=[Subscription.user_id], set_=values)
    )
    return db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


def verify_payment(
    db: Session,
    gateway: PaymentGateway,
    order_id: str,
    payment_id: str,
    signature: str,
    user_id: Optional[int] = None,
) -> CreditedPayment:
    """
    Verify a payment confirmation and credit the account.

    1. Check the signature; on mismatch nothing is read or written.
    2. Skip orders that already have a payment record.
    3. Fetch the order from the gateway for the authoritative account, plan
       and credits.
    4. In one transaction: insert the completed payment, add the credits and
       activate the subscription.

    Args:
        db: Database session
        gateway: Payment gateway (also provides the signing secret)
        order_id: Gateway order ID
        payment_id: Gateway payment ID
        signature: Hex HMAC supplied with the confirmation
        user_id: Authenticated caller, if any; must own the order

    Returns:
        CreditedPayment with the new payment, user and subscription

    Raises:
        InvalidSignatureError: Bad signature, or order belongs to another user
        PaymentAlreadyProcessedError: The order was credited before
        PaymentGatewayError: The order could not be fetched or is malformed
        PaymentConflictError: A concurrent write aborted the transaction (retryable)
    """
    if not verify_signature(order_id, payment_id, signature, gateway.signing_secret):
        logger.warning(f"Invalid payment signature: user_id={user_id}")
        raise InvalidSignatureError()

    existing = db.query(Payment).filter(Payment.gateway_order_id == order_id).first()
    if existing:
        if user_id is not None and existing.user_id != user_id:
            logger.warning(f"Payment order owner mismatch: order_id={order_id}, user_id={user_id}")
            raise InvalidSignatureError()
        logger.info(f"Payment already processed: order_id={order_id}, payment_id={existing.id}")
        raise PaymentAlreadyProcessedError(payment_id=existing.id)

    metadata = _parse_order(gateway.fetch_order(order_id))

    if user_id is not None and metadata.account_id != user_id:
        logger.warning(f"Payment order owner mismatch: order_id={order_id}, user_id={user_id}")
        raise InvalidSignatureError()

    payment = Payment(
        user_id=metadata.account_id,
        gateway_order_id=order_id,
        gateway_payment_id=payment_id,
        amount=metadata.amount,
        currency=metadata.currency,
        plan=metadata.plan,
        credits=metadata.credits,
        status="completed",
        payment_method=PAYMENT_METHOD,
    )

    try:
        db.add(payment)
        db.flush()
        add_credits(db, metadata.account_id, metadata.credits)
        subscription = _activate_subscription(db, metadata.account_id, metadata.plan)
        db.commit()
    except IntegrityError:
        db.rollback()
        recorded = db.query(Payment).filter(Payment.gateway_order_id == order_id).first()
        if recorded:
            logger.info(f"Concurrent confirmation already credited order: order_id={order_id}")
            raise PaymentAlreadyProcessedError(payment_id=recorded.id)
        logger.error(f"Payment transaction conflict, nothing recorded: order_id={order_id}", exc_info=True)
        raise PaymentConflictError(order_id=order_id)
    except Exception:
        db.rollback()
        logger.error(f"Failed to record payment: order_id={order_id}", exc_info=True)
        raise

    db.refresh(payment)
    db.refresh(subscription)
    user = db.query(User).filter(User.id == metadata.account_id).first()

    logger.info(
        f"Payment verified: order_id={order_id}, user_id={user.id}, plan={metadata.plan}, "
        f"credits_added={metadata.credits}, balance={user.credits}"
    )
    return CreditedPayment(payment=payment, user=user, subscription=subscription)


def get_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    """
    Get a user's subscription, marking it expired once its end date has passed.

    Returns None if the user never bought a plan.
    """
    subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()
    if subscription and subscription.status == "active" and subscription.end_date < datetime.utcnow():
        subscription.status = "expired"
        db.commit()
        db.refresh(subscription)
        logger.info(f"Subscription expired: user_id={user_id}, plan={subscription.plan}")
    return subscription


def cancel_subscription(db: Session, user_id: int) -> Subscription:
    """
    Cancel an active subscription. Credits already bought are kept.

    Raises:
        SubscriptionStateError: If there is no active subscription
    """
    subscription = get_subscription(db, user_id)
    if not subscription or subscription.status != "active":
        raise SubscriptionStateError()

    subscription.status = "cancelled"
    db.commit()
    db.refresh(subscription)

    logger.info(f"Subscription cancelled: user_id={user_id}, plan={subscription.plan}")
    return subscription


def get_payment_history(db: Session, user_id: int) -> List[Payment]:
    """List a user's payments, newest first."""
    return (
        db.query(Payment)
        .filter(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
