"""
Subscription and payment endpoints.

Order creation, Razorpay payment verification, subscription details,
cancellation and payment history.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobmail.core.auth_dependency import get_db, get_current_user_obj
from jobmail.core.exceptions import (
    JobMailError,
    PaymentAlreadyProcessedError,
    to_http_exception,
)
from jobmail.core.integrations import get_payment_gateway
from jobmail.db.models.user import User
from jobmail.schemas.billing import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentHistoryResponse,
    PaymentResponse,
    PlanDetailsResponse,
    SubscriptionDetailsResponse,
    SubscriptionResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from jobmail.services import payment_service
from jobmail.services.credit_service import get_credit_balance
from jobmail.services.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post("/orders", response_model=CreateOrderResponse)
def create_order(
    payload: CreateOrderRequest,
    user: User = Depends(get_current_user_obj),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Create a Razorpay order for a credit plan."""
    try:
        order, plan = payment_service.create_order(gateway, user, payload.plan)
    except JobMailError as e:
        raise to_http_exception(e)

    return CreateOrderResponse(
        order=order,
        plan_details=PlanDetailsResponse(credits=plan.credits, amount=plan.amount, currency=plan.currency),
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(
    payload: VerifyPaymentRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Verify a Razorpay checkout confirmation and credit the account.

    - 400: signature invalid
    - 200 with status "already_processed": the order was credited before
    - 503: gateway unreachable or a concurrent write aborted, safe to retry
    - 502: gateway refused the request or returned unusable order data
    """
    try:
        credited = payment_service.verify_payment(
            db,
            gateway,
            order_id=payload.razorpay_order_id,
            payment_id=payload.razorpay_payment_id,
            signature=payload.razorpay_signature,
            user_id=user.id,
        )
    except PaymentAlreadyProcessedError:
        return VerifyPaymentResponse(
            status="already_processed",
            credits=get_credit_balance(db, user.id),
        )
    except JobMailError as e:
        raise to_http_exception(e)
    except Exception:
        logger.error("Failed to verify payment", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error verifying payment"
        )

    return VerifyPaymentResponse(
        status="success",
        payment=PaymentResponse.model_validate(credited.payment),
        credits=credited.user.credits,
        subscription=SubscriptionResponse.model_validate(credited.subscription),
    )


@router.get("/details", response_model=SubscriptionDetailsResponse)
def get_subscription_details(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    subscription = payment_service.get_subscription(db, user.id)
    return SubscriptionDetailsResponse(
        subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
        credits=get_credit_balance(db, user.id),
    )


@router.get("/payments", response_model=PaymentHistoryResponse)
def get_payment_history(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    payments = payment_service.get_payment_history(db, user.id)
    return PaymentHistoryResponse(payments=[PaymentResponse.model_validate(p) for p in payments])


@router.post("/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    try:
        subscription = payment_service.cancel_subscription(db, user.id)
    except JobMailError as e:
        raise to_http_exception(e)
    return SubscriptionResponse.model_validate(subscription)
