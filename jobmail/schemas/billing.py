"""
Pydantic schemas for subscription and payment endpoints.
"""
from typing import Optional, List, Any, Dict
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class CreateOrderRequest(BaseModel):
    """Request schema for creating a payment order."""
    plan: str = Field(..., min_length=1, description="Plan: 'basic' or 'premium'")

    class Config:
        json_schema_extra = {"example": {"plan": "basic"}}


class PlanDetailsResponse(BaseModel):
    credits: int
    amount: int
    currency: str


class CreateOrderResponse(BaseModel):
    """Gateway order plus the plan it pays for."""
    order: Dict[str, Any]
    plan_details: PlanDetailsResponse


class VerifyPaymentRequest(BaseModel):
    """Confirmation returned by the Razorpay checkout."""
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class SubscriptionResponse(BaseModel):
    plan: str
    start_date: datetime
    end_date: datetime
    status: str

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: int
    gateway_order_id: str
    gateway_payment_id: str
    amount: Decimal
    currency: str
    plan: str
    credits: int
    status: str
    payment_method: str
    created_at: datetime

    class Config:
        from_attributes = True


class VerifyPaymentResponse(BaseModel):
    status: str = Field(..., description="'success' or 'already_processed'")
    payment: Optional[PaymentResponse] = None
    credits: Optional[int] = None
    subscription: Optional[SubscriptionResponse] = None


class SubscriptionDetailsResponse(BaseModel):
    """Current plan (None if never purchased) and credit balance."""
    subscription: Optional[SubscriptionResponse] = None
    credits: int


class PaymentHistoryResponse(BaseModel):
    payments: List[PaymentResponse]
