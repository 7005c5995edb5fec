from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from jobmail.db.base import Base

PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")


class Payment(Base):
    """
    A verified gateway payment.

    gateway_order_id is UNIQUE: it is what makes crediting an order idempotent.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    gateway_order_id = Column(String, nullable=False, unique=True)
    gateway_payment_id = Column(String, nullable=False, unique=True)

    amount = Column(Numeric(10, 2), nullable=False)  # major units
    currency = Column(String(3), nullable=False, default="INR")
    plan = Column(String, nullable=False)
    credits = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=False, default="razorpay")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_payments_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, order='{self.gateway_order_id}', status='{self.status}')>"
