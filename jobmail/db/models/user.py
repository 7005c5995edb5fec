from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from jobmail.db.base import Base


class User(Base):
    """
    Account and credit ledger.

    credits is only changed through jobmail.services.credit_service so that
    every decrement and increment is a single conditional UPDATE.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String)
    credits = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    subscription = relationship("Subscription", back_populates="user", uselist=False)

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    def has_sufficient_credits(self, amount: int = 1) -> bool:
        return (self.credits or 0) >= amount

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', credits={self.credits})>"
