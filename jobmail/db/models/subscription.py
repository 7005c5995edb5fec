from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from jobmail.db.base import Base

SUBSCRIPTION_STATUSES = ("active", "cancelled", "expired")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    plan = Column(String, nullable=False)  # basic | premium
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="active")  # active | cancelled | expired

    user = relationship("User", back_populates="subscription")
