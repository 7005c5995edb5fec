"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.
"""
from jobmail.db.models.user import User
from jobmail.db.models.subscription import Subscription
from jobmail.db.models.payment import Payment
from jobmail.db.models.job_application import JobApplication

__all__ = [
    "User",
    "Subscription",
    "Payment",
    "JobApplication",
]
