"""
Credit service for the per-account credit ledger.

Every balance change is one conditional UPDATE statement, so concurrent
requests for the same account can never drive the balance below zero.
None of these functions commit: the caller owns the transaction.
"""
import logging
from sqlalchemy import update
from sqlalchemy.orm import Session

from jobmail.db.models.user import User

logger = logging.getLogger(__name__)


def get_credit_balance(db: Session, user_id: int) -> int:
    """
    Get the current credit balance for a user.

    Returns 0 if the user does not exist.
    """
    credits = db.query(User.credits).filter(User.id == user_id).scalar()
    return int(credits or 0)


def check_and_reserve(db: Session, user_id: int, amount: int = 1) -> bool:
    """
    Reserve credits for a credit-consuming operation.

    Performs `credits = credits - amount` only if the balance covers it.
    The decrement stays pending in the session's transaction: commit it
    together with the work it pays for, or roll both back.

    Args:
        db: Database session (transaction left open)
        user_id: User ID
        amount: Credits to reserve (default: 1)

    Returns:
        True if reserved (allowed), False if the balance was insufficient
        (denied, nothing changed)
    """
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.credits >= amount)
        .values(credits=User.credits - amount)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        logger.warning(f"Credit reservation denied: user_id={user_id}, amount={amount}")
        return False

    logger.debug(f"Credit reserved: user_id={user_id}, amount={amount}")
    return True


def add_credits(db: Session, user_id: int, amount: int) -> None:
    """
    Increment a user's balance inside the caller's transaction.

    Raises:
        ValueError: If amount is not positive or the user does not exist
    """
    if amount <= 0:
        raise ValueError(f"Credit amount must be positive, got {amount}")

    result = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(credits=User.credits + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ValueError(f"User not found: user_id={user_id}")

    logger.debug(f"Credits added: user_id={user_id}, amount={amount}")
