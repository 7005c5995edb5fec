"""
Credit enforcement dependency for credit-consuming endpoints.

require_credits() is a cheap read-only pre-check that turns away users with
an empty balance before any work is done. The authoritative check is the
conditional decrement in credit_service.check_and_reserve().
"""
import logging
from fastapi import Depends

from jobmail.db.models.user import User
from jobmail.core.auth_dependency import get_current_user_obj
from jobmail.core.exceptions import InsufficientCreditsError, to_http_exception

logger = logging.getLogger(__name__)


def require_credits(amount: int = 1):
    """
    Dependency factory that rejects users without enough credits.

    Args:
        amount: Credits the endpoint will consume (default: 1)

    Returns:
        Dependency returning the User if the balance covers amount

    Raises:
        HTTPException 403: Insufficient credits with structured error detail
    """
    def credit_checker(user: User = Depends(get_current_user_obj)) -> User:
        if not user.has_sufficient_credits(amount):
            logger.warning(
                f"Insufficient credits: user_id={user.id}, credits={user.credits}, required={amount}"
            )
            raise to_http_exception(
                InsufficientCreditsError(credits=user.credits, required=amount)
            )
        return user

    return credit_checker

