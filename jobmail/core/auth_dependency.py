"""
Request dependencies: a database session and the account behind the
bearer token.
"""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from jobmail.core.config import SECRET_KEY, ALGORITHM
from jobmail.db.session import SessionLocal
from jobmail.db.models.user import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _invalid_token() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(token: str = Depends(oauth2_scheme)) -> str:
    """Email address from the token's "sub" claim."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e.__class__.__name__}")
        raise _invalid_token()

    email = payload.get("sub")
    if not email:
        raise _invalid_token()
    return email


def get_current_user_obj(
    email: str = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> User:
    """
    Account for the bearer token, loaded in the request's session.

    Credit checks and payment crediting read the balance from this row, so
    it must come from the same session the route writes with.
    """
    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.warning("Token subject has no account")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user
