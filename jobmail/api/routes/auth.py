import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobmail.core.auth_dependency import get_db, get_current_user_obj
from jobmail.core.config import FREE_STARTING_CREDITS
from jobmail.core.security import hash_password, verify_password, create_access_token
from jobmail.db.models.user import User
from jobmail.schemas.auth import RegisterRequest, ProfileUpdate, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


# ✅ USER REGISTRATION
@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        full_name=payload.full_name,
        email=email,
        password_hash=hash_password(payload.password),
        credits=FREE_STARTING_CREDITS,
    )

    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    db.refresh(user)
    logger.info(f"User registered: user_id={user.id}, credits={user.credits}")
    return UserResponse.model_validate(user)


# ✅ OAUTH2 LOGIN (username field carries the email)
@router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.email == form_data.username.lower()).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token({"sub": user.email})
    return TokenResponse(access_token=token)


@router.get("/profile", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user_obj)):
    return UserResponse.model_validate(user)


@router.put("/profile", response_model=UserResponse)
def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    if payload.full_name is not None:
        user.full_name = payload.full_name
        db.commit()
        db.refresh(user)
        logger.info(f"Profile updated: user_id={user.id}")
    return UserResponse.model_validate(user)
