import hashlib
import math
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from farmmarket.auth.security import (
    clear_auth_cookie,
    create_access_token,
    get_current_active_user,
    get_password_hash,
    set_auth_cookie,
    verify_password,
)
from farmmarket.core.config import settings
from farmmarket.core.logging_config import get_logger
from farmmarket.core.rate_limit import account_lockout, max_body_size, rate_limit
from farmmarket.db.session import get_db
from farmmarket.models.auth import PasswordResetToken
from farmmarket.models.base import utcnow
from farmmarket.models.user import User
from farmmarket.schemas.base import MessageResponse
from farmmarket.schemas.user import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    Token,
    User as UserSchema,
    UserCreate,
    UserLogin,
    UserProfile,
    UserUpdate,
    UserWithToken,
)
from farmmarket.services.farmers import get_or_create_farmer_profile

router = APIRouter()
logger = get_logger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)
FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _locked_exception(seconds_left: int) -> HTTPException:
    minutes = max(1, math.ceil(seconds_left / 60))
    return HTTPException(
        status_code=status.HTTP_423_LOCKED,
        detail=f"Account temporarily locked due to too many failed login attempts. Try again in {minutes} minute(s).",
        headers={"Retry-After": str(seconds_left)},
    )


def authenticate(db: Session, email: str, password: str) -> User:
    """Check credentials against the lockout tracker; raises 423, 401 or 400."""
    email = email.strip().lower()
    locked, seconds_left = account_lockout.is_locked(email)
    if locked:
        raise _locked_exception(seconds_left)

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(password, user.hashed_password):
        remaining = account_lockout.record_failure(email)
        logger.warning("Failed login attempt", extra={"remaining_attempts": remaining})
        if remaining == 0:
            raise _locked_exception(int(account_lockout.lockout_seconds))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid email or password. {remaining} attempt(s) remaining.",
            headers={"WWW-Authenticate": "Bearer", "X-Login-Attempts-Remaining": str(remaining)},
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")

    account_lockout.clear(email)
    return user


@router.post(
    "/signup",
    response_model=UserWithToken,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Register a customer or farmer account and start a session.",
)
def signup(user_data: UserCreate, response: Response, db: Session = Depends(get_db)):
    """
    Register a new user.

    - **name**: Display name (at least 2 characters)
    - **email**: Unique e-mail address
    - **password**: At least 6 characters
    - **role**: customer or farmer (default: customer)
    """
    existing_user = db.query(User).filter(User.email == user_data.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists",
        )

    db_user = User(
        email=user_data.email,
        name=user_data.name,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
    )
    db.add(db_user)
    db.flush()

    if db_user.role == "farmer":
        get_or_create_farmer_profile(db, db_user)

    db.commit()
    db.refresh(db_user)
    logger.info("User registered", extra={"user_id": db_user.id, "role": db_user.role})

    access_token = create_access_token(db_user)
    set_auth_cookie(response, access_token)
    return UserWithToken(
        user=UserSchema.model_validate(db_user),
        access_token=access_token,
        token_type="bearer",
    )


@router.post(
    "/login",
    response_model=UserWithToken,
    summary="Log in",
    description="Authenticate with e-mail and password. Sets the session cookie.",
    dependencies=[Depends(max_body_size(10 * 1024)), Depends(rate_limit("login", 5, 15 * 60))],
)
def login(credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    """
    Log in and receive the session cookie plus the token.

    Five failed attempts lock the account for 15 minutes.
    """
    user = authenticate(db, credentials.email, credentials.password)
    access_token = create_access_token(user)
    set_auth_cookie(response, access_token)
    logger.info("User logged in", extra={"user_id": user.id})
    return UserWithToken(
        user=UserSchema.model_validate(user),
        access_token=access_token,
        token_type="bearer",
    )


@router.post(
    "/signin",
    response_model=UserWithToken,
    summary="Sign in without a cookie",
    description="Same checks as login, but the token is only returned in the body.",
    dependencies=[Depends(max_body_size(10 * 1024)), Depends(rate_limit("login", 5, 15 * 60))],
)
def signin(credentials: UserLogin, db: Session = Depends(get_db)):
    user = authenticate(db, credentials.email, credentials.password)
    return UserWithToken(
        user=UserSchema.model_validate(user),
        access_token=create_access_token(user),
        token_type="bearer",
    )


# TOKEN-ONLY: OAuth2 compatibility (for Swagger/OAuth2PasswordBearer)
@router.post(
    "/token",
    response_model=Token,
    dependencies=[Depends(rate_limit("login", 5, 15 * 60))],
)
def login_token_only(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate(db, form_data.username, form_data.password)
    return {"access_token": create_access_token(user), "token_type": "bearer"}


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(response: Response):
    clear_auth_cookie(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserProfile, summary="Current user")
def read_me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.put(
    "/me",
    response_model=UserProfile,
    summary="Update profile",
    description="Update name, phone or address. Changing the password requires the current one.",
)
def update_me(
    update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Update the current user's profile.

    - **name**: New display name (optional)
    - **phone**: Phone number (optional)
    - **address**: Postal address (optional)
    - **current_password** / **new_password**: Both required to change the password
    """
    if update.new_password is not None:
        if not update.current_password or not verify_password(update.current_password, current_user.hashed_password):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
        current_user.hashed_password = get_password_hash(update.new_password)

    update_data = update.model_dump(exclude_unset=True, exclude={"current_password", "new_password"})
    for field, value in update_data.items():
        # name is required; phone and address may be cleared with null
        if value is None and field == "name":
            continue
        setattr(current_user, field, value)

    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset",
    dependencies=[Depends(rate_limit("forgot-password", 3, 60 * 60))],
)
def forgot_password(request: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """
    Start a password reset. The answer is the same whether or not the address is registered.
    """
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if user and user.is_active:
        db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used.is_(False),
        ).update({"used": True}, synchronize_session=False)

        token = secrets.token_hex(32)
        db.add(
            PasswordResetToken(
                user_id=user.id,
                token_hash=_hash_reset_token(token),
                expires_at=utcnow() + RESET_TOKEN_TTL,
            )
        )
        db.commit()
        # No mail transport is wired up; outside production the link is logged
        if not settings.is_production:
            logger.info(f"Password reset link: {settings.app_url}/reset-password?token={token}")
        logger.info("Password reset requested", extra={"user_id": user.id})

    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with a token",
    dependencies=[Depends(rate_limit("reset-password", 5, 60))],
)
def reset_password(request: ResetPasswordRequest, db: Session = Depends(get_db)):
    """
    Set a new password.

    - **token**: 64 character hex token from the reset link
    - **password**: At least 8 characters with upper and lower case letters, a digit and one of @$!%*?&
    """
    reset_token = db.query(PasswordResetToken).filter(
        PasswordResetToken.token_hash == _hash_reset_token(request.token)
    ).first()
    if reset_token is None or reset_token.used or reset_token.expires_at < utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    user = db.query(User).filter(User.id == reset_token.user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    user.hashed_password = get_password_hash(request.password)
    reset_token.used = True
    db.commit()
    account_lockout.clear(user.email)
    logger.info("Password reset completed", extra={"user_id": user.id})
    return {"message": "Password has been reset successfully"}
