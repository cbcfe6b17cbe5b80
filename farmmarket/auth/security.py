from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from typing import Optional
from fastapi.security import OAuth2PasswordBearer
from fastapi import Depends, HTTPException, Request, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from farmmarket.core.config import settings
from farmmarket.db.session import get_db
from farmmarket.models.user import User as UserModel
from farmmarket.schemas.user import TokenData

TOKEN_COOKIE = "token"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error is off so the session cookie can stand in for the header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user: UserModel, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(days=settings.token_expire_days)
    to_encode = {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[TokenData]:
    """Return the token claims, or None when the token is invalid, expired or incomplete."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if not payload.get("id") or not payload.get("email") or not payload.get("role"):
        return None
    try:
        return TokenData(**payload)
    except ValidationError:
        return None


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.token_expire_days * 24 * 60 * 60,
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(key=TOKEN_COOKIE, path="/", httponly=True, samesite="strict")


def get_token(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    return request.cookies.get(TOKEN_COOKIE) or bearer


def _load_user(db: Session, token_data: TokenData) -> Optional[UserModel]:
    return db.query(UserModel).filter(UserModel.id == token_data.id).first()


def get_current_user_optional(
    token: Optional[str] = Depends(get_token), db: Session = Depends(get_db)
) -> Optional[UserModel]:
    if not token:
        return None
    token_data = decode_access_token(token)
    if token_data is None:
        return None
    user = _load_user(db, token_data)
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(token: Optional[str] = Depends(get_token), db: Session = Depends(get_db)) -> UserModel:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token_data = decode_access_token(token)
    if token_data is None:
        raise credentials_exception

    user = _load_user(db, token_data)
    if user is None:
        raise credentials_exception
    return user


def get_current_active_user(current_user: UserModel = Depends(get_current_user)) -> UserModel:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def is_farmer(user: UserModel = Depends(get_current_active_user)) -> UserModel:
    if user.role != "farmer":
        raise HTTPException(status_code=403, detail="Farmer access required")
    return user


def is_farmer_or_admin(user: UserModel = Depends(get_current_active_user)) -> UserModel:
    if user.role not in ("farmer", "admin"):
        raise HTTPException(status_code=403, detail="Farmer or admin access required")
    return user
