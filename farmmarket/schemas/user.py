import re
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from farmmarket.schemas.base import TimestampSchema
from farmmarket.schemas.farmer import Farmer

STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=128)
    # admins are never created through signup
    role: Literal["customer", "farmer"] = "customer"


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=500)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6, max_length=128)


class User(TimestampSchema):
    id: int
    email: EmailStr
    name: str
    role: str
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool


class UserWithToken(BaseModel):
    user: User
    access_token: str
    token_type: str = "bearer"

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., pattern=r"^[a-f0-9]{64}$")
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not STRONG_PASSWORD_RE.match(v):
            raise ValueError(
                "Password must be at least 8 characters and contain an uppercase letter, "
                "a lowercase letter, a number and a special character (@$!%*?&)"
            )
        return v


class UserProfile(User):
    farmer: Optional[Farmer] = None
