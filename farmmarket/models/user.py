from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship
from farmmarket.models.base import BaseModel

USER_ROLES = ("customer", "farmer", "admin")


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(Enum(*USER_ROLES, name="user_roles"), nullable=False, default="customer")
    phone = Column(String(20))
    address = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)

    farmer = relationship("Farmer", back_populates="user", uselist=False)
