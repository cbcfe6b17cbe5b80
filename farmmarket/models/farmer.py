from sqlalchemy import Column, String, Text, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from farmmarket.models.base import BaseModel


class Farmer(BaseModel):
    """Seller profile. Kept separate from the ``User`` account it belongs to."""

    __tablename__ = "farmers"

    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    farm_name = Column(String(255), nullable=False)
    description = Column(Text)
    address = Column(String(500))
    city = Column(String(100))
    state = Column(String(100))
    zip_code = Column(String(20))
    phone = Column(String(20))
    website = Column(String(255))
    verified = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="farmer")
    products = relationship("Product", back_populates="farmer")

    @property
    def location(self):
        parts = [part for part in (self.city, self.state) if part]
        return ", ".join(parts) or None
