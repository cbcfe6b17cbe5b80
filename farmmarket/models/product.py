from sqlalchemy import Column, String, Text, Integer, Enum, Numeric, ForeignKey, Boolean, Date, JSON
from sqlalchemy.orm import relationship
from farmmarket.models.base import BaseModel

PRODUCT_CATEGORIES = ("fruits", "vegetables", "dairy", "meat", "bakery", "other")


class Product(BaseModel):
    __tablename__ = "products"

    farmer_id = Column(Integer, ForeignKey("farmers.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(50), nullable=False)
    category = Column(Enum(*PRODUCT_CATEGORIES, name="product_categories"), nullable=False)
    images = Column(JSON, nullable=False, default=list)
    organic = Column(Boolean, default=False, nullable=False)
    available = Column(Boolean, default=True, nullable=False)
    harvest_date = Column(Date)

    farmer = relationship("Farmer", back_populates="products")
    likes = relationship("Like", back_populates="product", cascade="all, delete-orphan")
