from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from farmmarket.models.base import BaseModel


class Like(BaseModel):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_likes_user_product"),)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    user = relationship("User")
    product = relationship("Product", back_populates="likes")
