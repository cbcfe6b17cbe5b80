from sqlalchemy import Column, String, Text, Boolean
from farmmarket.models.base import BaseModel


class ContactMessage(BaseModel):
    __tablename__ = "contact_messages"

    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)


class NewsletterSubscriber(BaseModel):
    __tablename__ = "newsletter_subscribers"

    email = Column(String(255), unique=True, nullable=False, index=True)
    active = Column(Boolean, default=True, nullable=False)
