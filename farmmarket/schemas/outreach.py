from pydantic import BaseModel, EmailStr, Field


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    message: str = Field(..., min_length=1, max_length=5000)


class NewsletterSubscribe(BaseModel):
    email: EmailStr


class OutreachResponse(BaseModel):
    message: str
    success: bool = True
