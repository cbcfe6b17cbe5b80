from typing import Optional
from pydantic import Field
from farmmarket.schemas.base import BaseSchema, TimestampSchema


class FarmerBase(BaseSchema):
    farm_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, max_length=255)


class FarmerUpdate(BaseSchema):
    farm_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, max_length=255)


class Farmer(TimestampSchema, FarmerBase):
    id: int
    user_id: int
    verified: bool
    location: Optional[str] = None


class FarmerPublic(Farmer):
    product_count: int = 0
