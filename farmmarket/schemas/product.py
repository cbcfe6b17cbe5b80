from datetime import date, datetime, timezone
from typing import Annotated, List, Literal, Optional
from urllib.parse import urlparse
from pydantic import AfterValidator, BaseModel, Field, field_validator
from farmmarket.schemas.base import BaseSchema, TimestampSchema

Category = Literal["fruits", "vegetables", "dairy", "meat", "bakery", "other"]


def _check_images(images):
    if images is None:
        return images
    for url in images:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid image URL: {url}")
    return images


def _check_harvest_date(value):
    if value is not None and value > datetime.now(timezone.utc).date():
        raise ValueError("Harvest date cannot be in the future")
    return value


ImageUrls = Annotated[List[str], Field(max_length=10), AfterValidator(_check_images)]
HarvestDate = Annotated[date, AfterValidator(_check_harvest_date)]


class ProductBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=2000)
    price: float = Field(..., gt=0, le=999999.99)
    quantity: int = Field(..., gt=0, le=999999)
    unit: str = Field(..., min_length=1, max_length=50)
    category: Category
    images: List[str] = Field(default_factory=list, max_length=10)
    organic: bool = False
    harvest_date: Optional[date] = None


class ProductCreate(ProductBase):
    images: ImageUrls = Field(default_factory=list)
    harvest_date: Optional[HarvestDate] = None
    available: bool = True

    @field_validator("name", "description", "unit", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ProductUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    price: Optional[float] = Field(None, gt=0, le=999999.99)
    quantity: Optional[int] = Field(None, ge=0, le=999999)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[Category] = None
    images: Optional[ImageUrls] = None
    organic: Optional[bool] = None
    available: Optional[bool] = None
    harvest_date: Optional[HarvestDate] = None


class Product(TimestampSchema, ProductBase):
    id: int
    farmer_id: int
    available: bool
    quantity: int
    farmer_name: Optional[str] = None
    like_count: int = 0
    is_own_product: bool = False


class ProductDetail(Product):
    farmer_description: Optional[str] = None
    farmer_location: Optional[str] = None


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., gt=0, le=999999, description="Units to take out of stock")


class LikeStatus(BaseModel):
    liked: bool
    like_count: int


class LikeCount(BaseModel):
    product_id: int
    like_count: int
