from typing import Dict, Iterable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from farmmarket.auth.security import get_current_user_optional, is_farmer, is_farmer_or_admin
from farmmarket.core.logging_config import get_logger
from farmmarket.core.rate_limit import max_body_size, rate_limit
from farmmarket.db.session import get_db
from farmmarket.models.like import Like
from farmmarket.models.notification import Notification
from farmmarket.models.order import OrderItem
from farmmarket.models.product import PRODUCT_CATEGORIES, Product
from farmmarket.models.user import User
from farmmarket.schemas.base import MessageResponse
from farmmarket.schemas.pagination import PaginatedResponse
from farmmarket.schemas.product import (
    Product as ProductSchema,
    ProductCreate,
    ProductDetail,
    ProductUpdate,
    QuantityUpdate,
)
from farmmarket.services.farmers import get_farmer_profile, get_or_create_farmer_profile
from farmmarket.services.inventory import decrease_quantity
from farmmarket.services.notifications import notify

router = APIRouter()
logger = get_logger(__name__)

SORT_FIELDS = {
    "createdAt": Product.created_at,
    "created_at": Product.created_at,
    "name": Product.name,
    "price": Product.price,
    "quantity": Product.quantity,
}


def viewer_farmer_id(db: Session, user: Optional[User]) -> Optional[int]:
    if user is None or user.role != "farmer":
        return None
    farmer = get_farmer_profile(db, user)
    return farmer.id if farmer else None


def like_counts(db: Session, product_ids: Iterable[int]) -> Dict[int, int]:
    product_ids = list(product_ids)
    if not product_ids:
        return {}
    rows = (
        db.query(Like.product_id, func.count(Like.id))
        .filter(Like.product_id.in_(product_ids))
        .group_by(Like.product_id)
        .all()
    )
    return {product_id: count for product_id, count in rows}


def product_to_schema(product: Product, own_farmer_id: Optional[int], like_count: int = 0, detail: bool = False):
    farmer = product.farmer
    extra = {
        "farmer_name": farmer.farm_name if farmer else None,
        "like_count": like_count,
        "is_own_product": own_farmer_id is not None and product.farmer_id == own_farmer_id,
    }
    if detail:
        extra["farmer_description"] = farmer.description if farmer else None
        extra["farmer_location"] = farmer.location if farmer else None
        return ProductDetail.model_validate(product).model_copy(update=extra)
    return ProductSchema.model_validate(product).model_copy(update=extra)


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def get_owned_product(db: Session, product_id: int, user: User) -> Product:
    """Product that ``user`` may change: their own listing, or any listing for admins."""
    product = get_product_or_404(db, product_id)
    if user.role == "admin":
        return product
    if product.farmer_id != viewer_farmer_id(db, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only modify your own products")
    return product


@router.post(
    "",
    response_model=ProductSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="List a product for sale. Requires the farmer role.",
    dependencies=[Depends(max_body_size(1024 * 1024)), Depends(rate_limit("products:create", 20, 60))],
)
def create_product(
    product: ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(is_farmer),
):
    """
    Create a new product listing.

    - **name**: Product name (required)
    - **description**: Product description (required)
    - **price**: Unit price, greater than 0
    - **quantity**: Units in stock
    - **unit**: Measurement unit (lb, dozen, piece, etc.)
    - **category**: fruits, vegetables, dairy, meat, bakery or other
    - **images**: Up to 10 image URLs
    - **organic**: Certified organic
    - **harvest_date**: Harvest date, not in the future
    """
    farmer = get_or_create_farmer_profile(db, current_user)

    db_product = Product(farmer_id=farmer.id, **product.model_dump())
    db.add(db_product)
    db.flush()

    notify(
        db,
        current_user.id,
        "Product Listed Successfully",
        f'Your product "{db_product.name}" is now listed and visible to customers.',
        type="system",
        product_id=db_product.id,
    )
    db.commit()
    db.refresh(db_product)
    logger.info("Product created", extra={"product_id": db_product.id, "farmer_id": farmer.id})
    return product_to_schema(db_product, farmer.id)


@router.get(
    "",
    response_model=PaginatedResponse[ProductSchema],
    summary="Browse products",
    description="Paginated list of available products with filtering and sorting. Authentication is optional.",
    dependencies=[Depends(rate_limit("products:list", 100, 15 * 60))],
)
def read_products(
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    limit: int = Query(10, ge=1, le=50, description="Items per page (1-50)"),
    category: Optional[str] = Query(None, description="Filter by category"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price filter"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum price filter"),
    organic_only: bool = Query(False, description="Only organic products"),
    search: Optional[str] = Query(None, max_length=100, description="Search in product name and description"),
    farmer: bool = Query(False, description="Only the calling farmer's own products"),
    sort_by: str = Query("createdAt", description="Sort by field: createdAt, name, price, quantity"),
    sort_order: str = Query("desc", description="Sort order: asc or desc"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Retrieve products with filtering, sorting, and pagination.

    - **page**: Page number (default: 1)
    - **limit**: Items per page (default: 10, max: 50)
    - **category**: Filter by product category
    - **min_price** / **max_price**: Price range
    - **organic_only**: Only organic products
    - **search**: Search term in name and description
    - **farmer**: When true, list the calling farmer's own products (including unavailable ones)
    - **sort_by**: createdAt, name, price or quantity
    - **sort_order**: asc or desc
    """
    if category and category not in PRODUCT_CATEGORIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid category. Must be one of: {', '.join(PRODUCT_CATEGORIES)}",
        )
    if sort_by not in SORT_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid sort field. Must be one of: createdAt, name, price, quantity",
        )
    if sort_order not in ["asc", "desc"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sort order must be 'asc' or 'desc'")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="min_price cannot be greater than max_price"
        )

    own_farmer_id = viewer_farmer_id(db, current_user)
    query = db.query(Product).options(joinedload(Product.farmer))

    if farmer:
        if current_user is None or current_user.role != "farmer":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Farmer access required")
        query = query.filter(Product.farmer_id == own_farmer_id)
    else:
        query = query.filter(Product.available.is_(True))
        # farmers browse the market without their own listings
        if own_farmer_id is not None:
            query = query.filter(Product.farmer_id != own_farmer_id)

    if category:
        query = query.filter(Product.category == category)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    if organic_only:
        query = query.filter(Product.organic.is_(True))
    if search:
        query = query.filter(
            or_(
                Product.name.ilike(f"%{search}%"),
                Product.description.ilike(f"%{search}%"),
            )
        )

    sort_column = SORT_FIELDS[sort_by]
    if sort_order == "desc":
        query = query.order_by(sort_column.desc(), Product.id.desc())
    else:
        query = query.order_by(sort_column.asc(), Product.id.asc())

    total_count = query.count()
    total_pages = (total_count + limit - 1) // limit
    products = query.offset((page - 1) * limit).limit(limit).all()
    counts = like_counts(db, (p.id for p in products))

    return {
        "items": [product_to_schema(p, own_farmer_id, counts.get(p.id, 0)) for p in products],
        "total": total_count,
        "page": page,
        "per_page": limit,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


@router.get(
    "/{product_id}",
    response_model=ProductDetail,
    summary="Get product by ID",
    description="Product details with farm information.",
)
def read_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    product = get_product_or_404(db, product_id)
    counts = like_counts(db, [product.id])
    return product_to_schema(product, viewer_farmer_id(db, current_user), counts.get(product.id, 0), detail=True)


@router.put(
    "/{product_id}",
    response_model=ProductSchema,
    summary="Update a product",
    description="Update one of your products. Admins may update any product.",
    dependencies=[Depends(max_body_size(1024 * 1024))],
)
def update_product(
    product_id: int,
    product: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(is_farmer_or_admin),
):
    """
    Update an existing product. Only the fields sent are changed.

    - **product_id**: ID of the product to update
    """
    db_product = get_owned_product(db, product_id, current_user)

    update_data = product.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != "harvest_date":
            continue
        setattr(db_product, field, value)

    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    counts = like_counts(db, [db_product.id])
    return product_to_schema(db_product, viewer_farmer_id(db, current_user), counts.get(db_product.id, 0))


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete a product",
    description="Delete one of your products. Admins may delete any product.",
)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(is_farmer_or_admin),
):
    """
    Delete a product. Products that appear in orders are delisted instead of deleted.

    - **product_id**: ID of the product to delete
    """
    db_product = get_owned_product(db, product_id, current_user)

    if db.query(OrderItem).filter(OrderItem.product_id == db_product.id).first():
        db_product.available = False
        db.commit()
        return {"message": "Product has existing orders and was marked unavailable"}

    db.query(Notification).filter(Notification.product_id == db_product.id).update(
        {"product_id": None}, synchronize_session=False
    )
    db.delete(db_product)
    db.commit()
    logger.info("Product deleted", extra={"product_id": product_id, "user_id": current_user.id})
    return {"message": "Product deleted successfully"}


@router.patch(
    "/{product_id}/quantity",
    response_model=ProductSchema,
    summary="Take stock out of inventory",
    description="Atomically decrement stock. Fails with 400 when not enough units are left.",
)
def decrement_quantity(
    product_id: int,
    body: QuantityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(is_farmer_or_admin),
):
    """
    - **quantity**: Units to remove from stock
    """
    db_product = get_owned_product(db, product_id, current_user)
    if not decrease_quantity(db, db_product.id, body.quantity):
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient stock")
    db.commit()
    db.refresh(db_product)
    return product_to_schema(db_product, viewer_farmer_id(db, current_user))
