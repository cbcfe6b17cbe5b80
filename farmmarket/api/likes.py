from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from farmmarket.api.products import get_product_or_404, like_counts, product_to_schema, viewer_farmer_id
from farmmarket.auth.security import get_current_active_user
from farmmarket.db.session import get_db
from farmmarket.models.like import Like
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.product import LikeCount, LikeStatus, Product as ProductSchema
from farmmarket.services.notifications import notify

router = APIRouter()


def _like_count(db: Session, product_id: int) -> int:
    return db.query(Like).filter(Like.product_id == product_id).count()


def _find_like(db: Session, user_id: int, product_id: int):
    return db.query(Like).filter(Like.user_id == user_id, Like.product_id == product_id).first()


@router.post(
    "/products/{product_id}/like",
    response_model=LikeStatus,
    summary="Like a product",
)
def like_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Like a product. The farmer is notified unless they like their own product.

    - **product_id**: ID of the product to like
    """
    product = get_product_or_404(db, product_id)
    if _find_like(db, current_user.id, product.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product already liked")

    db.add(Like(user_id=current_user.id, product_id=product.id))
    farmer = product.farmer
    if farmer is not None and farmer.user_id != current_user.id:
        notify(
            db,
            farmer.user_id,
            "Product Liked",
            f'Someone liked your product "{product.name}". Keep up the great work!',
            type="product_available",
            product_id=product.id,
        )
    try:
        db.commit()
    except IntegrityError:
        # concurrent like from the same user
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product already liked")

    return {"liked": True, "like_count": _like_count(db, product.id)}


@router.delete("/products/{product_id}/like", response_model=LikeStatus, summary="Remove a like")
def unlike_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    like = _find_like(db, current_user.id, product_id)
    if like is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Like not found")
    db.delete(like)
    db.commit()
    return {"liked": False, "like_count": _like_count(db, product_id)}


@router.get("/products/{product_id}/like/count", response_model=LikeCount, summary="Count likes")
def read_like_count(product_id: int, db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    return {"product_id": product.id, "like_count": _like_count(db, product.id)}


@router.get("/products/{product_id}/like/status", response_model=LikeStatus, summary="Have I liked this?")
def read_like_status(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    product = get_product_or_404(db, product_id)
    return {
        "liked": _find_like(db, current_user.id, product.id) is not None,
        "like_count": _like_count(db, product.id),
    }


@router.get("/likes", response_model=List[ProductSchema], summary="Products I like")
def read_liked_products(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    products = (
        db.query(Product)
        .join(Like, Like.product_id == Product.id)
        .filter(Like.user_id == current_user.id)
        .order_by(Like.created_at.desc(), Like.id.desc())
        .all()
    )
    counts = like_counts(db, (p.id for p in products))
    own_farmer_id = viewer_farmer_id(db, current_user)
    return [product_to_schema(p, own_farmer_id, counts.get(p.id, 0)) for p in products]
