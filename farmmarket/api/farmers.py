from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from farmmarket.auth.security import is_farmer
from farmmarket.db.session import get_db
from farmmarket.models.farmer import Farmer
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.farmer import Farmer as FarmerSchema, FarmerPublic, FarmerUpdate
from farmmarket.services.farmers import get_or_create_farmer_profile

router = APIRouter()


@router.get("/me", response_model=FarmerSchema, summary="Get my farm profile")
def read_my_farm(db: Session = Depends(get_db), current_user: User = Depends(is_farmer)):
    farmer = get_or_create_farmer_profile(db, current_user)
    db.commit()
    db.refresh(farmer)
    return farmer


@router.put(
    "/me",
    response_model=FarmerSchema,
    summary="Update my farm profile",
    description="Update the farm details shown next to your products. Requires the farmer role.",
)
def update_my_farm(
    update: FarmerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(is_farmer),
):
    """
    Update the current farmer's profile.

    - **farm_name**: Farm name shown on product pages
    - **description**: Short description of the farm
    - **address**, **city**, **state**, **zip_code**: Farm location
    - **phone**, **website**: Contact details
    """
    farmer = get_or_create_farmer_profile(db, current_user)
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field == "farm_name":
            continue
        setattr(farmer, field, value)
    db.add(farmer)
    db.commit()
    db.refresh(farmer)
    return farmer


@router.get("/{farmer_id}", response_model=FarmerPublic, summary="Get farm by ID")
def read_farm(farmer_id: int, db: Session = Depends(get_db)):
    farmer = db.query(Farmer).filter(Farmer.id == farmer_id).first()
    if farmer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Farmer not found")

    product_count = db.query(Product).filter(Product.farmer_id == farmer.id, Product.available.is_(True)).count()
    return FarmerPublic.model_validate(farmer).model_copy(update={"product_count": product_count})
