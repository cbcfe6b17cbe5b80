from typing import Optional

from sqlalchemy.orm import Session

from farmmarket.core.logging_config import get_logger
from farmmarket.models.farmer import Farmer
from farmmarket.models.user import User

logger = get_logger(__name__)


def get_farmer_profile(db: Session, user: User) -> Optional[Farmer]:
    return db.query(Farmer).filter(Farmer.user_id == user.id).first()


def get_or_create_farmer_profile(db: Session, user: User) -> Farmer:
    """Return the user's farm, creating a placeholder one the first time. Flushes, does not commit."""
    farmer = get_farmer_profile(db, user)
    if farmer is None:
        farmer = Farmer(
            user_id=user.id,
            farm_name=f"{user.name}'s Farm",
            description=f"Fresh produce from {user.name}'s farm",
            address=user.address or "Address TBD",
            city="City TBD",
            state="State TBD",
            zip_code="00000",
            phone=user.phone,
            verified=False,
        )
        db.add(farmer)
        db.flush()
        logger.info("Created farmer profile", extra={"user_id": user.id, "farmer_id": farmer.id})
    return farmer
