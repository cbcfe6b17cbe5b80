import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from farmmarket.core.config import settings
from farmmarket.core.logging_config import get_logger
from farmmarket.db.seed import seed_database
from farmmarket.db.session import get_db

router = APIRouter()
logger = get_logger(__name__)


def require_internal_secret(x_internal_secret: Optional[str] = Header(None, alias="x-internal-secret")) -> None:
    if not settings.internal_api_secret:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Seed endpoint is disabled")
    if not x_internal_secret or not hmac.compare_digest(x_internal_secret, settings.internal_api_secret):
        logger.warning("Rejected seed request with a bad internal secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.post(
    "",
    summary="Seed demo data",
    description="Replace all marketplace data with the demo dataset. Requires the x-internal-secret header.",
    dependencies=[Depends(require_internal_secret)],
)
def seed(db: Session = Depends(get_db)):
    return seed_database(db)
