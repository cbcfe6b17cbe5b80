from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farmmarket.core.config import settings
from farmmarket.core.logging_config import get_logger
from farmmarket.db.session import get_db

router = APIRouter()
logger = get_logger(__name__)


@router.get("", summary="Health check", description="Reports whether the API can reach its database.")
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Health check failed: database unreachable", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "unhealthy", "database": "disconnected"},
        )
    return {"status": "healthy", "database": "connected", "environment": settings.environment}
