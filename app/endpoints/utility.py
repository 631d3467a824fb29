import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.response import APIResponse
from app.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/health", response_model=APIResponse[dict])
async def health_check(db: Session = Depends(deps.get_db)):
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")
    return APIResponse(message="OK", data={"service": settings.PROJECT_NAME, "version": settings.VERSION})
