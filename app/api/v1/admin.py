"""
Developer-only admin endpoints
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import success_body
from app.core.security import Identity, require_developer
from app.services.business_service import list_businesses_with_metrics

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/businesses")
async def list_businesses(
    identity: Identity = Depends(require_developer),
    db: Session = Depends(get_db)
):
    """All businesses with usage metrics (business switcher)"""
    businesses = list_businesses_with_metrics(db)
    logger.info("Admin businesses fetched", extra={"extra_data": {"count": len(businesses)}})
    return success_body(businesses)
