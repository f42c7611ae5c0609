"""
Auth API endpoints
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import success_body
from app.core.security import Identity, get_identity
from app.services.setup_status import get_cached_setup_status, incomplete_status
from app.services.user_service import get_user_by_clerk_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/setup-check")
async def setup_check(
    request: Request,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db)
):
    """
    Setup status for the signed-in user's business
    Users without a business yet get an incomplete status instead of an error
    """
    user = get_user_by_clerk_id(db, identity.clerk_user_id)
    if not user or not user.business_id:
        return success_body(incomplete_status().to_dict())

    status = get_cached_setup_status(db, request.app.state.setup_status_cache, user.business_id)
    logger.info(
        "Setup status checked",
        extra={"extra_data": {
            "business_id": str(user.business_id),
            "is_complete": status.is_complete,
            "has_customers": status.has_customers,
        }},
    )
    return success_body(status.to_dict())
