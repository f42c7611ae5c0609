"""
Analytics API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core.database import get_db
from app.core.errors import success_body
from app.models.review_request import RequestChannel
from app.services.analytics_service import get_click_through_rates
from app.services.business_context import BusinessContext, get_business_context

router = APIRouter()


@router.get("/click-through-rates")
async def click_through_rates(
    days: int = Query(30, ge=1, le=365),
    channel: Optional[RequestChannel] = Query(None),
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    """Click-through summary, daily breakdown and per-channel breakdown"""
    return success_body(get_click_through_rates(db, context.business_id, days=days, channel=channel))
