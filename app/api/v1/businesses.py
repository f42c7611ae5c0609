"""
Business API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from app.core.database import get_db
from app.core.errors import NotFound, success_body
from app.core.security import Identity, get_identity
from app.services.business_context import BusinessContext, get_business_context
from app.services.business_service import get_business, serialize_business
from app.services.places_client import PlacesClient, get_places_client

router = APIRouter()


class SearchPlacesRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=200)


@router.get("/current")
async def current_business(
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    business = get_business(db, context.business_id)
    return success_body(serialize_business(business))


@router.post("/search-places")
async def search_places(
    body: SearchPlacesRequest,
    identity: Identity = Depends(get_identity),
    places: PlacesClient = Depends(get_places_client)
):
    """Search Google Places during onboarding"""
    return success_body(await places.search_places(body.query))


@router.get("/place-details")
async def place_details(
    place_id: str = Query(..., alias="placeId", min_length=1, max_length=300),
    identity: Identity = Depends(get_identity),
    places: PlacesClient = Depends(get_places_client)
):
    details = await places.get_place_details(place_id)
    if not details:
        raise NotFound("Place")
    return success_body(details)
