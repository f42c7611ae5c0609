"""
User profile API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import AnyHttpUrl, BaseModel, Field
from typing import Optional, Dict, Any

from app.core.database import get_db
from app.core.errors import success_body
from app.core.security import Identity, get_identity
from app.services.identity_client import ClerkClient, get_clerk_client
from app.services.user_service import ensure_user, serialize_user, update_user_profile

router = APIRouter()


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = Field(None, alias="firstName", min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=100)
    image_url: Optional[AnyHttpUrl] = Field(None, alias="imageUrl")
    notification_preferences: Optional[Dict[str, Any]] = Field(None, alias="notificationPreferences")
    ui_preferences: Optional[Dict[str, Any]] = Field(None, alias="uiPreferences")


@router.get("/profile")
async def get_profile(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    clerk: ClerkClient = Depends(get_clerk_client)
):
    """
    Current user's profile
    Creates the user row from identity provider data when it is missing
    """
    user = await ensure_user(db, identity, clerk)
    return success_body(serialize_user(user))


@router.patch("/profile")
async def update_profile(
    body: UpdateProfileRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    clerk: ClerkClient = Depends(get_clerk_client)
):
    user = await ensure_user(db, identity, clerk)
    updates = body.model_dump(exclude_unset=True)
    if "image_url" in updates and updates["image_url"] is not None:
        updates["image_url"] = str(updates["image_url"])
    user = update_user_profile(db, user, updates)
    return success_body(serialize_user(user))
