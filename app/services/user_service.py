"""
User profile service
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFound, ValidationError
from app.core.security import Identity
from app.models.business import User
from app.services.identity_client import ClerkClient

logger = logging.getLogger(__name__)


def get_user_by_clerk_id(db: Session, clerk_user_id: str) -> Optional[User]:
    return db.query(User).filter(User.clerk_user_id == clerk_user_id).first()


def get_or_create_user(
    db: Session,
    clerk_user_id: str,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    image_url: Optional[str] = None,
) -> User:
    """Idempotent: an existing user is returned with its provider fields refreshed"""
    user = get_user_by_clerk_id(db, clerk_user_id)
    if user:
        changed = False
        for attr, value in (
            ("email", email),
            ("first_name", first_name),
            ("last_name", last_name),
            ("image_url", image_url),
        ):
            if getattr(user, attr) != value:
                setattr(user, attr, value)
                changed = True
        if changed:
            user.last_active_at = datetime.utcnow()
            db.commit()
            db.refresh(user)
        return user

    user = User(
        clerk_user_id=clerk_user_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        image_url=image_url,
        business_id=None,
        notification_preferences={},
        ui_preferences={},
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User created", extra={"extra_data": {"user_id": str(user.id)}})
    return user


async def ensure_user(db: Session, identity: Identity, clerk: ClerkClient) -> User:
    """
    Return the caller's user row, creating it from identity provider data
    when the sign-up webhook never delivered it.
    """
    user = get_user_by_clerk_id(db, identity.clerk_user_id)
    if user:
        return user

    logger.info("User not provisioned, creating from identity provider")

    if identity.email:
        profile = {
            "email": identity.email,
            "firstName": identity.first_name,
            "lastName": identity.last_name,
            "imageUrl": None,
        }
    else:
        profile = await clerk.get_user(identity.clerk_user_id)
        if profile is None:
            raise NotFound("Clerk user")

    if not profile.get("email"):
        raise ValidationError("No primary email found")

    return get_or_create_user(
        db,
        clerk_user_id=identity.clerk_user_id,
        email=profile["email"],
        first_name=profile.get("firstName"),
        last_name=profile.get("lastName"),
        image_url=profile.get("imageUrl"),
    )


def update_user_profile(db: Session, user: User, updates: Dict[str, Any]) -> User:
    """Apply a partial profile update; keys are model attribute names"""
    for attr, value in updates.items():
        setattr(user, attr, value)
    user.last_active_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "clerkUserId": user.clerk_user_id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "imageUrl": user.image_url,
        "businessId": str(user.business_id) if user.business_id else None,
        "notificationPreferences": user.notification_preferences or {},
        "uiPreferences": user.ui_preferences or {},
        "lastActiveAt": user.last_active_at.isoformat() if user.last_active_at else None,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }
