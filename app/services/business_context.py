"""
Business context resolution

Maps an authenticated identity to the single business it acts for. Every
tenant-scoped route depends on get_business_context.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import BusinessInactive, NoBusinessAssigned, Unauthenticated, UserNotProvisioned
from app.core.logging import business_id_ctx
from app.core.security import Identity
from app.models.business import Business, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessContext:
    business_id: uuid.UUID
    business_name: str
    user_id: uuid.UUID
    clerk_user_id: str


def load_business_context(db: Session, identity: Optional[Identity]) -> BusinessContext:
    """
    Resolve the caller's business.

    Raises:
        Unauthenticated: no identity
        UserNotProvisioned: no user row for the provider id
        NoBusinessAssigned: the user has no business
        BusinessInactive: the business is deactivated
    """
    if identity is None:
        raise Unauthenticated()

    user = db.query(User).filter(User.clerk_user_id == identity.clerk_user_id).first()
    if not user:
        raise UserNotProvisioned()

    if not user.business_id:
        raise NoBusinessAssigned()

    business = db.query(Business).filter(Business.id == user.business_id).first()
    if not business:
        raise NoBusinessAssigned()

    if not business.is_active:
        logger.info(
            "Rejected request for inactive business",
            extra={"extra_data": {"business_id": str(business.id)}},
        )
        raise BusinessInactive()

    return BusinessContext(
        business_id=business.id,
        business_name=business.name,
        user_id=user.id,
        clerk_user_id=identity.clerk_user_id,
    )


def get_business_context(request: Request, db: Session = Depends(get_db)) -> BusinessContext:
    context = load_business_context(db, getattr(request.state, "identity", None))
    business_id_ctx.set(str(context.business_id))
    return context
