"""
Business setup status (advisory onboarding progress, never used for authorization)
"""
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.business import Business
from app.models.customer import Customer
from app.models.review_request import ReviewRequest

logger = logging.getLogger(__name__)


@dataclass
class SetupStatus:
    is_complete: bool
    has_business_profile: bool
    has_customers: bool = False
    has_review_requests: bool = False
    has_billing_setup: bool = False
    business_name: Optional[str] = None
    business_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "isComplete": self.is_complete,
            "hasBusinessProfile": self.has_business_profile,
            "hasCustomers": self.has_customers,
            "hasReviewRequests": self.has_review_requests,
            "hasBillingSetup": self.has_billing_setup,
        }
        if self.business_name is not None:
            data["businessName"] = self.business_name
        if self.business_id is not None:
            data["businessId"] = self.business_id
        return data


def incomplete_status() -> SetupStatus:
    return SetupStatus(is_complete=False, has_business_profile=False)


def check_business_setup_status(db: Session, business_id: uuid.UUID) -> SetupStatus:
    """
    Compute setup progress for a business.

    A missing business yields an all-false status. Any internal failure is
    logged and yields an optimistic status so users are never locked out.
    """
    try:
        business = db.query(Business).filter(Business.id == business_id).first()
        if not business:
            return incomplete_status()

        customer_count = db.query(func.count(Customer.id)).filter(
            Customer.business_id == business_id
        ).scalar() or 0
        request_count = db.query(func.count(ReviewRequest.id)).filter(
            ReviewRequest.business_id == business_id
        ).scalar() or 0

        has_customers = customer_count > 0
        has_settings = bool(business.settings)

        return SetupStatus(
            is_complete=bool(business.is_active) and (has_customers or has_settings),
            has_business_profile=True,
            has_customers=has_customers,
            has_review_requests=request_count > 0,
            has_billing_setup=False,  # Billing not implemented
            business_name=business.name,
            business_id=str(business.id),
        )
    except Exception:
        logger.exception(
            "Failed to check business setup status",
            extra={"extra_data": {"business_id": str(business_id)}},
        )
        return SetupStatus(
            is_complete=True,
            has_business_profile=True,
            business_id=str(business_id),
        )


class SetupStatusCache:
    """
    In-process cache of setup status keyed by business id.

    Entries are (status, fetched_at) pairs and expire after ttl_seconds.
    """

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._entries: Dict[str, Tuple[SetupStatus, datetime]] = {}
        self._lock = threading.Lock()

    def is_expired(self, entry: Tuple[SetupStatus, datetime], now: datetime) -> bool:
        _, fetched_at = entry
        return now - fetched_at >= self.ttl

    def get(self, business_id, now: Optional[datetime] = None) -> Optional[SetupStatus]:
        key = str(business_id)
        now = now or datetime.utcnow()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.is_expired(entry, now):
                del self._entries[key]
                return None
            return entry[0]

    def set(self, business_id, status: SetupStatus, now: Optional[datetime] = None) -> None:
        with self._lock:
            self._entries[str(business_id)] = (status, now or datetime.utcnow())

    def invalidate(self, business_id) -> None:
        with self._lock:
            self._entries.pop(str(business_id), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def get_cached_setup_status(
    db: Session,
    cache: SetupStatusCache,
    business_id: uuid.UUID,
) -> SetupStatus:
    status = cache.get(business_id)
    if status is not None:
        return status
    status = check_business_setup_status(db, business_id)
    cache.set(business_id, status)
    return status
