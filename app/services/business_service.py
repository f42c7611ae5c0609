"""
Business lookups and the developer business listing
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.business import Business
from app.models.customer import Customer
from app.models.review_request import ReviewRequest
from app.models.suppression import Suppression


def get_business(db: Session, business_id: uuid.UUID) -> Optional[Business]:
    return db.query(Business).filter(Business.id == business_id).first()


def serialize_business(business: Business) -> Dict[str, Any]:
    return {
        "id": str(business.id),
        "name": business.name,
        "email": business.email,
        "phone": business.phone,
        "website": business.website,
        "address": business.address,
        "googlePlaceId": business.google_place_id,
        "googleReviewUrl": business.google_review_url,
        "settings": business.settings or {},
        "isActive": business.is_active,
        "smsCreditsUsed": business.sms_credits_used,
        "smsCreditsLimit": business.sms_credits_limit,
        "emailCreditsUsed": business.email_credits_used,
        "emailCreditsLimit": business.email_credits_limit,
        "createdAt": business.created_at.isoformat() if business.created_at else None,
        "updatedAt": business.updated_at.isoformat() if business.updated_at else None,
    }


def _active_counts(db: Session, model) -> Dict[uuid.UUID, int]:
    rows = (
        db.query(model.business_id, func.count(model.id))
        .filter(model.is_active == True)
        .group_by(model.business_id)
        .all()
    )
    return {business_id: count for business_id, count in rows}


def list_businesses_with_metrics(db: Session) -> List[Dict[str, Any]]:
    """Every business, newest first, with active-row counts and credit usage"""
    customers = _active_counts(db, Customer)
    review_requests = _active_counts(db, ReviewRequest)
    suppressions = _active_counts(db, Suppression)

    businesses = db.query(Business).order_by(Business.created_at.desc()).all()
    return [
        {
            "id": str(business.id),
            "name": business.name,
            "email": business.email,
            "isActive": business.is_active,
            "createdAt": business.created_at.isoformat() if business.created_at else None,
            "metrics": {
                "customers": customers.get(business.id, 0),
                "reviewRequests": review_requests.get(business.id, 0),
                "suppressions": suppressions.get(business.id, 0),
                "smsUsage": f"{business.sms_credits_used}/{business.sms_credits_limit}",
                "emailUsage": f"{business.email_credits_used}/{business.email_credits_limit}",
            },
            "status": "Active" if business.is_active else "Inactive",
        }
        for business in businesses
    ]
