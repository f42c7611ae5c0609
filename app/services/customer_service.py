"""
Customer service
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import AlreadyExists, ValidationError
from app.models.customer import Customer
from app.services.validation import is_valid_email, is_valid_uk_phone, normalize_phone_number

logger = logging.getLogger(__name__)


def create_customer(
    db: Session,
    business_id: uuid.UUID,
    first_name: str,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> Customer:
    """Create a customer; email must be unique within the business"""
    details = []
    if email and not is_valid_email(email):
        details.append({"field": "email", "message": "Invalid email address"})
    if phone and not is_valid_uk_phone(phone):
        details.append({"field": "phone", "message": "Invalid UK phone number"})
    if details:
        raise ValidationError("Invalid customer contact details", details)

    if email:
        email = email.strip().lower()
        existing = db.query(Customer).filter(
            Customer.business_id == business_id,
            func.lower(Customer.email) == email,
            Customer.is_active == True,
        ).first()
        if existing:
            raise AlreadyExists("Customer with this email already exists")

    customer = Customer(
        business_id=business_id,
        first_name=first_name.strip(),
        last_name=last_name.strip() if last_name else None,
        email=email or None,
        phone=normalize_phone_number(phone) if phone else None,
        notes=notes,
        is_active=True,
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)

    logger.info(
        "Customer created",
        extra={"extra_data": {"business_id": str(business_id), "customer_id": str(customer.id)}},
    )
    return customer


def list_customers(
    db: Session,
    business_id: uuid.UUID,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
) -> Tuple[List[Customer], int]:
    query = db.query(Customer).filter(
        Customer.business_id == business_id,
        Customer.is_active == True,
    )
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))

    total = query.count()
    customers = (
        query.order_by(Customer.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return customers, total


def get_customer(db: Session, business_id: uuid.UUID, customer_id: uuid.UUID) -> Optional[Customer]:
    return db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.business_id == business_id,
        Customer.is_active == True,
    ).first()


def serialize_customer(customer: Customer) -> Dict[str, Any]:
    return {
        "id": str(customer.id),
        "businessId": str(customer.business_id),
        "firstName": customer.first_name,
        "lastName": customer.last_name,
        "email": customer.email,
        "phone": customer.phone,
        "notes": customer.notes,
        "isActive": customer.is_active,
        "createdAt": customer.created_at.isoformat() if customer.created_at else None,
        "updatedAt": customer.updated_at.isoformat() if customer.updated_at else None,
    }
