"""
Customer API endpoints
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional
import math

from app.core.database import get_db
from app.core.errors import success_body
from app.services.business_context import BusinessContext, get_business_context
from app.services.customer_service import create_customer, list_customers, serialize_customer

router = APIRouter()


class CreateCustomerRequest(BaseModel):
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=100)
    email: Optional[str] = Field(None, max_length=254)
    phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=2000)


@router.get("")
async def list_customers_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    """List active customers of the caller's business"""
    customers, total = list_customers(db, context.business_id, page=page, limit=limit, search=search)
    return success_body(
        [serialize_customer(c) for c in customers],
        meta={
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    )


@router.post("", status_code=201)
async def create_customer_endpoint(
    body: CreateCustomerRequest,
    request: Request,
    context: BusinessContext = Depends(get_business_context),
    db: Session = Depends(get_db)
):
    """
    Create a customer
    Invalidates the cached setup status since the customer count changed
    """
    customer = create_customer(
        db,
        context.business_id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone=body.phone,
        notes=body.notes,
    )
    request.app.state.setup_status_cache.invalidate(context.business_id)
    return success_body(serialize_customer(customer))
