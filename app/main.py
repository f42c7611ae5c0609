"""
Review Runner API - review request dispatch and tracking for small businesses
"""
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import error_response, register_exception_handlers
from app.core.logging import setup_logging
from app.core.security import AuthMiddleware, RequestContextMiddleware, build_identity_resolver
from app.services.setup_status import SetupStatusCache
from app.api.v1 import (
    admin,
    analytics,
    auth,
    businesses,
    customers,
    health,
    review_requests,
    suppressions,
    tracking,
    users,
    webhooks,
)

setup_logging(settings.LOG_LEVEL, service=settings.APP_NAME)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Review Runner API",
    description="Review request dispatch, click tracking and analytics",
    version="1.0.0",
)

app.state.identity_resolver = build_identity_resolver()
app.state.setup_status_cache = SetupStatusCache(ttl_seconds=settings.SETUP_STATUS_CACHE_TTL_SECONDS)

register_exception_handlers(app)

# Middleware runs outermost-last: CORS wraps request context wraps auth
app.add_middleware(AuthMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(businesses.router, prefix="/api/businesses", tags=["businesses"])
app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
app.include_router(review_requests.router, prefix="/api/review-requests", tags=["review-requests"])
app.include_router(suppressions.router, prefix="/api/suppressions", tags=["suppressions"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(tracking.router, prefix="/r", tags=["tracking"])


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return error_response(503, "SERVICE_UNAVAILABLE", "Database unavailable", {"database": "down"})
    return {"status": "healthy", "service": settings.APP_NAME, "database": "up"}


@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }
