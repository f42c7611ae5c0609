"""
Public review-link endpoints (click tracking and unsubscribe)
"""
from html import escape
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.services.tracking_service import INACTIVE, NOT_FOUND, record_click, unsubscribe

router = APIRouter()

PAGE_STYLE = (
    "body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;"
    "background:#f8fafc;color:#1f2937;display:flex;align-items:center;justify-content:center;"
    "min-height:100vh;margin:0}"
    ".card{background:#fff;border-radius:12px;padding:40px;max-width:420px;text-align:center;"
    "box-shadow:0 4px 6px rgba(0,0,0,.1)}"
    "a.button{display:inline-block;margin-top:16px;padding:12px 24px;background:#2563eb;"
    "color:#fff;border-radius:8px;text-decoration:none}"
)


def _page(title: str, body: str, head_extra: str = "") -> str:
    return (
        "<!DOCTYPE html><html lang=\"en\"><head><meta charset=\"utf-8\">"
        "<meta name=\"viewport\" content=\"width=device-width, initial-scale=1\">"
        f"<title>{escape(title)}</title>{head_extra}<style>{PAGE_STYLE}</style></head>"
        f"<body><div class=\"card\">{body}</div></body></html>"
    )


def error_page(title: str, message: str, suggestion: str) -> str:
    return _page(
        title,
        f"<h1>{escape(title)}</h1><p>{escape(message)}</p><p>{escape(suggestion)}</p>",
    )


def redirect_page(business_name: str, redirect_url: str, first_name: Optional[str]) -> str:
    url = escape(redirect_url, quote=True)
    greeting = f"Thank you, {escape(first_name)}!" if first_name else "Thank you!"
    return _page(
        f"Review {business_name}",
        f"<h1>{greeting}</h1>"
        f"<p>Taking you to leave a review for {escape(business_name)}...</p>"
        f"<a class=\"button\" href=\"{url}\">Continue to review</a>",
        head_extra=f"<meta http-equiv=\"refresh\" content=\"1;url={url}\">",
    )


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


@router.get("/unsubscribe/{tracking_uuid}", response_class=HTMLResponse)
async def unsubscribe_link(tracking_uuid: str, db: Session = Depends(get_db)):
    outcome = unsubscribe(db, tracking_uuid)
    if outcome.result == NOT_FOUND:
        return HTMLResponse(
            error_page(
                "Link Not Found",
                "This unsubscribe link is invalid or has expired.",
                "If you believe this is an error, please contact the business directly.",
            ),
            status_code=404,
        )
    return HTMLResponse(
        _page(
            "Unsubscribed",
            "<h1>You have been unsubscribed</h1>"
            f"<p>You will no longer receive review requests from {escape(outcome.business_name)}.</p>",
        )
    )


@router.get("/{tracking_uuid}", response_class=HTMLResponse)
async def track_click(tracking_uuid: str, request: Request, db: Session = Depends(get_db)):
    """Record the click and send the visitor on to the review page"""
    outcome = record_click(
        db,
        tracking_uuid,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request),
        referer=request.headers.get("referer"),
    )

    if outcome.result == NOT_FOUND:
        return HTMLResponse(
            error_page(
                "Link Not Found",
                "This review link is invalid or has expired.",
                "If you believe this is an error, please contact the business directly.",
            ),
            status_code=404,
        )

    if outcome.result == INACTIVE:
        return HTMLResponse(
            error_page(
                "Link Inactive",
                "This review request is no longer active.",
                "You may have already submitted your review or opted out of communications.",
            ),
            status_code=410,
        )

    return HTMLResponse(
        redirect_page(outcome.business_name, outcome.redirect_url, outcome.customer_first_name)
    )
