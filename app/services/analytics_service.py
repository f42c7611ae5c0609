"""
Click-through analytics
"""
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.models.review_request import ReviewRequest, RequestChannel, SENT_STATUSES

DAILY_STATS_LIMIT = 30


def _rate(clicked: int, sent: int) -> float:
    return round(clicked / sent * 100, 2) if sent > 0 else 0.0


def get_click_through_rates(
    db: Session,
    business_id: uuid.UUID,
    days: int = 30,
    channel: Optional[RequestChannel] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Click-through statistics for requests created in the last `days` days.

    Returns:
        {
            "summary": {"totalSent", "totalClicked", "clickThroughRate"},
            "dailyStats": [{"date", "sent", "clicked", "clickThroughRate"}],  # newest first
            "channelBreakdown": [{"channel", "totalSent", "totalClicked", "clickThroughRate"}],
            "dateRange": {"startDate", "endDate", "days"}
        }
    """
    end_date = now or datetime.utcnow()
    start_date = end_date - timedelta(days=days)

    filters = [
        ReviewRequest.business_id == business_id,
        ReviewRequest.created_at >= start_date,
        ReviewRequest.created_at <= end_date,
    ]
    if channel is not None:
        filters.append(ReviewRequest.channel == channel)

    is_sent = case((ReviewRequest.status.in_(SENT_STATUSES), 1), else_=0)

    total_sent = db.query(func.count(ReviewRequest.id)).filter(
        *filters, ReviewRequest.status.in_(SENT_STATUSES)
    ).scalar() or 0
    total_clicked = db.query(func.count(ReviewRequest.id)).filter(
        *filters, ReviewRequest.clicked_at.isnot(None)
    ).scalar() or 0

    day = func.date(ReviewRequest.created_at)
    daily_rows = (
        db.query(
            day.label("date"),
            func.sum(is_sent).label("sent"),
            func.count(ReviewRequest.clicked_at).label("clicked"),
        )
        .filter(*filters)
        .group_by(day)
        .order_by(day.desc())
        .limit(DAILY_STATS_LIMIT)
        .all()
    )

    daily_stats: List[Dict[str, Any]] = []
    for row in daily_rows:
        sent = int(row.sent or 0)
        clicked = int(row.clicked or 0)
        date_value = row.date.isoformat() if hasattr(row.date, "isoformat") else str(row.date)
        daily_stats.append({
            "date": date_value,
            "sent": sent,
            "clicked": clicked,
            "clickThroughRate": _rate(clicked, sent),
        })

    channel_rows = (
        db.query(
            ReviewRequest.channel,
            func.sum(is_sent).label("sent"),
            func.count(ReviewRequest.clicked_at).label("clicked"),
        )
        .filter(*filters)
        .group_by(ReviewRequest.channel)
        .all()
    )

    channel_breakdown = []
    for row in channel_rows:
        sent = int(row.sent or 0)
        clicked = int(row.clicked or 0)
        channel_breakdown.append({
            "channel": row.channel.value,
            "totalSent": sent,
            "totalClicked": clicked,
            "clickThroughRate": _rate(clicked, sent),
        })

    return {
        "summary": {
            "totalSent": total_sent,
            "totalClicked": total_clicked,
            "clickThroughRate": _rate(total_clicked, total_sent),
        },
        "dailyStats": daily_stats,
        "channelBreakdown": channel_breakdown,
        "dateRange": {
            "startDate": start_date.isoformat(),
            "endDate": end_date.isoformat(),
            "days": days,
        },
    }
