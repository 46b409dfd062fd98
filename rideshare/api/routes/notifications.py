"""
Notification feed
=================

GET /api/v1/notifications -- the caller's most recent ride notifications
"""

from fastapi import APIRouter, Depends, Query, Request

from rideshare.api.auth import get_current_principal
from rideshare.api.dependencies import get_notification_sink
from rideshare.api.middleware import limiter
from rideshare.api.schemas import NotificationResponse
from rideshare.config import settings
from rideshare.domain.entities import Principal
from rideshare.infrastructure.notifications import RedisNotificationSink

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse], summary="My notifications")
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    limit: int = Query(20, ge=1, le=100),
    sink: RedisNotificationSink = Depends(get_notification_sink),
    principal: Principal = Depends(get_current_principal),
):
    return await sink.recent(principal.id, limit)
