from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
import json
import logging

from recruitai.api.deps import get_current_user, get_services, require_roles
from recruitai.container import Services
from recruitai.schemas import NotificationRequest, NotificationSent, envelope
from recruitai.services.auth import ADMIN_ROLES, CurrentUser, notification_scope
from recruitai.services.notifications import Delivery
from recruitai.utils.errors import InvalidRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])

KEEPALIVE_SECONDS = 15.0


@router.post("")
async def send_notification(
    body: NotificationRequest,
    user: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
    services: Services = Depends(get_services),
):
    """Push an event to a user, a company, a role, or everyone. Best-effort.

    Company admins reach members of their own company only; broadcasting is
    reserved to super admins.
    """
    if body.type != "broadcast" and not body.target:
        raise InvalidRequest(
            "Target is required for user, company and role notifications.",
            constraint="missing_target",
            field="target",
        )

    scope = notification_scope(user, body.type, body.target)
    delivery = await services.notifier.send(body.type, body.target, body.event, body.data, scope=scope)
    logger.info(f"[notifications] {user.id} sent {body.event} to {body.type}:{body.target} ({delivery.value})")
    return envelope(
        NotificationSent(
            sent=delivery != Delivery.DROPPED,
            delivery=delivery.value,
            type=body.type,
            target=body.target,
            event=body.event,
            timestamp=datetime.now(timezone.utc),
        )
    )


@router.get("")
async def get_connected_count(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Number of clients currently connected to this process."""
    return envelope({"connectedClients": services.notifier.connected_count()})


@router.get("/stream")
async def stream_notifications(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Stream the caller's events via SSE."""
    notifier = services.notifier
    subscription = notifier.subscribe(user.id, user.company_id, user.role.value)

    async def event_generator():
        try:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                message = await subscription.get(timeout=KEEPALIVE_SECONDS)
                if message is None:
                    yield ": keepalive\n\n"
                    continue
                yield f"event: {message['event']}\ndata: {json.dumps(message, default=str)}\n\n"
        finally:
            notifier.unsubscribe(subscription)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
