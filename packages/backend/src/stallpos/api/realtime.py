"""Realtime ops routes — connection stats and staff announcements."""

from fastapi import APIRouter, Depends

from stallpos.api.deps import get_notifier
from stallpos.auth.dependencies import CurrentIdentity, require_role
from stallpos.events.notifier import EventNotifier
from stallpos.events.types import utcnow
from stallpos.schemas.realtime import RealtimeStats, SystemMessageCreate

router = APIRouter()


@router.get("/realtime/stats", response_model=RealtimeStats)
async def realtime_stats(notifier: EventNotifier = Depends(get_notifier)):
    """Connected clients and room occupancy. Read-only."""
    stats = notifier.stats()
    return RealtimeStats(
        total_clients=stats.total_clients,
        total_rooms=stats.total_rooms,
        room_stats=stats.room_stats,
        timestamp=utcnow(),
    )


@router.post("/realtime/system-message", status_code=202)
async def system_message(
    body: SystemMessageCreate,
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(require_role("admin")),
):
    """Push a free-form notice to every connected dashboard."""
    notifier.notify_system_message(body.message, type=body.type)
    return {"status": "sent", "recipients": len(notifier.registry)}
