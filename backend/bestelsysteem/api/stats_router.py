"""Statistics and admin announcements."""

from fastapi import APIRouter, Depends

from bestelsysteem.api.dependencies import get_bus, get_statistics, require_admin, require_user
from bestelsysteem.schemas import MessageRequest, MessageResponse, StatisticsResponse
from bestelsysteem.services.notifications import MESSAGE, NotificationBus
from bestelsysteem.services.statistics import StatisticsService

router = APIRouter(prefix="/api", tags=["statistics"])


@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    dependencies=[Depends(require_user)],
    summary="Statistics of the live system",
)
async def statistics_overview(statistics: StatisticsService = Depends(get_statistics)):
    return StatisticsResponse.model_validate(statistics.get_statistics())


@router.post(
    "/messages",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
    summary="Broadcast an announcement to bar and kitchen screens",
)
async def broadcast_message(request: MessageRequest, bus: NotificationBus = Depends(get_bus)):
    bus.broadcast_message(request.message)
    return MessageResponse(status="sent", subscribers=bus.subscriber_count(MESSAGE))
