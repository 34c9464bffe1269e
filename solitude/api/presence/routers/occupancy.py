from fastapi import APIRouter, Depends

from solitude.api.presence.dependency import get_presence_service
from solitude.api.presence.schemas.base import ApiOut
from solitude.api.presence.schemas.presence import OccupancyOut
from solitude.domain.presence import PresenceService

router = APIRouter(prefix="/presence")


@router.get("/occupancy")
async def get_occupancy(
    service: PresenceService = Depends(get_presence_service),
) -> ApiOut[OccupancyOut]:
    """Current occupancy, used by the page to pick its initial view."""
    snapshot = await service.occupancy()
    return ApiOut[OccupancyOut](results=OccupancyOut(state=snapshot.state, count=snapshot.count))
