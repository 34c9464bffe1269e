from fastapi import APIRouter

from .utils import ApiSuccess

router = APIRouter()


@router.get("/health", response_model=ApiSuccess)
async def health():
    """Liveness probe; answers as long as the event loop is serving requests."""
    return ApiSuccess(results="OK")
