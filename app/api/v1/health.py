"""Service liveness endpoint."""

from fastapi import APIRouter, Depends

from app.api.deps import get_ebay_services
from app.services.ebay import EbayServices, is_scheduler_running

router = APIRouter()


@router.get("")
async def health(services: EbayServices = Depends(get_ebay_services)) -> dict:
    """Report liveness and background scheduler state."""
    return {
        "status": "ok",
        "scheduler_running": is_scheduler_running(),
        "marketplace": services.settings.EBAY_MARKETPLACE_ID,
    }
