import uuid
from fastapi import APIRouter, Depends, Query

from api.crud.redemption import RedemptionService
from api.crud.redemption.schema import RedemptionRead, RedemptionStatusUpdate
from api.models import RedemptionStatus, User
from api.routers.coins import get_redemption_service
from api.security import require_admin
from services.redis import RedisCache, get_cache

router = APIRouter()


@router.get("", response_model=list[RedemptionRead], summary="Redemption requests")
async def list_redemptions(
    status: RedemptionStatus | None = Query(None, description="Filter by status"),
    admin: User = Depends(require_admin),
    service: RedemptionService = Depends(get_redemption_service),
):
    return await service.list_all(status)


@router.patch("/{redemption_id}", response_model=RedemptionRead, summary="Approve, reject or pay out a redemption")
async def update_redemption(
    redemption_id: uuid.UUID,
    dto: RedemptionStatusUpdate,
    admin: User = Depends(require_admin),
    service: RedemptionService = Depends(get_redemption_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Move a redemption request along its lifecycle.

    - `pending -> approved` deducts the coins from the seller's redeemable balance
    - `pending -> rejected` requires `rejection_reason`, no coins move
    - `approved -> paid` records the payout

    Request status:
    - 200 OK - status changed
    - 400 Bad Request - missing rejection reason or the seller no longer has the coins
    - 404 Not Found - no such redemption
    - 409 Conflict - the move is not allowed from the current status
    """
    redemption = await service.update_status(
        redemption_id,
        RedemptionStatus(dto.status),
        admin,
        rejection_reason=dto.rejection_reason,
        notes=dto.notes,
    )
    await cache.invalidate_seller(redemption.seller_id)
    return redemption
