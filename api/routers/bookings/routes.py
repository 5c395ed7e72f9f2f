import uuid
from fastapi import APIRouter, Depends, status

from api.crud.booking import BookingService
from api.crud.booking.schema import BookingCreate, BookingRead, BookingStatusUpdate
from api.crud.commission import CommissionService
from api.crud.commission.schema import CommissionMark, CommissionPaymentRead
from api.crud.ledger.schema import CoinTransactionRead
from api.errors import NotFound
from api.models import User
from api.security import require_admin, require_seller
from services.redis import RedisCache, get_cache
from . import get_booking_service, get_commission_service
from .schemas import BackfillResponse, BookingStatusResponse

router = APIRouter()
admin_router = APIRouter()


@router.post(
        "",
        response_model=BookingRead,
        status_code=status.HTTP_201_CREATED,
        summary="Book a trip"
        )
async def create_booking(
    dto: BookingCreate,
    seller: User = Depends(require_seller),
    service: BookingService = Depends(get_booking_service),
):
    """
    Book a trip for a customer. The trip's price and commission policy are
    copied onto the booking; later changes to the trip do not affect it.
    """
    return await service.create_booking(seller, dto)


@admin_router.patch("/{booking_id}/status", response_model=BookingStatusResponse, summary="Change booking status")
async def update_booking_status(
    booking_id: uuid.UUID,
    dto: BookingStatusUpdate,
    admin: User = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Approving a booking creates its commission payment (once) and grants any
    running coin bonus campaigns to the seller.

    Request status:
    - 200 OK - status changed
    - 404 Not Found - no such booking
    - 409 Conflict - the booking is already in that status or closed
    """
    booking, payment, grants = await service.update_status(booking_id, dto.status, admin)
    if grants and booking.seller_id:
        await cache.invalidate_seller(booking.seller_id)
    return BookingStatusResponse(
        booking=BookingRead.model_validate(booking),
        commission=CommissionPaymentRead.model_validate(payment) if payment else None,
        bonus_transactions=[CoinTransactionRead.model_validate(g) for g in grants],
    )


@admin_router.get("/{booking_id}/commission", response_model=CommissionPaymentRead, summary="Commission payment of a booking")
async def get_commission(
    booking_id: uuid.UUID,
    admin: User = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
):
    payment = await service.get_for_booking(booking_id)
    if not payment:
        raise NotFound("Commission payment not found")
    return payment


@admin_router.patch("/{booking_id}/commission", response_model=CommissionPaymentRead, summary="Record commission payout")
async def mark_commission(
    booking_id: uuid.UUID,
    dto: CommissionMark,
    admin: User = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
):
    """
    Input:
    - `part` - `deposit` or `final`
    - `status` - `paid` or `cancelled`

    Paying the final part of a pending commission settles the whole amount.
    Cancelling after the deposit was paid cancels only what is still open.
    """
    return await service.mark(booking_id, dto.part, dto.status)


@admin_router.post("/fix-commissions", response_model=BackfillResponse, summary="Backfill missing commission payments")
async def fix_commissions(
    admin: User = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
):
    return BackfillResponse(created=await service.backfill())
