import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from .schema import BookingCreate
from api.crud.audit import write_audit
from api.crud.campaign.bonus import BonusCampaignService
from api.crud.commission import CommissionService, booking_commission, calculate_commission
from api.crud.ledger import LedgerService
from api.errors import ConflictError, NotFound, ValidationError
from api.models import Booking, BookingStatus, CoinTransaction, CommissionPayment, Trip, User
from utils.time import utcnow

# statuses a booking can leave
_OPEN = {BookingStatus.pending, BookingStatus.inprogress}


class BookingService:
    def __init__(self, session: AsyncSession, ledger: LedgerService | None = None):
        self.session = session
        self.ledger = ledger or LedgerService(session)
        self.commissions = CommissionService(session)
        self.bonuses = BonusCampaignService(session, self.ledger)

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        booking = await self.session.get(Booking, booking_id)
        if not booking:
            raise NotFound("Booking not found")
        return booking

    async def create_booking(self, seller: User, dto: BookingCreate) -> Booking:
        """Book a trip and freeze its current commission terms on the booking."""
        if dto.passenger_count < 1:
            raise ValidationError("passenger_count must be at least 1")
        trip = await self.session.get(Trip, dto.trip_id)
        if not trip:
            raise NotFound("Trip not found")
        if not trip.is_active:
            raise ValidationError("Trip is not open for booking")

        per_person = calculate_commission(trip.price_per_person, trip.commission_value, trip.commission_type)
        booking = Booking(
            trip_id=trip.id,
            seller_id=seller.id,
            customer_name=dto.customer_name,
            passenger_count=dto.passenger_count,
            price_per_person=trip.price_per_person,
            commission_type=trip.commission_type,
            commission_value=trip.commission_value,
            commission_amount=per_person * dto.passenger_count,
        )
        self.session.add(booking)
        await self.session.commit()
        logging.info(f"Booking {booking.id} created by seller {seller.id} for trip {trip.id}")
        return booking

    async def update_status(
        self, booking_id: uuid.UUID, status: BookingStatus, actor: User
    ) -> tuple[Booking, CommissionPayment | None, list[CoinTransaction]]:
        """
        Move a booking along. Approval creates the commission payment and
        grants running coin bonuses in the same unit of work.
        """
        booking = await self.get_booking(booking_id)
        if booking.status == status:
            raise ConflictError(f"Booking is already {status.value}")
        if booking.status not in _OPEN and not (
            booking.status == BookingStatus.approved and status == BookingStatus.cancelled
        ):
            raise ConflictError(f"Booking cannot move from {booking.status.value} to {status.value}")

        payment = None
        grants: list[CoinTransaction] = []
        booking.status = status
        if status == BookingStatus.approved:
            booking.approved_at = utcnow()
            booking.approved_by = actor.id
            booking.commission_amount = booking_commission(booking)
            await self.session.flush()
            payment = await self.commissions.create_for_booking(booking)
            grants = await self.bonuses.apply_for_booking(booking)
        elif status == BookingStatus.cancelled:
            await self.commissions.cancel_open(booking.id)

        write_audit(
            self.session, actor.id, f"booking.{status.value}", "bookings", booking.id,
            {"grants": [str(g.id) for g in grants]},
        )
        await self.session.commit()
        logging.info(f"Booking {booking.id} moved to {status.value} by {actor.id}")
        return booking, payment, grants
