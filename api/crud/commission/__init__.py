import logging
import uuid
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .schema import CommissionMarkStatus, CommissionPart
from api.database import dialect_insert
from api.errors import ConflictError, InvalidCommissionPolicy, NotFound
from api.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    CommissionPayment,
    CommissionStatus,
    CommissionType,
)
from utils.time import utcnow

CENT = Decimal("0.01")


def _as_decimal(value, name: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidCommissionPolicy(f"{name} must be a number")
    if not result.is_finite():
        raise InvalidCommissionPolicy(f"{name} must be a finite number")
    if result < 0:
        raise InvalidCommissionPolicy(f"{name} must not be negative")
    return result


def calculate_commission(price_per_person, commission_value, commission_type) -> Decimal:
    """
    Commission per person for a trip policy.

    `fixed` pays `commission_value` as is, `percentage` pays that share of
    `price_per_person`. Result is rounded half-up to the cent.
    """
    try:
        policy = CommissionType(getattr(commission_type, "value", commission_type))
    except ValueError:
        raise InvalidCommissionPolicy(f"Unknown commission type: {commission_type}")

    price = _as_decimal(price_per_person, "price_per_person")
    value = _as_decimal(commission_value, "commission_value")

    if policy == CommissionType.fixed:
        amount = value
    else:
        amount = price * value / Decimal(100)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def split_commission(total: Decimal) -> tuple[Decimal, Decimal]:
    """Deposit and final halves; the final half absorbs the odd cent."""
    deposit = (total / 2).quantize(CENT, rounding=ROUND_DOWN)
    return deposit, total - deposit


def booking_commission(booking: Booking) -> Decimal:
    per_person = calculate_commission(
        booking.price_per_person, booking.commission_value, booking.commission_type
    )
    return per_person * max(booking.passenger_count or 1, 1)


class CommissionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_booking(self, booking_id: uuid.UUID) -> CommissionPayment | None:
        res = await self.session.execute(
            select(CommissionPayment)
            .where(CommissionPayment.booking_id == booking_id)
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    async def create_for_booking(self, booking: Booking) -> CommissionPayment | None:
        """
        Create the booking's commission payment once. A second call, or a
        concurrent one, is a no-op returning the existing row.
        """
        if booking.seller_id is None:
            return None

        amount = booking_commission(booking)
        deposit, final = split_commission(amount)
        stmt = (
            dialect_insert(self.session, CommissionPayment)
            .values(
                id=uuid.uuid4(),
                booking_id=booking.id,
                seller_id=booking.seller_id,
                amount=amount,
                deposit_amount=deposit,
                final_amount=final,
                status=CommissionStatus.pending,
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["booking_id"])
        )
        res = await self.session.execute(stmt)
        if res.rowcount:
            logging.info(f"Commission payment {amount} created for booking {booking.id} seller {booking.seller_id}")
        return await self.get_for_booking(booking.id)

    async def mark(self, booking_id: uuid.UUID, part: CommissionPart, status: CommissionMarkStatus) -> CommissionPayment:
        """Record payout progress of one half: pending -> partially_paid -> paid, or cancelled."""
        res = await self.session.execute(
            select(CommissionPayment)
            .where(CommissionPayment.booking_id == booking_id)
            .with_for_update()
        )
        payment = res.scalar_one_or_none()
        if not payment:
            raise NotFound("Commission payment not found")
        if payment.status in (CommissionStatus.paid, CommissionStatus.cancelled):
            raise ConflictError(f"Commission payment is already {payment.status.value}")

        booking = await self.session.get(Booking, booking_id)
        now = utcnow()

        if status == CommissionMarkStatus.cancelled:
            if part == CommissionPart.deposit and payment.status != CommissionStatus.pending:
                raise ConflictError("Deposit part is already paid")
            payment.status = CommissionStatus.cancelled
            if booking:
                booking.payment_status = BookingPaymentStatus.cancelled
        elif part == CommissionPart.deposit:
            if payment.status != CommissionStatus.pending:
                raise ConflictError("Deposit part is already paid")
            payment.status = CommissionStatus.partially_paid
            payment.deposit_paid_at = now
            if booking:
                booking.payment_status = BookingPaymentStatus.deposit_paid
        else:
            # full payment settles the deposit as well
            if payment.deposit_paid_at is None:
                payment.deposit_paid_at = now
            payment.status = CommissionStatus.paid
            payment.final_paid_at = now
            if booking:
                booking.payment_status = BookingPaymentStatus.fully_paid

        await self.session.commit()
        logging.info(f"Commission for booking {booking_id}: {part.value} {status.value}, now {payment.status.value}")
        return payment

    async def cancel_open(self, booking_id: uuid.UUID) -> None:
        """Cancel whatever is still unpaid after a booking is called off. Caller commits."""
        payment = await self.get_for_booking(booking_id)
        if payment and payment.status in (CommissionStatus.pending, CommissionStatus.partially_paid):
            payment.status = CommissionStatus.cancelled

    async def backfill(self) -> int:
        """Create missing commission payments for approved bookings that have a seller."""
        res = await self.session.execute(
            select(Booking)
            .outerjoin(CommissionPayment, CommissionPayment.booking_id == Booking.id)
            .where(
                Booking.status == BookingStatus.approved,
                Booking.seller_id.is_not(None),
                CommissionPayment.id.is_(None),
            )
        )
        bookings = res.scalars().all()
        created = 0
        for booking in bookings:
            try:
                await self.create_for_booking(booking)
                created += 1
            except InvalidCommissionPolicy as e:
                logging.error(f"Skipping commission backfill for booking {booking.id}: {e.message}")
        await self.session.commit()
        logging.info(f"Commission backfill created {created} payments")
        return created
