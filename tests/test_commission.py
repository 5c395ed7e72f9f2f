"""
Tests for commission calculation and commission payments.

Tests cover:
1. Fixed and percentage policies
2. Policy validation
3. Deposit / final split
4. One commission payment per booking
5. Payout progress and backfill
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from api.crud.booking import BookingService
from api.crud.booking.schema import BookingCreate
from api.crud.commission import CommissionService, calculate_commission, split_commission
from api.crud.commission.schema import CommissionMarkStatus, CommissionPart
from api.errors import ConflictError, InvalidCommissionPolicy
from api.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    CommissionPayment,
    CommissionStatus,
    CommissionType,
)


class TestCalculateCommission:
    """Tests for the pure commission function."""

    def test_percentage_of_price(self):
        assert calculate_commission(1000, 10, "percentage") == Decimal("100.00")

    def test_fixed_amount(self):
        assert calculate_commission(1000, 50, "fixed") == Decimal("50.00")

    def test_zero_value_is_zero(self):
        assert calculate_commission(Decimal("4590.00"), 0, CommissionType.fixed) == Decimal("0")
        assert calculate_commission(Decimal("4590.00"), 0, CommissionType.percentage) == Decimal("0")

    def test_percentage_rounds_to_cent(self):
        assert calculate_commission(Decimal("999.99"), Decimal("7.5"), "percentage") == Decimal("75.00")

    def test_negative_value_rejected(self):
        with pytest.raises(InvalidCommissionPolicy):
            calculate_commission(1000, -5, "fixed")

    def test_negative_price_rejected(self):
        with pytest.raises(InvalidCommissionPolicy):
            calculate_commission(-1, 10, "percentage")

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidCommissionPolicy):
            calculate_commission(1000, 10, "tiered")

    def test_split_keeps_total(self):
        deposit, final = split_commission(Decimal("100.01"))
        assert deposit == Decimal("50.00")
        assert final == Decimal("50.01")
        assert deposit + final == Decimal("100.01")


class TestCommissionPayments:
    """Tests for commission payment rows."""

    async def _approved_booking(self, session, seller, trip, passengers=2):
        booking = Booking(
            trip_id=trip.id,
            seller_id=seller.id,
            passenger_count=passengers,
            status=BookingStatus.approved,
            price_per_person=trip.price_per_person,
            commission_type=trip.commission_type,
            commission_value=trip.commission_value,
        )
        session.add(booking)
        await session.commit()
        return booking

    async def test_created_once_per_booking(self, session, seller, trip):
        """Test that a second create returns the existing row."""
        booking = await self._approved_booking(session, seller, trip)
        service = CommissionService(session)

        first = await service.create_for_booking(booking)
        second = await service.create_for_booking(booking)
        await session.commit()

        assert first.id == second.id
        count = await session.scalar(
            select(func.count()).select_from(CommissionPayment).where(CommissionPayment.booking_id == booking.id)
        )
        assert count == 1

    async def test_amount_uses_passenger_count(self, session, seller, trip):
        booking = await self._approved_booking(session, seller, trip, passengers=3)

        payment = await CommissionService(session).create_for_booking(booking)

        assert payment.amount == Decimal("300.00")
        assert payment.deposit_amount == Decimal("150.00")
        assert payment.final_amount == Decimal("150.00")
        assert payment.status == CommissionStatus.pending

    async def test_booking_without_seller_has_no_commission(self, session, trip):
        booking = Booking(
            trip_id=trip.id,
            seller_id=None,
            status=BookingStatus.approved,
            price_per_person=trip.price_per_person,
            commission_type=trip.commission_type,
            commission_value=trip.commission_value,
        )
        session.add(booking)
        await session.commit()

        assert await CommissionService(session).create_for_booking(booking) is None

    async def test_deposit_then_final(self, session, seller, trip):
        booking = await self._approved_booking(session, seller, trip)
        service = CommissionService(session)
        await service.create_for_booking(booking)
        await session.commit()

        payment = await service.mark(booking.id, CommissionPart.deposit, CommissionMarkStatus.paid)
        assert payment.status == CommissionStatus.partially_paid
        assert payment.deposit_paid_at is not None

        payment = await service.mark(booking.id, CommissionPart.final, CommissionMarkStatus.paid)
        assert payment.status == CommissionStatus.paid
        await session.refresh(booking)
        assert booking.payment_status == BookingPaymentStatus.fully_paid

        with pytest.raises(ConflictError):
            await service.mark(booking.id, CommissionPart.final, CommissionMarkStatus.cancelled)

    async def test_cancel_after_deposit(self, session, seller, trip):
        """Cancelling after the deposit keeps the deposit and cancels the rest."""
        booking = await self._approved_booking(session, seller, trip)
        service = CommissionService(session)
        await service.create_for_booking(booking)
        await session.commit()
        await service.mark(booking.id, CommissionPart.deposit, CommissionMarkStatus.paid)

        with pytest.raises(ConflictError):
            await service.mark(booking.id, CommissionPart.deposit, CommissionMarkStatus.cancelled)

        payment = await service.mark(booking.id, CommissionPart.final, CommissionMarkStatus.cancelled)
        assert payment.status == CommissionStatus.cancelled
        assert payment.deposit_paid_at is not None
        assert payment.final_paid_at is None

    async def test_backfill_creates_missing(self, session, seller, trip):
        booking = await self._approved_booking(session, seller, trip)

        created = await CommissionService(session).backfill()

        assert created == 1
        payment = await CommissionService(session).get_for_booking(booking.id)
        assert payment.amount == Decimal("200.00")
        assert await CommissionService(session).backfill() == 0


class TestFrozenCommissionTerms:
    """Tests that bookings keep the terms they were placed under."""

    async def test_trip_change_does_not_affect_booking(self, session, seller, admin, trip):
        service = BookingService(session)
        booking = await service.create_booking(seller, BookingCreate(trip_id=trip.id, passenger_count=1))
        assert booking.commission_amount == Decimal("100.00")

        trip.commission_type = CommissionType.fixed
        trip.commission_value = Decimal("10")
        await session.commit()

        booking, payment, _ = await service.update_status(booking.id, BookingStatus.approved, admin)

        assert booking.approved_by == admin.id
        assert payment.amount == Decimal("100.00")
