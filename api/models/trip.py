import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from utils.time import utcnow


class CommissionType(enum.Enum):
    fixed = "fixed"
    percentage = "percentage"


class BookingStatus(enum.Enum):
    pending = "pending"
    inprogress = "inprogress"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class BookingPaymentStatus(enum.Enum):
    pending = "pending"
    deposit_paid = "deposit_paid"
    fully_paid = "fully_paid"
    cancelled = "cancelled"


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False)
    price_per_person: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_type: Mapped[CommissionType] = mapped_column(Enum(CommissionType, name="commissiontype"), nullable=False)
    commission_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("trips.id"), nullable=False, index=True)
    seller_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    passenger_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="bookingstatus"), default=BookingStatus.pending, nullable=False
    )
    payment_status: Mapped[BookingPaymentStatus] = mapped_column(
        Enum(BookingPaymentStatus, name="bookingpaymentstatus"), default=BookingPaymentStatus.pending, nullable=False
    )

    # commission terms as they were when the booking was placed
    price_per_person: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_type: Mapped[CommissionType] = mapped_column(Enum(CommissionType, name="commissiontype"), nullable=False)
    commission_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
