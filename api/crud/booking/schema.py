import uuid
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict
from api.models.trip import BookingPaymentStatus, BookingStatus, CommissionType


class BookingCreate(BaseModel):
    trip_id: uuid.UUID
    passenger_count: int = 1
    customer_name: str | None = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    trip_id: uuid.UUID
    seller_id: uuid.UUID | None = None
    customer_name: str | None = None
    passenger_count: int
    status: BookingStatus
    payment_status: BookingPaymentStatus
    price_per_person: Decimal
    commission_type: CommissionType
    commission_value: Decimal
    commission_amount: Decimal
    approved_at: datetime | None = None
    approved_by: uuid.UUID | None = None
    created_at: datetime
