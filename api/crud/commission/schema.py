import enum
import uuid
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict
from api.models.commission import CommissionStatus


class CommissionPart(str, enum.Enum):
    deposit = "deposit"
    final = "final"


class CommissionMarkStatus(str, enum.Enum):
    paid = "paid"
    cancelled = "cancelled"


class CommissionMark(BaseModel):
    part: CommissionPart
    status: CommissionMarkStatus


class CommissionPaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    booking_id: uuid.UUID
    seller_id: uuid.UUID
    amount: Decimal
    deposit_amount: Decimal
    final_amount: Decimal
    status: CommissionStatus
    deposit_paid_at: datetime | None = None
    final_paid_at: datetime | None = None
    created_at: datetime
