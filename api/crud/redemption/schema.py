import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict
from api.models.redemption import RedemptionStatus


class RedemptionCreate(BaseModel):
    coin_amount: int
    bank_account_id: uuid.UUID


class RedemptionStatusUpdate(BaseModel):
    status: Literal["approved", "rejected", "paid"]
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None


class RedemptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    coin_amount: int
    cash_amount: Decimal
    conversion_rate: Decimal
    bank_account_id: uuid.UUID
    status: RedemptionStatus
    requested_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    transaction_id: Optional[uuid.UUID] = None
