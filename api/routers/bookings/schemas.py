from pydantic import BaseModel
from api.crud.booking.schema import BookingRead
from api.crud.commission.schema import CommissionPaymentRead
from api.crud.ledger.schema import CoinTransactionRead


class BookingStatusResponse(BaseModel):
    booking: BookingRead
    commission: CommissionPaymentRead | None = None
    bonus_transactions: list[CoinTransactionRead] = []


class BackfillResponse(BaseModel):
    created: int
