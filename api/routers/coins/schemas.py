import math
import uuid
from pydantic import BaseModel, Field, computed_field
from api.crud.ledger.schema import CoinBalanceRead, CoinTransactionRead
from api.crud.redemption.schema import RedemptionRead


class CoinBalanceOut(BaseModel):
    locked_balance: int
    redeemable_balance: int
    total_balance: int
    total_earned: int
    total_redeemed: int

    @classmethod
    def from_balance(cls, balance: CoinBalanceRead) -> "CoinBalanceOut":
        return cls(total_balance=balance.total_balance, **balance.model_dump())


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "Pagination":
        return cls(page=page, page_size=page_size, total=total, total_pages=math.ceil(total / page_size) if total else 0)


class CoinsOverview(BaseModel):
    balance: CoinBalanceOut
    transactions: list[CoinTransactionRead]
    pagination: Pagination


class CoinAdjustRequest(BaseModel):
    seller_id: uuid.UUID
    amount: int
    description: str
    reason: str | None = None


class CoinAdjustResponse(BaseModel):
    transaction_id: uuid.UUID
    transaction: CoinTransactionRead
    new_balance: CoinBalanceOut = Field(..., description="Balance after the adjustment")


class RedemptionCreated(RedemptionRead):
    @computed_field
    @property
    def redemption_id(self) -> uuid.UUID:
        return self.id
