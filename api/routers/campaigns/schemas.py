import uuid
from typing import Literal
from pydantic import BaseModel
from api.crud.campaign.schema import (
    BonusCampaignRead,
    ProgressRead,
    ProgressStats,
)
from api.crud.ledger.schema import CoinTransactionRead
from api.routers.coins.schemas import Pagination


class CompleteTaskResponse(BaseModel):
    transaction_id: uuid.UUID
    progress: ProgressRead


class ConditionTwoResponse(BaseModel):
    progress: ProgressRead
    transactions: list[CoinTransactionRead]


class ProgressListResponse(BaseModel):
    items: list[ProgressRead]
    stats: ProgressStats


class BonusCampaignPage(BaseModel):
    items: list[BonusCampaignRead]
    pagination: Pagination


class DeleteResponse(BaseModel):
    id: uuid.UUID
    outcome: Literal["deleted", "deactivated"]
