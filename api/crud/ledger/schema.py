from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

from api.models.coins import CoinType, SourceType, TransactionType


class _Meta(BaseModel):
    extra: dict[str, Any] = Field(default_factory=dict)


class AdminAdjustmentMeta(_Meta):
    kind: Literal["admin_adjustment"] = "admin_adjustment"
    adjusted_by: uuid.UUID
    adjusted_by_email: Optional[str] = None
    reason: Optional[str] = None


class RedemptionMeta(_Meta):
    kind: Literal["redemption"] = "redemption"
    redemption_id: uuid.UUID
    cash_amount: Decimal
    conversion_rate: Decimal


class CampaignRewardMeta(_Meta):
    kind: Literal["campaign_reward"] = "campaign_reward"
    campaign_id: uuid.UUID
    condition: int
    task_data: dict[str, Any] = Field(default_factory=dict)


class BookingBonusMeta(_Meta):
    kind: Literal["booking_bonus"] = "booking_bonus"
    campaign_id: uuid.UUID
    booking_id: uuid.UUID
    trip_id: Optional[uuid.UUID] = None


class UnlockMeta(_Meta):
    kind: Literal["unlock"] = "unlock"
    campaign_id: Optional[uuid.UUID] = None
    unlocked_by: Optional[uuid.UUID] = None


TransactionMetadata = Annotated[
    Union[AdminAdjustmentMeta, RedemptionMeta, CampaignRewardMeta, BookingBonusMeta, UnlockMeta],
    Field(discriminator="kind"),
]

metadata_adapter = TypeAdapter(TransactionMetadata)


class CoinBalanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    locked_balance: int = 0
    redeemable_balance: int = 0
    total_earned: int = 0
    total_redeemed: int = 0

    @property
    def total_balance(self) -> int:
        return self.locked_balance + self.redeemable_balance


class CoinTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    amount: int
    coin_type: CoinType
    transaction_type: TransactionType
    source_type: SourceType
    source_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    meta: Optional[TransactionMetadata] = Field(
        default=None,
        validation_alias=AliasChoices("meta", "metadata"),
        serialization_alias="metadata",
    )
    balance_before: int
    balance_after: int
    created_at: datetime


class CoinStats(BaseModel):
    total_distributed: int
    total_redeemed: int
    total_locked: int
    total_redeemable: int
    pending_redemptions: int
    pending_redemption_coins: int
    pending_redemption_cash: Decimal
    approved_redemptions: int
    approved_redemption_coins: int
    approved_redemption_cash: Decimal
    active_campaigns: int
    sellers_with_coins: int
