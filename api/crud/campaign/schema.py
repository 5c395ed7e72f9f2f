import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.models.campaigns import BonusCampaignType, Condition2Action
from api.models.coins import CoinType


class GamificationCampaignCreate(BaseModel):
    title: str
    description: Optional[str] = None
    condition_1_type: str
    condition_1_reward_amount: int
    condition_1_reward_type: CoinType = CoinType.locked
    condition_2_type: Optional[str] = None
    condition_2_action: Condition2Action = Condition2Action.none
    condition_2_bonus_amount: int = 0
    target_trip_id: Optional[uuid.UUID] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True


class GamificationCampaignUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    condition_1_type: Optional[str] = None
    condition_1_reward_amount: Optional[int] = None
    condition_1_reward_type: Optional[CoinType] = None
    condition_2_type: Optional[str] = None
    condition_2_action: Optional[Condition2Action] = None
    condition_2_bonus_amount: Optional[int] = None
    target_trip_id: Optional[uuid.UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class GamificationCampaignRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    condition_1_type: str
    condition_1_reward_amount: int
    condition_1_reward_type: CoinType
    condition_2_type: Optional[str] = None
    condition_2_action: Condition2Action
    condition_2_bonus_amount: int
    target_trip_id: Optional[uuid.UUID] = None
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


class ProgressRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    campaign_id: uuid.UUID
    condition_1_completed: bool
    condition_1_completed_at: Optional[datetime] = None
    condition_1_transaction_id: Optional[uuid.UUID] = None
    condition_1_data: Optional[dict[str, Any]] = None
    condition_2_completed: bool
    condition_2_completed_at: Optional[datetime] = None
    both_completed: bool


class CampaignWithProgress(BaseModel):
    campaign: GamificationCampaignRead
    progress: Optional[ProgressRead] = None


class ProgressStats(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    condition_1_completed: int = 0
    condition_2_completed: int = 0


class CompleteTaskRequest(BaseModel):
    task_data: dict[str, Any] = Field(default_factory=dict)


class BonusCampaignCreate(BaseModel):
    title: str
    description: Optional[str] = None
    campaign_type: BonusCampaignType = BonusCampaignType.booking
    coin_amount: int
    coin_type: CoinType = CoinType.redeemable
    target_trip_id: Optional[uuid.UUID] = None
    start_date: datetime
    end_date: datetime
    conditions: Optional[dict[str, Any]] = None
    is_active: bool = True


class BonusCampaignUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    campaign_type: Optional[BonusCampaignType] = None
    coin_amount: Optional[int] = None
    coin_type: Optional[CoinType] = None
    target_trip_id: Optional[uuid.UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    conditions: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None


class BonusCampaignRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    campaign_type: BonusCampaignType
    coin_amount: int
    coin_type: CoinType
    target_trip_id: Optional[uuid.UUID] = None
    start_date: datetime
    end_date: datetime
    conditions: Optional[dict[str, Any]] = None
    is_active: bool
    created_at: datetime
