import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, JSON, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .coins import CoinType
from utils.time import utcnow


class Condition2Action(enum.Enum):
    unlock = "unlock"
    bonus = "bonus"
    none = "none"


class BonusCampaignType(enum.Enum):
    booking = "booking"
    trip = "trip"


class GamificationCampaign(Base):
    __tablename__ = "gamification_campaigns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    condition_1_type: Mapped[str] = mapped_column(String, nullable=False)
    condition_1_reward_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    condition_1_reward_type: Mapped[CoinType] = mapped_column(Enum(CoinType, name="cointype"), nullable=False)
    condition_2_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    condition_2_action: Mapped[Condition2Action] = mapped_column(
        Enum(Condition2Action, name="condition2action"), default=Condition2Action.none, nullable=False
    )
    condition_2_bonus_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    target_trip_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("trips.id"), nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SellerCampaignProgress(Base):
    __tablename__ = "seller_campaign_progress"
    __table_args__ = (
        UniqueConstraint("seller_id", "campaign_id", name="uq_seller_campaign_progress"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    campaign_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("gamification_campaigns.id"), nullable=False, index=True)
    condition_1_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    condition_1_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    condition_1_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("coin_transactions.id"), nullable=True)
    condition_1_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    condition_2_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    condition_2_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    both_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class CoinBonusCampaign(Base):
    __tablename__ = "coin_bonus_campaigns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    campaign_type: Mapped[BonusCampaignType] = mapped_column(
        Enum(BonusCampaignType, name="bonuscampaigntype"), default=BonusCampaignType.booking, nullable=False
    )
    coin_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    coin_type: Mapped[CoinType] = mapped_column(Enum(CoinType, name="cointype"), default=CoinType.redeemable, nullable=False)
    target_trip_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("trips.id"), nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    conditions: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
