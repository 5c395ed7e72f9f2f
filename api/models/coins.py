import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Integer, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from utils.time import utcnow


class CoinType(enum.Enum):
    locked = "locked"
    redeemable = "redeemable"


class TransactionType(enum.Enum):
    bonus = "bonus"
    adjustment = "adjustment"
    campaign = "campaign"
    gamification = "gamification"
    unlock = "unlock"
    redemption = "redemption"


class SourceType(enum.Enum):
    booking = "booking"
    campaign = "campaign"
    admin = "admin"
    gamification = "gamification"
    redemption = "redemption"


class SellerCoinBalance(Base):
    __tablename__ = "seller_coins"
    __table_args__ = (
        CheckConstraint("locked_balance >= 0", name="ck_seller_coins_locked_non_negative"),
        CheckConstraint("redeemable_balance >= 0", name="ck_seller_coins_redeemable_non_negative"),
    )

    seller_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), primary_key=True)
    locked_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    redeemable_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_redeemed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class CoinTransaction(Base):
    """Append-only. Rows are never updated or deleted."""
    __tablename__ = "coin_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    coin_type: Mapped[CoinType] = mapped_column(Enum(CoinType, name="cointype"), nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType, name="cointransactiontype"), nullable=False)
    source_type: Mapped[SourceType] = mapped_column(Enum(SourceType, name="coinsourcetype"), nullable=False)
    source_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String, nullable=True, unique=True)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)


class EarningRuleType(enum.Enum):
    booking_approved = "booking_approved"
    sales_target_monthly = "sales_target_monthly"
    referral_first_sale = "referral_first_sale"
    referral_signup = "referral_signup"


class CoinEarningRule(Base):
    __tablename__ = "coin_earning_rules"
    __table_args__ = (
        CheckConstraint("coin_amount > 0", name="ck_coin_earning_rules_amount_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    rule_name: Mapped[str] = mapped_column(String, nullable=False)
    rule_type: Mapped[EarningRuleType] = mapped_column(Enum(EarningRuleType, name="earningruletype"), nullable=False)
    coin_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    calculation_type: Mapped[str] = mapped_column(String, default="fixed", nullable=False)
    conditions: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
