import logging
import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .schema import GamificationCampaignCreate, GamificationCampaignUpdate, ProgressStats
from api.crud.audit import write_audit
from api.crud.ledger import LedgerService
from api.crud.ledger.schema import CampaignRewardMeta, UnlockMeta
from api.database import dialect_insert
from api.errors import (
    CampaignNotActive,
    CampaignOutOfWindow,
    ConflictError,
    LedgerError,
    NotFound,
    TaskAlreadyCompleted,
    ValidationError,
)
from api.models import (
    CoinTransaction,
    CoinType,
    Condition2Action,
    GamificationCampaign,
    SellerCampaignProgress,
    SourceType,
    TransactionType,
    User,
)
from utils.time import to_naive_utc, utcnow


def validate_window(start_date, end_date) -> None:
    if start_date is None or end_date is None:
        raise ValidationError("start_date and end_date are required")
    if end_date <= start_date:
        raise ValidationError("end_date must be after start_date")


def _validate_gamification(data: dict[str, Any]) -> None:
    if not (data.get("title") or "").strip():
        raise ValidationError("title is required")
    if not (data.get("condition_1_type") or "").strip():
        raise ValidationError("condition_1_type is required")
    if (data.get("condition_1_reward_amount") or 0) <= 0:
        raise ValidationError("condition_1_reward_amount must be greater than 0")
    bonus = data.get("condition_2_bonus_amount") or 0
    if bonus < 0:
        raise ValidationError("condition_2_bonus_amount must not be negative")
    if data.get("condition_2_action") == Condition2Action.bonus and bonus <= 0:
        raise ValidationError("condition_2_bonus_amount is required for a bonus action")
    validate_window(data.get("start_date"), data.get("end_date"))


class GamificationService:
    """
    Two-stage campaigns: NotStarted -> Condition1Complete -> BothComplete.

    Transition 1 is seller-triggered (`complete_task`), transition 2 is
    verified by an admin (`complete_condition_2`). Neither ever goes back.
    """

    def __init__(self, session: AsyncSession, ledger: LedgerService | None = None):
        self.session = session
        self.ledger = ledger or LedgerService(session)

    async def get_campaign(self, campaign_id: uuid.UUID) -> GamificationCampaign:
        campaign = await self.session.get(GamificationCampaign, campaign_id)
        if not campaign:
            raise NotFound("Campaign not found")
        return campaign

    async def get_progress(
        self, seller_id: uuid.UUID, campaign_id: uuid.UUID, for_update: bool = False
    ) -> SellerCampaignProgress | None:
        stmt = (
            select(SellerCampaignProgress)
            .where(
                SellerCampaignProgress.seller_id == seller_id,
                SellerCampaignProgress.campaign_id == campaign_id,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def create(self, dto: GamificationCampaignCreate, actor: User) -> GamificationCampaign:
        data = dto.model_dump()
        data["start_date"] = to_naive_utc(data["start_date"])
        data["end_date"] = to_naive_utc(data["end_date"])
        _validate_gamification(data)

        campaign = GamificationCampaign(**data, created_by=actor.id)
        self.session.add(campaign)
        await self.session.flush()
        write_audit(self.session, actor.id, "campaign.create", "gamification_campaigns", campaign.id, {"title": campaign.title})
        await self.session.commit()
        logging.info(f"Gamification campaign {campaign.id} created by {actor.id}")
        return campaign

    async def update(self, campaign_id: uuid.UUID, dto: GamificationCampaignUpdate, actor: User) -> GamificationCampaign:
        campaign = await self.get_campaign(campaign_id)
        changes = dto.model_dump(exclude_unset=True)
        for key in ("start_date", "end_date"):
            if key in changes:
                changes[key] = to_naive_utc(changes[key])

        merged = {column.key: getattr(campaign, column.key) for column in GamificationCampaign.__table__.columns}
        merged.update(changes)
        _validate_gamification(merged)

        for key, value in changes.items():
            setattr(campaign, key, value)
        campaign.updated_at = utcnow()
        write_audit(
            self.session, actor.id, "campaign.update", "gamification_campaigns", campaign.id,
            {"fields": sorted(changes)},
        )
        await self.session.commit()
        return campaign

    async def delete(self, campaign_id: uuid.UUID, actor: User) -> str:
        """Hard delete an untouched campaign, otherwise only deactivate it."""
        campaign = await self.get_campaign(campaign_id)
        progress_count = await self.session.scalar(
            select(func.count()).select_from(SellerCampaignProgress).where(SellerCampaignProgress.campaign_id == campaign_id)
        )
        if progress_count:
            campaign.is_active = False
            campaign.updated_at = utcnow()
            outcome = "deactivated"
        else:
            await self.session.delete(campaign)
            outcome = "deleted"
        write_audit(self.session, actor.id, f"campaign.{outcome}", "gamification_campaigns", campaign_id)
        await self.session.commit()
        logging.info(f"Gamification campaign {campaign_id} {outcome} by {actor.id}")
        return outcome

    async def list_all(self, is_active: bool | None = None) -> list[GamificationCampaign]:
        stmt = select(GamificationCampaign).order_by(GamificationCampaign.created_at.desc())
        if is_active is not None:
            stmt = stmt.where(GamificationCampaign.is_active.is_(is_active))
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def list_for_seller(self, seller_id: uuid.UUID) -> list[tuple[GamificationCampaign, SellerCampaignProgress | None]]:
        now = utcnow()
        res = await self.session.execute(
            select(GamificationCampaign)
            .where(
                GamificationCampaign.is_active.is_(True),
                GamificationCampaign.start_date <= now,
                GamificationCampaign.end_date >= now,
            )
            .order_by(GamificationCampaign.end_date.asc())
        )
        campaigns = list(res.scalars().all())
        if not campaigns:
            return []

        res = await self.session.execute(
            select(SellerCampaignProgress).where(
                SellerCampaignProgress.seller_id == seller_id,
                SellerCampaignProgress.campaign_id.in_([c.id for c in campaigns]),
            )
        )
        progress = {p.campaign_id: p for p in res.scalars().all()}
        return [(c, progress.get(c.id)) for c in campaigns]

    async def complete_task(
        self, seller: User, campaign_id: uuid.UUID, task_data: dict[str, Any] | None = None
    ) -> tuple[CoinTransaction, SellerCampaignProgress]:
        campaign = await self.get_campaign(campaign_id)
        if not campaign.is_active:
            raise CampaignNotActive("Campaign is not active")
        now = utcnow()
        if not (campaign.start_date <= now <= campaign.end_date):
            raise CampaignOutOfWindow("Campaign is not running at this time")

        existing = await self.get_progress(seller.id, campaign.id)
        if existing and existing.condition_1_completed:
            raise TaskAlreadyCompleted()

        task_data = task_data or {}
        try:
            tx = await self.ledger.record_transaction(
                seller_id=seller.id,
                amount=campaign.condition_1_reward_amount,
                transaction_type=TransactionType.gamification,
                source_type=SourceType.gamification,
                description=f"Campaign reward: {campaign.title}",
                source_id=campaign.id,
                metadata=CampaignRewardMeta(campaign_id=campaign.id, condition=1, task_data=task_data),
                coin_type=campaign.condition_1_reward_type,
                idempotency_key=f"gamification:{campaign.id}:{seller.id}:1",
            )
        except ConflictError:
            raise TaskAlreadyCompleted()

        stmt = (
            dialect_insert(self.session, SellerCampaignProgress)
            .values(
                id=uuid.uuid4(),
                seller_id=seller.id,
                campaign_id=campaign.id,
                condition_1_completed=True,
                condition_1_completed_at=now,
                condition_1_transaction_id=tx.id,
                condition_1_data=task_data,
                condition_2_completed=False,
                both_completed=False,
                created_at=now,
                updated_at=now,
            )
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["seller_id", "campaign_id"],
            set_={
                "condition_1_completed": True,
                "condition_1_completed_at": now,
                "condition_1_transaction_id": tx.id,
                "condition_1_data": task_data,
                "updated_at": now,
            },
            where=SellerCampaignProgress.condition_1_completed.is_(False),
        ).returning(SellerCampaignProgress.id)
        res = await self.session.execute(stmt)
        if res.scalar_one_or_none() is None:
            # another request completed the task first; drop our reward
            await self.session.rollback()
            raise TaskAlreadyCompleted()

        await self.session.commit()
        progress = await self.get_progress(seller.id, campaign.id)
        logging.info(f"Seller {seller.id} completed condition 1 of campaign {campaign.id}")
        return tx, progress

    async def complete_condition_2(
        self, campaign_id: uuid.UUID, seller_id: uuid.UUID, actor: User
    ) -> tuple[SellerCampaignProgress, list[CoinTransaction]]:
        campaign = await self.get_campaign(campaign_id)
        progress = await self.get_progress(seller_id, campaign.id, for_update=True)
        if not progress or not progress.condition_1_completed:
            raise ValidationError("Condition 1 must be completed first")
        if progress.condition_2_completed:
            raise ConflictError("Condition 2 is already completed")

        now = utcnow()
        res = await self.session.execute(
            update(SellerCampaignProgress)
            .where(
                SellerCampaignProgress.id == progress.id,
                SellerCampaignProgress.condition_2_completed.is_(False),
            )
            .values(condition_2_completed=True, condition_2_completed_at=now, both_completed=True, updated_at=now)
            .returning(SellerCampaignProgress.id)
            .execution_options(synchronize_session=False)
        )
        if res.scalar_one_or_none() is None:
            await self.session.rollback()
            raise ConflictError("Condition 2 is already completed")

        transactions: list[CoinTransaction] = []
        try:
            if (
                campaign.condition_2_action == Condition2Action.unlock
                and campaign.condition_1_reward_type == CoinType.locked
            ):
                transactions.append(await self.ledger.unlock_coins(
                    seller_id=seller_id,
                    amount=campaign.condition_1_reward_amount,
                    source_type=SourceType.gamification,
                    description=f"Unlocked: {campaign.title}",
                    source_id=campaign.id,
                    metadata=UnlockMeta(campaign_id=campaign.id, unlocked_by=actor.id),
                    idempotency_key=f"gamification:{campaign.id}:{seller_id}:unlock",
                ))
            if campaign.condition_2_action != Condition2Action.none and campaign.condition_2_bonus_amount > 0:
                transactions.append(await self.ledger.record_transaction(
                    seller_id=seller_id,
                    amount=campaign.condition_2_bonus_amount,
                    transaction_type=TransactionType.gamification,
                    source_type=SourceType.gamification,
                    description=f"Campaign bonus: {campaign.title}",
                    source_id=campaign.id,
                    metadata=CampaignRewardMeta(campaign_id=campaign.id, condition=2),
                    coin_type=CoinType.redeemable,
                    idempotency_key=f"gamification:{campaign.id}:{seller_id}:2",
                ))
        except LedgerError:
            await self.session.rollback()
            raise

        write_audit(
            self.session, actor.id, "campaign.condition_2", "seller_campaign_progress", progress.id,
            {"seller_id": str(seller_id), "transactions": [str(t.id) for t in transactions]},
        )
        await self.session.commit()
        logging.info(f"Seller {seller_id} completed campaign {campaign.id}, verified by {actor.id}")
        return await self.get_progress(seller_id, campaign.id), transactions

    async def list_progress(
        self,
        campaign_id: uuid.UUID | None = None,
        seller_id: uuid.UUID | None = None,
        completed: bool | None = None,
    ) -> tuple[list[SellerCampaignProgress], ProgressStats]:
        stmt = select(SellerCampaignProgress).order_by(SellerCampaignProgress.updated_at.desc())
        if campaign_id is not None:
            stmt = stmt.where(SellerCampaignProgress.campaign_id == campaign_id)
        if seller_id is not None:
            stmt = stmt.where(SellerCampaignProgress.seller_id == seller_id)
        if completed is not None:
            stmt = stmt.where(SellerCampaignProgress.both_completed.is_(completed))
        res = await self.session.execute(stmt)
        items = list(res.scalars().all())

        stats = ProgressStats(
            total=len(items),
            completed=sum(1 for p in items if p.both_completed),
            in_progress=sum(1 for p in items if not p.both_completed),
            condition_1_completed=sum(1 for p in items if p.condition_1_completed),
            condition_2_completed=sum(1 for p in items if p.condition_2_completed),
        )
        return items, stats
