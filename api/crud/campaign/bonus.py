import logging
import uuid
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import validate_window
from .schema import BonusCampaignCreate, BonusCampaignUpdate
from api.crud.audit import write_audit
from api.crud.ledger import LedgerService
from api.crud.ledger.schema import BookingBonusMeta
from api.errors import NotFound, ValidationError
from api.models import Booking, CoinBonusCampaign, CoinTransaction, SourceType, TransactionType, User
from utils.time import to_naive_utc, utcnow


def _validate_bonus(data: dict[str, Any]) -> None:
    if not (data.get("title") or "").strip():
        raise ValidationError("title is required")
    if (data.get("coin_amount") or 0) <= 0:
        raise ValidationError("coin_amount must be greater than 0")
    validate_window(data.get("start_date"), data.get("end_date"))


class BonusCampaignService:
    """Time-boxed coin bonuses granted once per approved booking."""

    def __init__(self, session: AsyncSession, ledger: LedgerService | None = None):
        self.session = session
        self.ledger = ledger or LedgerService(session)

    @staticmethod
    def grant_key(campaign_id: uuid.UUID, booking_id: uuid.UUID) -> str:
        return f"bonus:{campaign_id}:{booking_id}"

    async def get_campaign(self, campaign_id: uuid.UUID) -> CoinBonusCampaign:
        campaign = await self.session.get(CoinBonusCampaign, campaign_id)
        if not campaign:
            raise NotFound("Bonus campaign not found")
        return campaign

    async def create(self, dto: BonusCampaignCreate, actor: User) -> CoinBonusCampaign:
        data = dto.model_dump()
        data["start_date"] = to_naive_utc(data["start_date"])
        data["end_date"] = to_naive_utc(data["end_date"])
        _validate_bonus(data)

        campaign = CoinBonusCampaign(**data, created_by=actor.id)
        self.session.add(campaign)
        await self.session.flush()
        write_audit(self.session, actor.id, "bonus_campaign.create", "coin_bonus_campaigns", campaign.id, {"title": campaign.title})
        await self.session.commit()
        return campaign

    async def update(self, campaign_id: uuid.UUID, dto: BonusCampaignUpdate, actor: User) -> CoinBonusCampaign:
        campaign = await self.get_campaign(campaign_id)
        changes = dto.model_dump(exclude_unset=True)
        for key in ("start_date", "end_date"):
            if key in changes:
                changes[key] = to_naive_utc(changes[key])

        merged = {column.key: getattr(campaign, column.key) for column in CoinBonusCampaign.__table__.columns}
        merged.update(changes)
        _validate_bonus(merged)

        for key, value in changes.items():
            setattr(campaign, key, value)
        campaign.updated_at = utcnow()
        write_audit(self.session, actor.id, "bonus_campaign.update", "coin_bonus_campaigns", campaign.id, {"fields": sorted(changes)})
        await self.session.commit()
        return campaign

    async def delete(self, campaign_id: uuid.UUID, actor: User) -> str:
        campaign = await self.get_campaign(campaign_id)
        grants = await self.session.scalar(
            select(func.count()).select_from(CoinTransaction).where(
                CoinTransaction.idempotency_key.like(f"bonus:{campaign_id}:%")
            )
        )
        if grants:
            campaign.is_active = False
            campaign.updated_at = utcnow()
            outcome = "deactivated"
        else:
            await self.session.delete(campaign)
            outcome = "deleted"
        write_audit(self.session, actor.id, f"bonus_campaign.{outcome}", "coin_bonus_campaigns", campaign_id)
        await self.session.commit()
        return outcome

    async def list_all(
        self, is_active: bool | None = None, page: int = 1, page_size: int = 20
    ) -> tuple[list[CoinBonusCampaign], int]:
        filters = []
        if is_active is not None:
            filters.append(CoinBonusCampaign.is_active.is_(is_active))
        total = await self.session.scalar(select(func.count()).select_from(CoinBonusCampaign).where(*filters))
        res = await self.session.execute(
            select(CoinBonusCampaign)
            .where(*filters)
            .order_by(CoinBonusCampaign.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(res.scalars().all()), total or 0

    async def list_active(self, trip_id: uuid.UUID | None = None) -> list[CoinBonusCampaign]:
        now = utcnow()
        stmt = select(CoinBonusCampaign).where(
            CoinBonusCampaign.is_active.is_(True),
            CoinBonusCampaign.start_date <= now,
            CoinBonusCampaign.end_date >= now,
        )
        if trip_id is not None:
            stmt = stmt.where(or_(CoinBonusCampaign.target_trip_id.is_(None), CoinBonusCampaign.target_trip_id == trip_id))
        res = await self.session.execute(stmt.order_by(CoinBonusCampaign.end_date.asc()))
        return list(res.scalars().all())

    async def apply_for_booking(self, booking: Booking) -> list[CoinTransaction]:
        """Grant every running bonus that targets this booking. Caller commits."""
        if booking.seller_id is None:
            return []

        grants = []
        for campaign in await self.list_active(booking.trip_id):
            key = self.grant_key(campaign.id, booking.id)
            if await self.ledger.has_transaction(key):
                continue
            grants.append(await self.ledger.record_transaction(
                seller_id=booking.seller_id,
                amount=campaign.coin_amount,
                transaction_type=TransactionType.campaign,
                source_type=SourceType.booking,
                description=f"Bonus: {campaign.title}",
                source_id=booking.id,
                metadata=BookingBonusMeta(campaign_id=campaign.id, booking_id=booking.id, trip_id=booking.trip_id),
                coin_type=campaign.coin_type,
                idempotency_key=key,
            ))
        if grants:
            logging.info(f"Booking {booking.id} earned {len(grants)} bonus grants for seller {booking.seller_id}")
        return grants
