import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .schema import EarningRuleCreate, EarningRuleUpdate
from api.crud.audit import write_audit
from api.errors import NotFound, ValidationError
from api.models import CoinEarningRule, User
from utils.time import utcnow


class EarningRuleService:
    """
    Admin-managed table of how many coins each kind of seller activity is
    worth. Rules are listed highest priority first, the order they are
    evaluated in.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, rule_id: uuid.UUID) -> CoinEarningRule:
        rule = await self.session.get(CoinEarningRule, rule_id)
        if not rule:
            raise NotFound("Earning rule not found")
        return rule

    async def list_all(self, is_active: bool | None = None) -> list[CoinEarningRule]:
        stmt = select(CoinEarningRule)
        if is_active is not None:
            stmt = stmt.where(CoinEarningRule.is_active.is_(is_active))
        res = await self.session.execute(
            stmt.order_by(CoinEarningRule.priority.desc(), CoinEarningRule.created_at)
        )
        return list(res.scalars().all())

    async def create(self, dto: EarningRuleCreate, actor: User) -> CoinEarningRule:
        if not dto.rule_name.strip():
            raise ValidationError("Rule name is required")
        if dto.coin_amount <= 0:
            raise ValidationError("Coin amount must be greater than 0")

        rule = CoinEarningRule(**dto.model_dump())
        self.session.add(rule)
        await self.session.flush()
        write_audit(self.session, actor.id, "earning_rule.create", "coin_earning_rules", rule.id, {"rule_name": rule.rule_name})
        await self.session.commit()
        return rule

    async def update(self, rule_id: uuid.UUID, dto: EarningRuleUpdate, actor: User) -> CoinEarningRule:
        changes = dto.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields to update")
        if "coin_amount" in changes and (changes["coin_amount"] is None or changes["coin_amount"] <= 0):
            raise ValidationError("Coin amount must be greater than 0")
        for key, value in changes.items():
            if value is None and key != "conditions":
                raise ValidationError(f"{key} cannot be empty")

        rule = await self.get(rule_id)
        for key, value in changes.items():
            setattr(rule, key, value)
        rule.updated_at = utcnow()
        write_audit(self.session, actor.id, "earning_rule.update", "coin_earning_rules", rule.id, {"fields": sorted(changes)})
        await self.session.commit()
        logging.info(f"Earning rule {rule.id} updated by {actor.id}: {sorted(changes)}")
        return rule
