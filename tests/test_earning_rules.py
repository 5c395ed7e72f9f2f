"""
Tests for the admin-managed coin earning rules.
"""

import uuid

import pytest
from sqlalchemy import select

from api.crud.earning_rule import EarningRuleService
from api.crud.earning_rule.schema import EarningRuleCreate, EarningRuleUpdate
from api.errors import NotFound, ValidationError
from api.models import AuditLog, CoinEarningRule, EarningRuleType
from tests.conftest import as_user


async def add_rule(session, **overrides):
    fields = dict(rule_name="Booking approved", rule_type=EarningRuleType.booking_approved, coin_amount=50)
    fields.update(overrides)
    rule = CoinEarningRule(**fields)
    session.add(rule)
    await session.commit()
    return rule


class TestEarningRuleService:
    """Tests for listing and editing rules."""

    async def test_listed_by_priority(self, session):
        await add_rule(session, rule_name="Low", priority=1)
        await add_rule(session, rule_name="High", rule_type=EarningRuleType.referral_signup, priority=10)
        await add_rule(session, rule_name="Off", priority=5, is_active=False)
        service = EarningRuleService(session)

        assert [r.rule_name for r in await service.list_all()] == ["High", "Off", "Low"]
        assert [r.rule_name for r in await service.list_all(is_active=True)] == ["High", "Low"]

    async def test_update_whitelisted_fields(self, session, admin):
        rule = await add_rule(session)

        rule = await EarningRuleService(session).update(
            rule.id, EarningRuleUpdate(coin_amount=75, priority=3, conditions={"min_passengers": 2}), admin
        )

        assert rule.coin_amount == 75
        assert rule.priority == 3
        assert rule.conditions == {"min_passengers": 2}
        assert rule.rule_type == EarningRuleType.booking_approved
        audit = (await session.execute(select(AuditLog).where(AuditLog.entity_id == rule.id))).scalar_one()
        assert audit.action == "earning_rule.update"

    async def test_nothing_to_update(self, session, admin):
        rule = await add_rule(session)

        with pytest.raises(ValidationError, match="No valid fields to update"):
            await EarningRuleService(session).update(rule.id, EarningRuleUpdate(), admin)

    @pytest.mark.parametrize("amount", [0, -10])
    async def test_amount_must_be_positive(self, session, admin, amount):
        rule = await add_rule(session)

        with pytest.raises(ValidationError, match="Coin amount must be greater than 0"):
            await EarningRuleService(session).update(rule.id, EarningRuleUpdate(coin_amount=amount), admin)

    async def test_unknown_rule(self, session, admin):
        with pytest.raises(NotFound):
            await EarningRuleService(session).update(uuid.uuid4(), EarningRuleUpdate(priority=1), admin)

    async def test_create(self, session, admin):
        rule = await EarningRuleService(session).create(
            EarningRuleCreate(rule_name="Monthly target", rule_type=EarningRuleType.sales_target_monthly, coin_amount=500),
            admin,
        )

        assert rule.calculation_type == "fixed"
        assert rule.is_active is True
        assert rule.priority == 0


class TestEarningRuleApi:
    """Tests for the admin rule routes."""

    async def test_patch(self, client, session, admin):
        rule = await add_rule(session)

        resp = await client.patch(
            f"/admin/coin-rules/{rule.id}",
            json={"coin_amount": 80, "is_active": False},
            headers=as_user(admin),
        )

        assert resp.status_code == 200
        assert resp.json()["coin_amount"] == 80
        assert resp.json()["is_active"] is False

    async def test_patch_ignores_other_fields(self, client, session, admin):
        rule = await add_rule(session)

        resp = await client.patch(
            f"/admin/coin-rules/{rule.id}", json={"rule_type": "referral_signup"}, headers=as_user(admin)
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == {"kind": "validation_error", "message": "No valid fields to update"}

    async def test_patch_zero_amount(self, client, session, admin):
        rule = await add_rule(session)

        resp = await client.patch(f"/admin/coin-rules/{rule.id}", json={"coin_amount": 0}, headers=as_user(admin))

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Coin amount must be greater than 0"

    async def test_sellers_cannot_list(self, client, seller):
        resp = await client.get("/admin/coin-rules", headers=as_user(seller))

        assert resp.status_code == 403

    async def test_create_and_list(self, client, admin):
        resp = await client.post(
            "/admin/coin-rules",
            json={"rule_name": "Referral signup", "rule_type": "referral_signup", "coin_amount": 20, "priority": 2},
            headers=as_user(admin),
        )
        assert resp.status_code == 201

        rules = (await client.get("/admin/coin-rules", headers=as_user(admin))).json()
        assert [r["rule_name"] for r in rules] == ["Referral signup"]
