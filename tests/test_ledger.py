"""
Tests for the balance store and transaction log.

Tests cover:
1. Credits, debits and the no-negative guard
2. Conservation of coins across every kind of change
3. Idempotency keys
4. Unlocking locked coins
5. Admin adjustments
6. History pagination and reconciliation
"""

import uuid

import pytest
from sqlalchemy import func, select

from api.crud.ledger import LedgerService
from api.crud.ledger.schema import AdminAdjustmentMeta, CoinTransactionRead
from api.errors import ConflictError, InsufficientBalance, InvalidAmount, NotFound
from api.models import CoinTransaction, CoinType, SourceType, TransactionType
from services.bground.jobs import reconcile_balances


def assert_conserved(balance):
    assert balance.total_earned - balance.total_redeemed == balance.locked_balance + balance.redeemable_balance


async def credit(ledger, seller, amount, coin_type=CoinType.redeemable, key=None):
    return await ledger.record_transaction(
        seller_id=seller.id,
        amount=amount,
        transaction_type=TransactionType.bonus,
        source_type=SourceType.admin,
        description="test credit",
        coin_type=coin_type,
        idempotency_key=key,
    )


class TestRecordTransaction:
    """Tests for appending to the ledger."""

    async def test_credit_updates_balance_and_log(self, session, seller):
        ledger = LedgerService(session)

        tx = await credit(ledger, seller, 500)
        await session.commit()

        balance = await ledger.get_balance(seller.id)
        assert balance.redeemable_balance == 500
        assert balance.total_earned == 500
        assert tx.balance_before == 0
        assert tx.balance_after == 500

    async def test_unknown_seller_reads_as_zero(self, session):
        balance = await LedgerService(session).get_balance(uuid.uuid4())

        assert balance.total_balance == 0

    async def test_zero_amount_rejected(self, session, seller):
        with pytest.raises(InvalidAmount):
            await credit(LedgerService(session), seller, 0)

    async def test_debit_beyond_balance_rejected(self, session, seller):
        """Test that a debit can never push a bucket below zero."""
        ledger = LedgerService(session)
        await credit(ledger, seller, 100)
        await session.commit()

        with pytest.raises(InsufficientBalance):
            await ledger.record_transaction(
                seller_id=seller.id,
                amount=-101,
                transaction_type=TransactionType.adjustment,
                source_type=SourceType.admin,
            )

        balance = await ledger.get_balance(seller.id)
        assert balance.redeemable_balance == 100
        count = await session.scalar(select(func.count()).select_from(CoinTransaction))
        assert count == 1

    async def test_locked_coins_cannot_pay_redeemable_debit(self, session, seller):
        ledger = LedgerService(session)
        await credit(ledger, seller, 300, coin_type=CoinType.locked)

        with pytest.raises(InsufficientBalance):
            await ledger.record_transaction(
                seller_id=seller.id,
                amount=-1,
                transaction_type=TransactionType.redemption,
                source_type=SourceType.redemption,
            )

    async def test_conservation_across_changes(self, session, seller):
        ledger = LedgerService(session)
        await credit(ledger, seller, 700)
        await credit(ledger, seller, 300, coin_type=CoinType.locked)
        await ledger.record_transaction(
            seller_id=seller.id, amount=-200,
            transaction_type=TransactionType.adjustment, source_type=SourceType.admin,
        )
        await ledger.record_transaction(
            seller_id=seller.id, amount=-150,
            transaction_type=TransactionType.redemption, source_type=SourceType.redemption,
        )
        await ledger.unlock_coins(seller.id, 100, SourceType.gamification)
        await session.commit()

        balance = await ledger.get_balance(seller.id)
        assert balance.locked_balance == 200
        assert balance.redeemable_balance == 450
        assert balance.total_earned == 800
        assert balance.total_redeemed == 150
        assert_conserved(balance)

    async def test_duplicate_idempotency_key(self, session, seller):
        ledger = LedgerService(session)
        await credit(ledger, seller, 50, key="bonus:test:1")
        await session.commit()

        with pytest.raises(ConflictError):
            await credit(ledger, seller, 50, key="bonus:test:1")

        assert (await ledger.get_balance(seller.id)).redeemable_balance == 50

    async def test_lost_race_on_idempotency_key(self, session, seller, monkeypatch):
        """Test that the unique key still rejects a duplicate the pre-check missed."""
        seller_id = seller.id
        ledger = LedgerService(session)
        await credit(ledger, seller, 50, key="bonus:test:race")
        await session.commit()

        async def not_seen(key):
            return False

        monkeypatch.setattr(ledger, "has_transaction", not_seen)

        with pytest.raises(ConflictError):
            await credit(ledger, seller, 50, key="bonus:test:race")

        count = await session.scalar(select(func.count()).select_from(CoinTransaction))
        assert count == 1
        balance = await ledger.get_balance(seller_id)
        assert balance.redeemable_balance == 50
        assert balance.total_earned == 50

    async def test_metadata_round_trips_as_tagged_union(self, session, seller, admin):
        ledger = LedgerService(session)
        tx = await ledger.record_transaction(
            seller_id=seller.id,
            amount=10,
            transaction_type=TransactionType.bonus,
            source_type=SourceType.admin,
            metadata=AdminAdjustmentMeta(adjusted_by=admin.id, reason="welcome", extra={"ticket": "T-1"}),
        )
        await session.commit()

        read = CoinTransactionRead.model_validate(tx)
        assert isinstance(read.meta, AdminAdjustmentMeta)
        assert read.meta.adjusted_by == admin.id
        assert read.meta.extra == {"ticket": "T-1"}
        assert read.model_dump(mode="json", by_alias=True)["metadata"]["kind"] == "admin_adjustment"


class TestUnlock:
    """Tests for re-typing locked coins."""

    async def test_unlock_moves_coins_and_keeps_totals(self, session, seller):
        ledger = LedgerService(session)
        await credit(ledger, seller, 100, coin_type=CoinType.locked)

        tx = await ledger.unlock_coins(seller.id, 100, SourceType.gamification)
        await session.commit()

        balance = await ledger.get_balance(seller.id)
        assert balance.locked_balance == 0
        assert balance.redeemable_balance == 100
        assert balance.total_earned == 100
        assert tx.transaction_type == TransactionType.unlock
        assert_conserved(balance)

    async def test_unlock_more_than_locked(self, session, seller):
        ledger = LedgerService(session)
        await credit(ledger, seller, 40, coin_type=CoinType.locked)

        with pytest.raises(InsufficientBalance):
            await ledger.unlock_coins(seller.id, 41, SourceType.gamification)


class TestAdminAdjust:
    """Tests for manual adjustments."""

    async def test_positive_is_bonus(self, session, seller, admin):
        tx, balance = await LedgerService(session).adjust(seller.id, 1000, "Welcome bonus", admin, reason="launch")

        assert tx.transaction_type == TransactionType.bonus
        assert tx.source_type == SourceType.admin
        assert tx.meta["adjusted_by"] == str(admin.id)
        assert balance.redeemable_balance == 1000

    async def test_negative_is_adjustment(self, session, seller, admin):
        ledger = LedgerService(session)
        await ledger.adjust(seller.id, 1000, "Welcome bonus", admin)

        tx, balance = await ledger.adjust(seller.id, -250, "Correction", admin)

        assert tx.transaction_type == TransactionType.adjustment
        assert balance.redeemable_balance == 750
        assert balance.total_earned == 750
        assert_conserved(balance)

    async def test_cannot_go_below_zero(self, session, seller, admin):
        with pytest.raises(InsufficientBalance):
            await LedgerService(session).adjust(seller.id, -1, "Correction", admin)

    async def test_admin_is_not_a_seller(self, session, admin):
        with pytest.raises(NotFound):
            await LedgerService(session).adjust(admin.id, 10, "Bonus", admin)

    async def test_zero_rejected(self, session, seller, admin):
        with pytest.raises(InvalidAmount):
            await LedgerService(session).adjust(seller.id, 0, "Nothing", admin)


class TestHistory:
    """Tests for history, derivation and reconciliation."""

    async def test_pagination_and_type_filter(self, session, seller):
        ledger = LedgerService(session)
        for _ in range(5):
            await credit(ledger, seller, 10)
        await ledger.record_transaction(
            seller_id=seller.id, amount=-5,
            transaction_type=TransactionType.adjustment, source_type=SourceType.admin,
        )
        await session.commit()

        items, total = await ledger.list_transactions(seller.id, page=2, page_size=4)
        assert total == 6
        assert len(items) == 2

        items, total = await ledger.list_transactions(seller.id, transaction_type=TransactionType.adjustment)
        assert total == 1
        assert items[0].amount == -5

    async def test_derived_balance_matches_stored(self, session, seller, other_seller):
        ledger = LedgerService(session)
        await credit(ledger, seller, 500, coin_type=CoinType.locked)
        await ledger.unlock_coins(seller.id, 200, SourceType.gamification)
        await ledger.record_transaction(
            seller_id=seller.id, amount=-120,
            transaction_type=TransactionType.redemption, source_type=SourceType.redemption,
        )
        await credit(ledger, other_seller, 30)
        await session.commit()

        assert await ledger.derive_balance(seller.id) == await ledger.get_balance(seller.id)
        assert await reconcile_balances(session) == []
