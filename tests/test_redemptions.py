"""
Tests for the redemption (cash-out) workflow.

Tests cover:
1. Coins stay put until approval
2. Approval debits the redeemable bucket exactly once
3. Rejection and payment transitions
4. Balance and bank account checks
"""

from decimal import Decimal

import pytest

from api.crud.ledger import LedgerService
from api.crud.redemption import RedemptionService
from api.errors import ConflictError, InsufficientBalance, ValidationError
from api.models import BankAccount, CoinType, RedemptionStatus, SourceType, TransactionType


async def fund(session, seller, admin, amount):
    await LedgerService(session).adjust(seller.id, amount, "Welcome bonus", admin)


class TestRequest:
    """Tests for opening a redemption."""

    async def test_pending_request_keeps_balance(self, session, seller, admin, bank_account):
        await fund(session, seller, admin, 1000)
        service = RedemptionService(session, conversion_rate=Decimal("0.5"))

        redemption = await service.request(seller, 400, bank_account.id)

        assert redemption.status == RedemptionStatus.pending
        assert redemption.cash_amount == Decimal("200.00")
        assert redemption.conversion_rate == Decimal("0.5")
        assert (await LedgerService(session).get_balance(seller.id)).redeemable_balance == 1000

    async def test_more_than_redeemable(self, session, seller, admin, bank_account):
        await fund(session, seller, admin, 100)
        await LedgerService(session).record_transaction(
            seller_id=seller.id, amount=500,
            transaction_type=TransactionType.gamification, source_type=SourceType.gamification,
            coin_type=CoinType.locked,
        )
        await session.commit()

        # locked coins do not count towards a redemption
        with pytest.raises(InsufficientBalance):
            await RedemptionService(session).request(seller, 101, bank_account.id)

    async def test_non_positive_amount(self, session, seller, bank_account):
        with pytest.raises(ValidationError):
            await RedemptionService(session).request(seller, 0, bank_account.id)

    async def test_foreign_bank_account(self, session, seller, other_seller, admin):
        account = BankAccount(
            seller_id=other_seller.id,
            bank_name="SCB",
            account_number="999-9-99999-9",
            account_name="Malee",
        )
        session.add(account)
        await session.commit()
        await fund(session, seller, admin, 100)

        with pytest.raises(ValidationError):
            await RedemptionService(session).request(seller, 50, account.id)


class TestStatusChanges:
    """Tests for approving, rejecting and paying out."""

    async def test_approve_debits_once(self, session, seller, admin, bank_account):
        await fund(session, seller, admin, 1000)
        service = RedemptionService(session)
        redemption = await service.request(seller, 400, bank_account.id)

        redemption = await service.update_status(redemption.id, RedemptionStatus.approved, admin)

        assert redemption.status == RedemptionStatus.approved
        assert redemption.approved_by == admin.id
        assert redemption.transaction_id is not None
        balance = await LedgerService(session).get_balance(seller.id)
        assert balance.redeemable_balance == 600
        assert balance.total_redeemed == 400
        assert balance.total_earned == 1000

        with pytest.raises(ConflictError):
            await service.update_status(redemption.id, RedemptionStatus.approved, admin)
        assert (await LedgerService(session).get_balance(seller.id)).redeemable_balance == 600

    async def test_paid_only_after_approval(self, session, seller, admin, bank_account):
        await fund(session, seller, admin, 500)
        service = RedemptionService(session)
        redemption = await service.request(seller, 500, bank_account.id)

        with pytest.raises(ConflictError):
            await service.update_status(redemption.id, RedemptionStatus.paid, admin)

        await service.update_status(redemption.id, RedemptionStatus.approved, admin)
        redemption = await service.update_status(redemption.id, RedemptionStatus.paid, admin, notes="transfer #884")

        assert redemption.status == RedemptionStatus.paid
        assert redemption.paid_at is not None
        assert redemption.notes == "transfer #884"

    async def test_reject_needs_reason(self, session, seller, admin, bank_account):
        await fund(session, seller, admin, 300)
        service = RedemptionService(session)
        redemption = await service.request(seller, 300, bank_account.id)

        with pytest.raises(ValidationError):
            await service.update_status(redemption.id, RedemptionStatus.rejected, admin)

        redemption = await service.update_status(
            redemption.id, RedemptionStatus.rejected, admin, rejection_reason="Account name mismatch"
        )
        assert redemption.status == RedemptionStatus.rejected
        balance = await LedgerService(session).get_balance(seller.id)
        assert balance.redeemable_balance == 300
        assert balance.total_redeemed == 0

        with pytest.raises(ConflictError):
            await service.update_status(redemption.id, RedemptionStatus.approved, admin)

    async def test_approval_rechecks_balance(self, session, seller, admin, bank_account):
        """Two requests can each fit the balance, only one approval can."""
        seller_id = seller.id
        await fund(session, seller, admin, 500)
        service = RedemptionService(session)
        first = await service.request(seller, 400, bank_account.id)
        second = await service.request(seller, 400, bank_account.id)
        second_id = second.id
        await service.update_status(first.id, RedemptionStatus.approved, admin)

        with pytest.raises(InsufficientBalance):
            await service.update_status(second_id, RedemptionStatus.approved, admin)

        # the failed approval rolled the session back
        second = await service.get(second_id)
        assert second.status == RedemptionStatus.pending
        assert (await LedgerService(session).get_balance(seller_id)).redeemable_balance == 100
