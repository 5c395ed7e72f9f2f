import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .interface import LedgerInterface
from .schema import AdminAdjustmentMeta, CoinBalanceRead, CoinStats, TransactionMetadata, metadata_adapter
from api.crud.audit import write_audit
from api.crud.user import UserService
from api.database import dialect_insert
from api.errors import ConflictError, InsufficientBalance, InvalidAmount, ValidationError
from api.models import (
    CoinRedemption,
    CoinTransaction,
    CoinType,
    GamificationCampaign,
    RedemptionStatus,
    SellerCoinBalance,
    SourceType,
    TransactionType,
    User,
)
from utils.time import utcnow


class LedgerService(LedgerInterface):
    """
    Balance store plus append-only transaction log.

    Every balance change goes through `record_transaction` or `unlock_coins`,
    which flush the log row and the balance delta into the caller's unit of
    work. Callers commit. Nothing here commits except `adjust`, which is a
    complete admin operation on its own.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserService()

    @staticmethod
    def _bucket(coin_type: CoinType):
        if coin_type == CoinType.locked:
            return SellerCoinBalance.locked_balance
        return SellerCoinBalance.redeemable_balance

    async def _ensure_balance_row(self, seller_id: uuid.UUID) -> None:
        stmt = (
            dialect_insert(self.session, SellerCoinBalance)
            .values(seller_id=seller_id, updated_at=utcnow())
            .on_conflict_do_nothing(index_elements=["seller_id"])
        )
        await self.session.execute(stmt)

    async def has_transaction(self, idempotency_key: str) -> bool:
        res = await self.session.execute(
            select(CoinTransaction.id).where(CoinTransaction.idempotency_key == idempotency_key)
        )
        return res.scalar_one_or_none() is not None

    async def _append(self, tx: CoinTransaction) -> CoinTransaction:
        self.session.add(tx)
        try:
            await self.session.flush()
        except IntegrityError:
            # lost a race on the idempotency key; the whole unit of work is void
            await self.session.rollback()
            raise ConflictError(f"Transaction {tx.idempotency_key} is already recorded")
        return tx

    async def get_balance(self, seller_id: uuid.UUID) -> CoinBalanceRead:
        res = await self.session.execute(
            select(SellerCoinBalance)
            .where(SellerCoinBalance.seller_id == seller_id)
            .execution_options(populate_existing=True)
        )
        row = res.scalar_one_or_none()
        if row is None:
            return CoinBalanceRead()
        return CoinBalanceRead.model_validate(row)

    async def record_transaction(
        self,
        seller_id: uuid.UUID,
        amount: int,
        transaction_type: TransactionType,
        source_type: SourceType,
        description: str | None = None,
        source_id: uuid.UUID | None = None,
        metadata: TransactionMetadata | None = None,
        coin_type: CoinType = CoinType.redeemable,
        idempotency_key: str | None = None,
    ) -> CoinTransaction:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidAmount("Amount must be a non-zero whole number of coins")
        if transaction_type == TransactionType.unlock:
            raise ValidationError("Use unlock_coins to move locked coins")
        if idempotency_key and await self.has_transaction(idempotency_key):
            raise ConflictError(f"Transaction {idempotency_key} is already recorded")

        await self._ensure_balance_row(seller_id)

        bucket = self._bucket(coin_type)
        values: dict[Any, Any] = {bucket: bucket + amount, SellerCoinBalance.updated_at: utcnow()}
        if amount > 0:
            values[SellerCoinBalance.total_earned] = SellerCoinBalance.total_earned + amount
        elif transaction_type == TransactionType.redemption:
            values[SellerCoinBalance.total_redeemed] = SellerCoinBalance.total_redeemed - amount
        else:
            # deductions take back previously earned coins
            values[SellerCoinBalance.total_earned] = SellerCoinBalance.total_earned + amount

        # single conditional UPDATE, the row never goes below zero
        stmt = (
            update(SellerCoinBalance)
            .where(SellerCoinBalance.seller_id == seller_id, bucket + amount >= 0)
            .values(values)
            .returning(bucket)
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        balance_after = res.scalar_one_or_none()
        if balance_after is None:
            raise InsufficientBalance(f"Not enough {coin_type.value} coins for a debit of {-amount}")

        tx = CoinTransaction(
            seller_id=seller_id,
            amount=amount,
            coin_type=coin_type,
            transaction_type=transaction_type,
            source_type=source_type,
            source_id=source_id,
            description=description,
            meta=metadata_adapter.dump_python(metadata, mode="json") if metadata is not None else None,
            idempotency_key=idempotency_key,
            balance_before=balance_after - amount,
            balance_after=balance_after,
        )
        await self._append(tx)
        logging.info(
            f"Ledger {transaction_type.value} {amount:+d} {coin_type.value} coins for seller {seller_id} "
            f"({source_type.value}:{source_id}), balance {balance_after - amount} -> {balance_after}"
        )
        return tx

    async def unlock_coins(
        self,
        seller_id: uuid.UUID,
        amount: int,
        source_type: SourceType,
        description: str | None = None,
        source_id: uuid.UUID | None = None,
        metadata: TransactionMetadata | None = None,
        idempotency_key: str | None = None,
    ) -> CoinTransaction:
        """
        Re-type `amount` locked coins as redeemable in one statement.

        The log row is written against the redeemable bucket with a positive
        amount; `total_earned`/`total_redeemed` are untouched.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount("Unlock amount must be a positive whole number of coins")
        if idempotency_key and await self.has_transaction(idempotency_key):
            raise ConflictError(f"Transaction {idempotency_key} is already recorded")

        stmt = (
            update(SellerCoinBalance)
            .where(SellerCoinBalance.seller_id == seller_id, SellerCoinBalance.locked_balance >= amount)
            .values({
                SellerCoinBalance.locked_balance: SellerCoinBalance.locked_balance - amount,
                SellerCoinBalance.redeemable_balance: SellerCoinBalance.redeemable_balance + amount,
                SellerCoinBalance.updated_at: utcnow(),
            })
            .returning(SellerCoinBalance.redeemable_balance)
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        redeemable_after = res.scalar_one_or_none()
        if redeemable_after is None:
            raise InsufficientBalance(f"Not enough locked coins to unlock {amount}")

        tx = CoinTransaction(
            seller_id=seller_id,
            amount=amount,
            coin_type=CoinType.redeemable,
            transaction_type=TransactionType.unlock,
            source_type=source_type,
            source_id=source_id,
            description=description,
            meta=metadata_adapter.dump_python(metadata, mode="json") if metadata is not None else None,
            idempotency_key=idempotency_key,
            balance_before=redeemable_after - amount,
            balance_after=redeemable_after,
        )
        await self._append(tx)
        logging.info(f"Unlocked {amount} coins for seller {seller_id} ({source_type.value}:{source_id})")
        return tx

    async def adjust(
        self,
        seller_id: uuid.UUID,
        amount: int,
        description: str,
        actor: User,
        reason: str | None = None,
    ) -> tuple[CoinTransaction, CoinBalanceRead]:
        """Manual admin credit (`bonus`) or debit (`adjustment`) of redeemable coins."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidAmount("Amount must be a non-zero whole number of coins")
        if not description or not description.strip():
            raise ValidationError("Description is required")
        await self.users.get_seller(seller_id, self.session)

        tx = await self.record_transaction(
            seller_id=seller_id,
            amount=amount,
            transaction_type=TransactionType.bonus if amount > 0 else TransactionType.adjustment,
            source_type=SourceType.admin,
            description=description,
            metadata=AdminAdjustmentMeta(
                adjusted_by=actor.id,
                adjusted_by_email=actor.email,
                reason=reason or description,
            ),
        )
        write_audit(
            self.session,
            actor_id=actor.id,
            action="coins.adjust",
            entity="seller_coins",
            entity_id=seller_id,
            payload={"amount": amount, "transaction_id": str(tx.id), "reason": reason},
        )
        await self.session.commit()
        return tx, await self.get_balance(seller_id)

    async def list_transactions(
        self,
        seller_id: uuid.UUID,
        transaction_type: TransactionType | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[CoinTransaction], int]:
        filters = [CoinTransaction.seller_id == seller_id]
        if transaction_type is not None:
            filters.append(CoinTransaction.transaction_type == transaction_type)
        if start_date is not None:
            filters.append(CoinTransaction.created_at >= start_date)
        if end_date is not None:
            filters.append(CoinTransaction.created_at <= end_date)

        total = await self.session.scalar(select(func.count()).select_from(CoinTransaction).where(*filters))
        res = await self.session.execute(
            select(CoinTransaction)
            .where(*filters)
            .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(res.scalars().all()), total or 0

    async def derive_balance(self, seller_id: uuid.UUID) -> CoinBalanceRead:
        """Recompute a seller's balance from the transaction log alone."""
        res = await self.session.execute(
            select(CoinTransaction.amount, CoinTransaction.coin_type, CoinTransaction.transaction_type)
            .where(CoinTransaction.seller_id == seller_id)
        )
        locked = redeemable = earned = redeemed = 0
        for amount, coin_type, transaction_type in res.all():
            if transaction_type == TransactionType.unlock:
                locked -= amount
                redeemable += amount
                continue
            if coin_type == CoinType.locked:
                locked += amount
            else:
                redeemable += amount
            if transaction_type == TransactionType.redemption and amount < 0:
                redeemed -= amount
            else:
                earned += amount
        return CoinBalanceRead(
            locked_balance=locked,
            redeemable_balance=redeemable,
            total_earned=earned,
            total_redeemed=redeemed,
        )

    async def list_seller_ids(self) -> list[uuid.UUID]:
        res = await self.session.execute(select(SellerCoinBalance.seller_id))
        return list(res.scalars().all())

    async def stats(self) -> CoinStats:
        distributed = await self.session.scalar(
            select(func.coalesce(func.sum(CoinTransaction.amount), 0)).where(
                CoinTransaction.amount > 0,
                CoinTransaction.transaction_type != TransactionType.unlock,
            )
        )
        totals = (await self.session.execute(
            select(
                func.coalesce(func.sum(SellerCoinBalance.total_redeemed), 0),
                func.coalesce(func.sum(SellerCoinBalance.locked_balance), 0),
                func.coalesce(func.sum(SellerCoinBalance.redeemable_balance), 0),
            )
        )).one()
        sellers_with_coins = await self.session.scalar(
            select(func.count()).select_from(SellerCoinBalance).where(
                SellerCoinBalance.locked_balance + SellerCoinBalance.redeemable_balance > 0
            )
        )

        redemptions: dict[RedemptionStatus, tuple[int, int, Decimal]] = {}
        for status in (RedemptionStatus.pending, RedemptionStatus.approved):
            row = (await self.session.execute(
                select(
                    func.count(CoinRedemption.id),
                    func.coalesce(func.sum(CoinRedemption.coin_amount), 0),
                    func.coalesce(func.sum(CoinRedemption.cash_amount), 0),
                ).where(CoinRedemption.status == status)
            )).one()
            redemptions[status] = (row[0], row[1], Decimal(str(row[2])))

        now = utcnow()
        active_campaigns = await self.session.scalar(
            select(func.count()).select_from(GamificationCampaign).where(
                GamificationCampaign.is_active.is_(True),
                GamificationCampaign.start_date <= now,
                GamificationCampaign.end_date >= now,
            )
        )

        return CoinStats(
            total_distributed=distributed or 0,
            total_redeemed=totals[0],
            total_locked=totals[1],
            total_redeemable=totals[2],
            pending_redemptions=redemptions[RedemptionStatus.pending][0],
            pending_redemption_coins=redemptions[RedemptionStatus.pending][1],
            pending_redemption_cash=redemptions[RedemptionStatus.pending][2],
            approved_redemptions=redemptions[RedemptionStatus.approved][0],
            approved_redemption_coins=redemptions[RedemptionStatus.approved][1],
            approved_redemption_cash=redemptions[RedemptionStatus.approved][2],
            active_campaigns=active_campaigns or 0,
            sellers_with_coins=sellers_with_coins or 0,
        )
