import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.crud.audit import write_audit
from api.crud.ledger import LedgerService
from api.crud.ledger.schema import RedemptionMeta
from api.crud.user import UserService
from api.errors import ConflictError, InsufficientBalance, LedgerError, NotFound, ValidationError
from api.models import CoinRedemption, RedemptionStatus, SourceType, TransactionType, User
from utils.time import utcnow

# allowed moves; everything else is a conflict
TRANSITIONS = {
    RedemptionStatus.pending: {RedemptionStatus.approved, RedemptionStatus.rejected},
    RedemptionStatus.approved: {RedemptionStatus.paid},
}


class RedemptionService:
    """
    Cash-out requests: pending -> approved -> paid, or pending -> rejected.

    Coins leave the redeemable bucket only on approval. The balance check at
    request time is advisory; the approval debit is the authoritative one.
    """

    def __init__(self, session: AsyncSession, ledger: LedgerService | None = None, conversion_rate: Decimal = Decimal("1.0")):
        self.session = session
        self.ledger = ledger or LedgerService(session)
        self.users = UserService()
        self.conversion_rate = Decimal(str(conversion_rate))

    async def request(self, seller: User, coin_amount: int, bank_account_id: uuid.UUID) -> CoinRedemption:
        if isinstance(coin_amount, bool) or not isinstance(coin_amount, int) or coin_amount <= 0:
            raise ValidationError("coin_amount must be greater than 0")
        account = await self.users.get_bank_account(seller.id, bank_account_id, self.session)
        if not account:
            raise ValidationError("Bank account not found")

        balance = await self.ledger.get_balance(seller.id)
        if coin_amount > balance.redeemable_balance:
            raise InsufficientBalance(
                f"Requested {coin_amount} coins, only {balance.redeemable_balance} are redeemable"
            )

        redemption = CoinRedemption(
            seller_id=seller.id,
            coin_amount=coin_amount,
            conversion_rate=self.conversion_rate,
            cash_amount=(Decimal(coin_amount) * self.conversion_rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            bank_account_id=account.id,
            status=RedemptionStatus.pending,
        )
        self.session.add(redemption)
        await self.session.commit()
        logging.info(f"Redemption {redemption.id} of {coin_amount} coins requested by seller {seller.id}")
        return redemption

    async def update_status(
        self,
        redemption_id: uuid.UUID,
        status: RedemptionStatus,
        actor: User,
        rejection_reason: str | None = None,
        notes: str | None = None,
    ) -> CoinRedemption:
        res = await self.session.execute(
            select(CoinRedemption)
            .where(CoinRedemption.id == redemption_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        redemption = res.scalar_one_or_none()
        if not redemption:
            raise NotFound("Redemption not found")
        if status not in TRANSITIONS.get(redemption.status, set()):
            raise ConflictError(f"Cannot move redemption from {redemption.status.value} to {status.value}")
        if status == RedemptionStatus.rejected and not (rejection_reason or "").strip():
            raise ValidationError("rejection_reason is required when rejecting")

        now = utcnow()
        if status == RedemptionStatus.approved:
            try:
                tx = await self.ledger.record_transaction(
                    seller_id=redemption.seller_id,
                    amount=-redemption.coin_amount,
                    transaction_type=TransactionType.redemption,
                    source_type=SourceType.redemption,
                    description=f"Redemption of {redemption.coin_amount} coins",
                    source_id=redemption.id,
                    metadata=RedemptionMeta(
                        redemption_id=redemption.id,
                        cash_amount=redemption.cash_amount,
                        conversion_rate=redemption.conversion_rate,
                    ),
                    idempotency_key=f"redemption:{redemption.id}",
                )
            except LedgerError:
                await self.session.rollback()
                raise
            redemption.approved_at = now
            redemption.approved_by = actor.id
            redemption.transaction_id = tx.id
        elif status == RedemptionStatus.rejected:
            redemption.rejection_reason = rejection_reason
        else:
            redemption.paid_at = now

        redemption.status = status
        if notes is not None:
            redemption.notes = notes
        write_audit(
            self.session, actor.id, f"redemption.{status.value}", "coin_redemptions", redemption.id,
            {"coin_amount": redemption.coin_amount, "reason": rejection_reason},
        )
        await self.session.commit()
        logging.info(f"Redemption {redemption.id} {status.value} by {actor.id}")
        return redemption

    async def get(self, redemption_id: uuid.UUID) -> CoinRedemption:
        redemption = await self.session.get(CoinRedemption, redemption_id)
        if not redemption:
            raise NotFound("Redemption not found")
        return redemption

    async def list_for_seller(self, seller_id: uuid.UUID) -> list[CoinRedemption]:
        res = await self.session.execute(
            select(CoinRedemption)
            .where(CoinRedemption.seller_id == seller_id)
            .order_by(CoinRedemption.requested_at.desc())
        )
        return list(res.scalars().all())

    async def list_all(self, status: RedemptionStatus | None = None) -> list[CoinRedemption]:
        stmt = select(CoinRedemption).order_by(CoinRedemption.requested_at.asc())
        if status is not None:
            stmt = stmt.where(CoinRedemption.status == status)
        res = await self.session.execute(stmt)
        return list(res.scalars().all())
