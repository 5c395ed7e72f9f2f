from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.crud.ledger import LedgerService
from api.crud.ledger.schema import CoinStats, CoinTransactionRead
from api.crud.redemption import RedemptionService
from api.crud.redemption.schema import RedemptionCreate, RedemptionRead
from api.crud.user import UserService
from api.crud.user.schema import BankAccountCreate, BankAccountRead
from api.database import get_async_session
from api.errors import ValidationError
from api.models import TransactionType, User
from api.security import require_admin, require_seller
from services.redis import RedisCache, get_cache
from utils.time import parse_range_end, to_naive_utc
from . import get_ledger_service, get_redemption_service
from .schemas import CoinAdjustRequest, CoinAdjustResponse, CoinBalanceOut, CoinsOverview, Pagination, RedemptionCreated

router = APIRouter()
users = UserService()


@router.get(
        "",
        response_model=CoinsOverview,
        summary="Coin balance and transaction history"
        )
async def get_coins(
    transaction_type: TransactionType | None = Query(None, description="Only this transaction type"),
    start_date: datetime | None = Query(None, description="Transactions created at or after"),
    end_date: str | None = Query(None, description="Transactions created at or before; a bare date covers the whole day"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    seller: User = Depends(require_seller),
    ledger: LedgerService = Depends(get_ledger_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Balance of the calling seller plus a page of their coin transactions.

    Request status:
    - 200 OK - balance and history returned
    - 400 Bad Request - unreadable `end_date`
    - 401 Unauthorized - missing or unknown caller
    - 403 Forbidden - caller is not a seller

    > [!important]
    > Request headers:
    > - `X-API-KEY: str` - service key (required)
    > - `X-User-Id: uuid` - caller asserted by the auth layer (required)

    `end_date` given as a bare date (`2026-10-19`) includes every transaction
    of that day.

    The response is cached for a short time; any ledger change for the seller
    drops the cached copy.
    """
    start_date = to_naive_utc(start_date)
    try:
        end_date = parse_range_end(end_date)
    except ValueError:
        raise ValidationError(f"Invalid end_date: {end_date}")
    key = cache.key(
        "coins", seller.id, page, page_size,
        transaction_type.value if transaction_type else "all",
        start_date.isoformat() if start_date else "-",
        end_date.isoformat() if end_date else "-",
    )
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    balance = await ledger.get_balance(seller.id)
    items, total = await ledger.list_transactions(
        seller.id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )
    body = CoinsOverview(
        balance=CoinBalanceOut.from_balance(balance),
        transactions=[CoinTransactionRead.model_validate(tx) for tx in items],
        pagination=Pagination.build(page, page_size, total),
    ).model_dump(mode="json", by_alias=True)
    await cache.set_json(key, body)
    return body


@router.post(
        "/adjust",
        response_model=CoinAdjustResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Manual coin adjustment"
        )
async def adjust_coins(
    dto: CoinAdjustRequest,
    admin: User = Depends(require_admin),
    ledger: LedgerService = Depends(get_ledger_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Credit (positive amount) or debit (negative amount) a seller's redeemable coins.

    Request status:
    - 201 Created - adjustment recorded
    - 400 Bad Request - zero amount, missing description, or the debit exceeds the balance
    - 403 Forbidden - caller is not an admin
    - 404 Not Found - seller does not exist

    Input:
    - `seller_id: uuid` - seller to adjust
    - `amount: int` - signed number of coins, never 0
    - `description: str` - shown in the seller's history
    - `reason: str` - internal reason, kept in the transaction metadata
    """
    tx, balance = await ledger.adjust(dto.seller_id, dto.amount, dto.description, admin, reason=dto.reason)
    await cache.invalidate_seller(dto.seller_id)
    return CoinAdjustResponse(
        transaction_id=tx.id,
        transaction=CoinTransactionRead.model_validate(tx),
        new_balance=CoinBalanceOut.from_balance(balance),
    )


@router.post(
        "/redeem",
        response_model=RedemptionCreated,
        status_code=status.HTTP_201_CREATED,
        summary="Request a coin redemption"
        )
async def redeem_coins(
    dto: RedemptionCreate,
    seller: User = Depends(require_seller),
    service: RedemptionService = Depends(get_redemption_service),
    cache: RedisCache = Depends(get_cache),
):
    """
    Ask to cash out redeemable coins to one of the seller's bank accounts.
    Nothing is deducted until an admin approves the request.

    Request status:
    - 201 Created - request is pending
    - 400 Bad Request - invalid amount, foreign bank account, or not enough redeemable coins
    """
    redemption = await service.request(seller, dto.coin_amount, dto.bank_account_id)
    await cache.invalidate_seller(seller.id)
    return RedemptionCreated.model_validate(redemption)


@router.get("/redemptions", response_model=list[RedemptionRead], summary="Own redemption history")
async def my_redemptions(
    seller: User = Depends(require_seller),
    service: RedemptionService = Depends(get_redemption_service),
):
    return await service.list_for_seller(seller.id)


@router.get("/bank-accounts", response_model=list[BankAccountRead], summary="Own payout accounts")
async def list_bank_accounts(
    seller: User = Depends(require_seller),
    session: AsyncSession = Depends(get_async_session),
):
    return await users.list_bank_accounts(seller.id, session)


@router.post(
        "/bank-accounts",
        response_model=BankAccountRead,
        status_code=status.HTTP_201_CREATED,
        summary="Add a payout account"
        )
async def add_bank_account(
    dto: BankAccountCreate,
    seller: User = Depends(require_seller),
    session: AsyncSession = Depends(get_async_session),
):
    return await users.add_bank_account(seller.id, dto, session)


@router.get("/stats", response_model=CoinStats, summary="Platform coin statistics")
async def coin_stats(
    admin: User = Depends(require_admin),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Totals across all sellers: coins distributed and redeemed, locked and
    redeemable balances, pending and approved redemptions, running campaigns.
    """
    return await ledger.stats()
