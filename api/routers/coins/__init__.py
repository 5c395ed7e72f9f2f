from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.crud.ledger import LedgerService
from api.crud.redemption import RedemptionService
from api.database import get_async_session
from config import ENV

env = ENV()


def get_ledger_service(session: AsyncSession = Depends(get_async_session)) -> LedgerService:
    return LedgerService(session)


def get_redemption_service(session: AsyncSession = Depends(get_async_session)) -> RedemptionService:
    return RedemptionService(session, conversion_rate=env.COIN_CONVERSION_RATE)
