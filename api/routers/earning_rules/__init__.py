from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.crud.earning_rule import EarningRuleService
from api.database import get_async_session


def get_earning_rule_service(session: AsyncSession = Depends(get_async_session)) -> EarningRuleService:
    return EarningRuleService(session)
