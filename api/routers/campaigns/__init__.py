from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.crud.campaign import GamificationService
from api.crud.campaign.bonus import BonusCampaignService
from api.database import get_async_session


def get_gamification_service(session: AsyncSession = Depends(get_async_session)) -> GamificationService:
    return GamificationService(session)


def get_bonus_service(session: AsyncSession = Depends(get_async_session)) -> BonusCampaignService:
    return BonusCampaignService(session)
