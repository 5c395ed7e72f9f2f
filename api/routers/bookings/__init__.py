from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.crud.booking import BookingService
from api.crud.commission import CommissionService
from api.database import get_async_session


def get_booking_service(session: AsyncSession = Depends(get_async_session)) -> BookingService:
    return BookingService(session)


def get_commission_service(session: AsyncSession = Depends(get_async_session)) -> CommissionService:
    return CommissionService(session)
