from fastapi import APIRouter, Depends, Request
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from api.database import get_async_session

router = APIRouter()


@router.get("/check-health", include_in_schema=False)
async def check_health(session: AsyncSession = Depends(get_async_session)):
    await session.execute(text("SELECT 1"))
    return {"ok": True}


@router.get("/scalar", include_in_schema=False)
def get_scalar(request: Request):
    app = request.app

    return get_scalar_api_reference(
        title=app.title,
        openapi_url=app.openapi_url,
    )
