import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.errors import LedgerError
from api.routers.bookings import routes as BookingRoutes
from api.routers.campaigns import routes as CampaignRoutes
from api.routers.coins import routes as CoinRoutes
from api.routers.earning_rules import routes as EarningRuleRoutes
from api.routers.notifications import routes as NotificationRoutes
from api.routers.redemptions import routes as RedemptionRoutes
from api.routers.system import routes as SystemRoutes
from api.security import require_service
from services.notifier import wait_for_notifications


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # let queued LINE pushes finish before the worker exits
    await wait_for_notifications()


async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logging.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"kind": exc.kind, "message": exc.message}},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # malformed or missing input is reported like any other validation_error
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header"))
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "invalid input"))
    return JSONResponse(
        status_code=400,
        content={"error": {"kind": "validation_error", "message": "; ".join(problems) or "Invalid request"}},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logging.error(f"{request.method} {request.url.path}: database error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"kind": "internal_error", "message": "Internal server error"}},
    )


class FastAPIManager:
    def __init__(self):
        # version format: version.subversion:month.year.day:stage (beta, stable)
        self.api = FastAPI(
            version="1.0:10.26.19:beta",
            title="Seller Coin & Commission Ledger",
            description=(
                "Ledger service of the trip booking platform. Tracks locked and redeemable seller coins "
                "in an append-only transaction log, computes booking commissions, runs gamification and "
                "coin bonus campaigns and handles redemption (cash-out) requests. "
                "Every route requires the service key; caller identity comes from the upstream auth layer."
            ),
            lifespan=lifespan,
        )
        self.add_exception_handlers()
        self.add_routers()

    def add_exception_handlers(self):
        self.api.add_exception_handler(LedgerError, ledger_error_handler)
        self.api.add_exception_handler(RequestValidationError, request_validation_handler)
        self.api.add_exception_handler(SQLAlchemyError, database_error_handler)

    def add_routers(self):
        self.api.include_router(
            SystemRoutes.router
        )
        self.api.include_router(
            CoinRoutes.router,
            prefix="/coins",
            tags=["Coins"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            RedemptionRoutes.router,
            prefix="/redemptions",
            tags=["Redemptions"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            CampaignRoutes.router,
            prefix="/campaigns",
            tags=["Campaigns"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            CampaignRoutes.admin_router,
            prefix="/admin/campaigns",
            tags=["Campaign administration"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            CampaignRoutes.bonus_router,
            prefix="/admin/bonus-campaigns",
            tags=["Campaign administration"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            EarningRuleRoutes.router,
            prefix="/admin/coin-rules",
            tags=["Coins"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            BookingRoutes.router,
            prefix="/bookings",
            tags=["Bookings"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            BookingRoutes.admin_router,
            prefix="/admin/bookings",
            tags=["Bookings"],
            dependencies=[Depends(require_service)]
        )
        self.api.include_router(
            NotificationRoutes.router,
            prefix="/notifications",
            tags=["Notifications"],
            dependencies=[Depends(require_service)]
        )

    def start_server(self):
        uvicorn.run(self.api, host="0.0.0.0", port=8000)

    def get_app(self) -> FastAPI:
        return self.api
