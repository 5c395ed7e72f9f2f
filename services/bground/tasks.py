from __future__ import annotations
from typing import Any, Dict
import asyncio
from celery import states
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config import Settings
from services.bground import CeleryManager
from services.bground import jobs

celery_app = CeleryManager()


async def _with_session(job):
    # every asyncio.run gets a fresh loop, pooled connections cannot outlive it
    engine = create_async_engine(Settings().generate_database_url(), poolclass=NullPool)
    try:
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            return await job(session)
    finally:
        await engine.dispose()


@celery_app.celery_app.task(bind=True, name="ledger.backfill_commissions")
def backfill_commissions(self) -> Dict[str, Any]:
    self.update_state(state=states.STARTED, meta={"step": "backfill"})
    created = asyncio.run(_with_session(jobs.backfill_commissions))
    return {"created": created}


@celery_app.celery_app.task(bind=True, name="ledger.reconcile_balances")
def reconcile_balances(self) -> Dict[str, Any]:
    self.update_state(state=states.STARTED, meta={"step": "reconcile"})
    mismatches = asyncio.run(_with_session(jobs.reconcile_balances))
    return {"mismatches": mismatches}
