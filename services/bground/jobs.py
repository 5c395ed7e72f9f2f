import logging
from sqlalchemy.ext.asyncio import AsyncSession

from api.crud.commission import CommissionService
from api.crud.ledger import LedgerService


async def backfill_commissions(session: AsyncSession) -> int:
    """Create commission payments that approved bookings are missing."""
    logging.info("Starting commission backfill...")
    try:
        created = await CommissionService(session).backfill()
    except Exception as e:
        logging.error(f"Commission backfill failed: {e}", exc_info=True)
        await session.rollback()
        raise
    return created


async def reconcile_balances(session: AsyncSession) -> list[dict]:
    """
    Compare every stored balance with the one derived from the transaction
    log. Mismatches are reported, never corrected automatically.
    """
    logging.info("Starting balance reconciliation...")
    ledger = LedgerService(session)
    mismatches = []
    for seller_id in await ledger.list_seller_ids():
        stored = await ledger.get_balance(seller_id)
        derived = await ledger.derive_balance(seller_id)
        if stored != derived:
            logging.error(f"Balance mismatch for seller {seller_id}: stored {stored.model_dump()} derived {derived.model_dump()}")
            mismatches.append({
                "seller_id": str(seller_id),
                "stored": stored.model_dump(),
                "derived": derived.model_dump(),
            })
    logging.info(f"Reconciliation finished with {len(mismatches)} mismatches")
    return mismatches
