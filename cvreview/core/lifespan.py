import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from cvreview.analytics.db import init_db, purge_old_records
from cvreview.core.config import settings
from cvreview.core.credit_store import init_credit_store, refill_daily_credits
from cvreview.guardrails.domains import domain_keyword_table

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    # Fail at startup rather than on the first review if the rules file is broken.
    domain_keyword_table()
    init_credit_store()
    init_db()

    stop_event = asyncio.Event()

    async def periodic_maintenance() -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=settings.credits_refill_interval_s)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                break
            try:
                refilled = refill_daily_credits()
                deleted = purge_old_records()
                logger.info("daily_maintenance refilled=%s purged=%s", refilled, deleted)
            except Exception as exc:  # pragma: no cover
                logger.warning("daily_maintenance_failed: %s", exc)

    maintenance_task = asyncio.create_task(periodic_maintenance())
    yield
    stop_event.set()
    if not maintenance_task.done():
        maintenance_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await maintenance_task
