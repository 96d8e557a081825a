"""
Scheduled jobs (APScheduler)

One job: the nightly stock audit, which compares every size counter with
its movement log and logs any drift. It never rewrites counters; that is
POST /stocks/recalculate with apply=true.
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from stockledger.core.config import settings
from stockledger.db import session as db_session
from stockledger.services.stock_ledger import recalculate_stock

logger = logging.getLogger(__name__)

scheduler: Optional[AsyncIOScheduler] = None


async def audit_stock():
    """Check counters against the movement log"""
    async with db_session.SessionLocal() as db:
        report = await recalculate_stock(db, apply=False)
        await db.rollback()

    if report.drifts:
        for drift in report.drifts:
            logger.warning(
                f"Stock drift: variant {drift.variant_id} size {drift.size} "
                f"counter {drift.counter}, ledger {drift.ledger}"
            )
    else:
        logger.info(f"✅ Stock audit clean: {report.checked} size counter(s) checked")
    return report


def init_scheduler():
    """Create and start the scheduler"""
    global scheduler

    if not settings.STOCK_AUDIT_ENABLED:
        logger.info("📦 Stock audit disabled")
        return

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        audit_stock,
        trigger=CronTrigger(
            hour=settings.STOCK_AUDIT_HOUR,
            minute=settings.STOCK_AUDIT_MINUTE
        ),
        id="stock_audit",
        name="Stock counter audit",
        replace_existing=True
    )

    scheduler.start()
    logger.info(f"⏰ Scheduler started - stock audit daily at {settings.STOCK_AUDIT_HOUR:02d}:{settings.STOCK_AUDIT_MINUTE:02d}")


def shutdown_scheduler():
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ Scheduler stopped")


def get_scheduler_status() -> dict:
    if not scheduler:
        return {"enabled": settings.STOCK_AUDIT_ENABLED, "running": False, "jobs": []}

    return {
        "enabled": settings.STOCK_AUDIT_ENABLED,
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
            }
            for job in scheduler.get_jobs()
        ]
    }
