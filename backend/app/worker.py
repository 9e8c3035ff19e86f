import logging
from typing import Any
from uuid import UUID

from arq import cron

from app.core.database import SessionLocal
from app.services.dunning_scheduler import DunningScheduler
from app.services.dunning_service import DunningService
from app.tasks import redis_settings

logger = logging.getLogger(__name__)

# One scheduler per worker process so its overlap guards span ticks
scheduler = DunningScheduler()


async def process_dunning_attempts_task(ctx: dict[str, Any]) -> int:
    """Background task: execute due dunning attempts.

    Runs every minute. Returns the number of attempts that completed,
    successfully or not.
    """
    result = await scheduler.process_pending_attempts()
    return result.succeeded + result.failed


async def check_missed_dunning_candidates_task(ctx: dict[str, Any]) -> int:
    """Background task: start dunning for past-due invoices that were never picked up.

    Runs every 5 minutes.
    """
    count = await scheduler.check_for_missed_dunning_candidates()
    if count > 0:
        logger.info("Started dunning for %d missed invoices", count)
    return count


async def cleanup_stale_dunning_attempts_task(ctx: dict[str, Any]) -> int:
    """Background task: reset attempts stuck in processing. Runs every 10 minutes."""
    return await scheduler.cleanup_stale_attempts()


async def start_dunning_task(ctx: dict[str, Any], organization_id: str, invoice_id: str) -> bool:
    """Start dunning for an invoice whose payment just failed."""
    db = SessionLocal()
    try:
        service = DunningService(db)
        started = await service.start_dunning(UUID(organization_id), UUID(invoice_id))
        logger.info("start_dunning for invoice %s: %s", invoice_id, started)
        return started
    finally:
        db.close()


class WorkerSettings:
    functions = [
        process_dunning_attempts_task,
        check_missed_dunning_candidates_task,
        cleanup_stale_dunning_attempts_task,
        start_dunning_task,
    ]
    cron_jobs = [
        cron(process_dunning_attempts_task, second={0}),  # every minute
        cron(
            check_missed_dunning_candidates_task,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
        ),  # every 5 minutes
        cron(cleanup_stale_dunning_attempts_task, minute={0, 10, 20, 30, 40, 50}),  # every 10 minutes
    ]
    redis_settings = redis_settings
