"""Periodic dunning jobs: execute due attempts, catch missed invoices, release stale claims.

Several workers may run these jobs at the same time. The per-instance
"running" flags only stop a slow tick from overlapping the next one in the
same process; the attempt claim is what keeps execution at-most-once.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from app.core import database
from app.core.config import settings
from app.models.shared import utc_now
from app.repositories.dunning_attempt_repository import DunningAttemptRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.services.dunning_service import DunningAttemptResult, DunningService

logger = logging.getLogger(__name__)


@dataclass
class DunningBatchResult:
    """Tally of one process-due-attempts tick. Errors are not counted as failures."""

    succeeded: int = 0
    failed: int = 0
    errors: int = 0


class DunningScheduler:
    """Runs the dunning poller jobs, each on its own database sessions."""

    def __init__(self, service_factory: Callable[[Session], DunningService] = DunningService):
        self.service_factory = service_factory
        self._processing_attempts = False
        self._checking_candidates = False
        self._cleaning_up = False

    async def process_pending_attempts(self) -> DunningBatchResult:
        """Execute up to one batch of due attempts concurrently."""
        if self._processing_attempts:
            logger.debug("Already processing dunning attempts, skipping")
            return DunningBatchResult()

        self._processing_attempts = True
        try:
            db = database.SessionLocal()
            try:
                due = DunningAttemptRepository(db).get_due(
                    utc_now(), settings.DUNNING_ATTEMPT_BATCH_SIZE
                )
                attempt_ids: list[UUID] = [attempt.id for attempt in due]  # type: ignore[misc]
            finally:
                db.close()

            if not attempt_ids:
                return DunningBatchResult()

            logger.info("Processing %d pending dunning attempts", len(attempt_ids))
            semaphore = asyncio.Semaphore(settings.DUNNING_MAX_CONCURRENCY)
            results = await asyncio.gather(
                *(self._run_attempt(semaphore, attempt_id) for attempt_id in attempt_ids),
                return_exceptions=True,
            )

            batch = DunningBatchResult()
            for attempt_id, result in zip(attempt_ids, results, strict=True):
                if isinstance(result, BaseException):
                    batch.errors += 1
                    logger.error(
                        "Failed to process attempt %s: %s",
                        attempt_id,
                        result,
                        exc_info=result,
                    )
                elif result.success:
                    batch.succeeded += 1
                else:
                    batch.failed += 1

            logger.info(
                "Dunning batch complete: %d succeeded, %d failed, %d errors",
                batch.succeeded,
                batch.failed,
                batch.errors,
            )
            return batch
        finally:
            self._processing_attempts = False

    async def _run_attempt(
        self, semaphore: asyncio.Semaphore, attempt_id: UUID
    ) -> DunningAttemptResult:
        async with semaphore:
            db = database.SessionLocal()
            try:
                return await self.service_factory(db).process_dunning_attempt(attempt_id)
            finally:
                db.close()

    async def check_for_missed_dunning_candidates(self) -> int:
        """Start dunning for past-due subscription invoices whose failure signal never arrived.

        Returns the number of episodes started.
        """
        if self._checking_candidates:
            logger.debug("Already checking for missed dunning candidates, skipping")
            return 0

        self._checking_candidates = True
        db = database.SessionLocal()
        try:
            due_before = utc_now() - timedelta(
                minutes=settings.DUNNING_MISSED_CANDIDATE_MARGIN_MINUTES
            )
            candidates = [
                (invoice.organization_id, invoice.id)
                for invoice in InvoiceRepository(db).get_missed_dunning_candidates(
                    due_before, settings.DUNNING_CANDIDATE_BATCH_SIZE
                )
            ]
            if not candidates:
                return 0

            logger.info("Found %d invoices that may need dunning", len(candidates))
            service = self.service_factory(db)
            started = 0
            for organization_id, invoice_id in candidates:
                try:
                    if await service.start_dunning(organization_id, invoice_id):  # type: ignore[arg-type]
                        started += 1
                except Exception as e:
                    logger.warning("Failed to start dunning for invoice %s: %s", invoice_id, e)
                    db.rollback()
            return started
        finally:
            db.close()
            self._checking_candidates = False

    async def cleanup_stale_attempts(self) -> int:
        """Release processing claims older than the stale timeout. Returns the count reset."""
        if self._cleaning_up:
            logger.debug("Already cleaning up stale attempts, skipping")
            return 0

        self._cleaning_up = True
        db = database.SessionLocal()
        try:
            executed_before = utc_now() - timedelta(
                minutes=settings.DUNNING_STALE_ATTEMPT_TIMEOUT_MINUTES
            )
            count = DunningAttemptRepository(db).reset_stale(executed_before)
            if count > 0:
                logger.warning("Reset %d stale processing attempts", count)
            return count
        finally:
            db.close()
            self._cleaning_up = False
