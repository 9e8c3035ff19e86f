"""DunningAttempt repository for data access.

Ledger mutations used inside an orchestrator unit of work only flush; the
caller commits the whole unit. ``claim`` and ``reset_stale`` are standalone
conditional writes and commit immediately.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.dunning_attempt import DunningAttempt, DunningAttemptStatus


class DunningAttemptRepository:
    """Repository for DunningAttempt model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, attempt_id: UUID) -> DunningAttempt | None:
        return self.db.query(DunningAttempt).filter(DunningAttempt.id == attempt_id).first()

    def get_for_invoice(self, invoice_id: UUID) -> list[DunningAttempt]:
        return (
            self.db.query(DunningAttempt)
            .filter(DunningAttempt.invoice_id == invoice_id)
            .order_by(DunningAttempt.attempt_number.asc())
            .all()
        )

    def get_due(self, now: datetime, limit: int) -> list[DunningAttempt]:
        """Pending attempts whose scheduled time has passed, oldest first."""
        return (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.status == DunningAttemptStatus.PENDING.value,
                DunningAttempt.scheduled_at <= now,
            )
            .order_by(DunningAttempt.scheduled_at.asc())
            .limit(limit)
            .all()
        )

    def add_pending(
        self,
        organization_id: UUID,
        invoice_id: UUID,
        customer_id: UUID,
        subscription_id: UUID | None,
        attempt_number: int,
        scheduled_at: datetime,
    ) -> DunningAttempt:
        attempt = DunningAttempt(
            organization_id=organization_id,
            invoice_id=invoice_id,
            customer_id=customer_id,
            subscription_id=subscription_id,
            attempt_number=attempt_number,
            status=DunningAttemptStatus.PENDING.value,
            scheduled_at=scheduled_at,
        )
        self.db.add(attempt)
        self.db.flush()
        return attempt

    def claim(self, attempt_id: UUID, now: datetime) -> bool:
        """Move an attempt from pending to processing.

        Single conditional UPDATE; returns False when another worker got
        there first.
        """
        updated = (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.id == attempt_id,
                DunningAttempt.status == DunningAttemptStatus.PENDING.value,
            )
            .update(
                {
                    DunningAttempt.status: DunningAttemptStatus.PROCESSING.value,
                    DunningAttempt.executed_at: now,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def mark_failed(
        self,
        attempt_id: UUID,
        failure_reason: str,
        decline_code: str | None = None,
    ) -> bool:
        """Record a failed execution. False when the attempt left processing meanwhile."""
        updated = (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.id == attempt_id,
                DunningAttempt.status == DunningAttemptStatus.PROCESSING.value,
            )
            .update(
                {
                    DunningAttempt.status: DunningAttemptStatus.FAILED.value,
                    DunningAttempt.success: False,
                    DunningAttempt.failure_reason: failure_reason,
                    DunningAttempt.decline_code: decline_code,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def skip_processing(self, attempt_id: UUID, failure_reason: str) -> bool:
        """Drop a claimed attempt without executing it."""
        updated = (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.id == attempt_id,
                DunningAttempt.status == DunningAttemptStatus.PROCESSING.value,
            )
            .update(
                {
                    DunningAttempt.status: DunningAttemptStatus.SKIPPED.value,
                    DunningAttempt.failure_reason: failure_reason,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def skip_pending(self, invoice_id: UUID, failure_reason: str | None = None) -> int:
        values: dict = {DunningAttempt.status: DunningAttemptStatus.SKIPPED.value}
        if failure_reason is not None:
            values[DunningAttempt.failure_reason] = failure_reason
        return (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.invoice_id == invoice_id,
                DunningAttempt.status == DunningAttemptStatus.PENDING.value,
            )
            .update(values, synchronize_session=False)
        )

    def succeed_processing(self, invoice_id: UUID) -> int:
        return (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.invoice_id == invoice_id,
                DunningAttempt.status == DunningAttemptStatus.PROCESSING.value,
            )
            .update(
                {
                    DunningAttempt.status: DunningAttemptStatus.SUCCEEDED.value,
                    DunningAttempt.success: True,
                },
                synchronize_session=False,
            )
        )

    def reset_stale(self, executed_before: datetime) -> int:
        """Release claims held longer than the stale timeout."""
        updated = (
            self.db.query(DunningAttempt)
            .filter(
                DunningAttempt.status == DunningAttemptStatus.PROCESSING.value,
                DunningAttempt.executed_at < executed_before,
            )
            .update(
                {
                    DunningAttempt.status: DunningAttemptStatus.PENDING.value,
                    DunningAttempt.executed_at: None,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated

    def count_by_status(self, organization_id: UUID) -> dict[str, int]:
        rows = (
            self.db.query(DunningAttempt.status, func.count(DunningAttempt.id))
            .filter(DunningAttempt.organization_id == organization_id)
            .group_by(DunningAttempt.status)
            .all()
        )
        return {str(status): int(count) for status, count in rows}
