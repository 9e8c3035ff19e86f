"""Invoice repository limited to the fields the dunning engine reads and writes."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.models.invoice import Invoice, InvoiceStatus


class InvoiceRepository:
    """Repository for the dunning view of Invoice.

    Dunning field updates only flush; the orchestrator commits them together
    with the attempt ledger changes of the same unit of work.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, invoice_id: UUID, organization_id: UUID | None = None) -> Invoice | None:
        query = self.db.query(Invoice).filter(Invoice.id == invoice_id)
        if organization_id is not None:
            query = query.filter(Invoice.organization_id == organization_id)
        return query.first()

    def mark_dunning_started(
        self,
        invoice_id: UUID,
        started_at: datetime,
        next_attempt_at: datetime,
    ) -> bool:
        """Open the episode unless one was ever started; False if it was."""
        updated = (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.dunning_started_at.is_(None))
            .update(
                {
                    Invoice.dunning_started_at: started_at,
                    Invoice.dunning_ended_at: None,
                    Invoice.dunning_attempt_count: 0,
                    Invoice.next_dunning_attempt_at: next_attempt_at,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def record_attempt(
        self,
        invoice_id: UUID,
        attempt_count: int,
        next_attempt_at: datetime,
    ) -> None:
        self.db.query(Invoice).filter(Invoice.id == invoice_id).update(
            {
                Invoice.dunning_attempt_count: attempt_count,
                Invoice.next_dunning_attempt_at: next_attempt_at,
            },
            synchronize_session=False,
        )

    def mark_dunning_ended(
        self,
        invoice_id: UUID,
        ended_at: datetime,
        attempt_count: int | None = None,
    ) -> None:
        values: dict = {
            Invoice.dunning_ended_at: ended_at,
            Invoice.next_dunning_attempt_at: None,
        }
        if attempt_count is not None:
            values[Invoice.dunning_attempt_count] = attempt_count
        self.db.query(Invoice).filter(Invoice.id == invoice_id).update(
            values, synchronize_session=False
        )

    def _in_dunning(self, organization_id: UUID):  # type: ignore[no-untyped-def]
        return self.db.query(Invoice).filter(
            Invoice.organization_id == organization_id,
            Invoice.dunning_started_at.isnot(None),
            Invoice.dunning_ended_at.is_(None),
        )

    def get_in_dunning(
        self,
        organization_id: UUID,
        limit: int,
        cursor: UUID | None = None,
    ) -> list[Invoice]:
        """Invoices with an active episode, most recently started first.

        ``cursor`` is the id of the last invoice of the previous page.
        """
        query = self._in_dunning(organization_id)
        if cursor is not None:
            anchor = self.get_by_id(cursor, organization_id)
            if anchor is not None and anchor.dunning_started_at is not None:
                query = query.filter(
                    or_(
                        Invoice.dunning_started_at < anchor.dunning_started_at,
                        and_(
                            Invoice.dunning_started_at == anchor.dunning_started_at,
                            Invoice.id < anchor.id,
                        ),
                    )
                )
        return (
            query.order_by(Invoice.dunning_started_at.desc(), Invoice.id.desc())
            .limit(limit)
            .all()
        )

    def count_in_dunning(self, organization_id: UUID) -> int:
        return self._in_dunning(organization_id).count()

    def amounts_in_dunning_by_currency(self, organization_id: UUID) -> list[tuple[str, int]]:
        rows = (
            self.db.query(Invoice.currency, func.sum(Invoice.amount_due))
            .filter(
                Invoice.organization_id == organization_id,
                Invoice.dunning_started_at.isnot(None),
                Invoice.dunning_ended_at.is_(None),
            )
            .group_by(Invoice.currency)
            .all()
        )
        return [(str(currency), int(total or 0)) for currency, total in rows]

    def get_missed_dunning_candidates(self, due_before: datetime, limit: int) -> list[Invoice]:
        """Open subscription invoices past due that never entered dunning."""
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.status == InvoiceStatus.OPEN.value,
                Invoice.due_date < due_before,
                Invoice.dunning_started_at.is_(None),
                Invoice.subscription_id.isnot(None),
            )
            .order_by(Invoice.due_date.asc())
            .limit(limit)
            .all()
        )
