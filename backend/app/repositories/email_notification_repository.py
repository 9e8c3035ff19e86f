"""EmailNotification repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.models.email_notification import EmailNotification, EmailNotificationStatus
from app.models.shared import utc_now


class EmailNotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        organization_id: UUID,
        customer_id: UUID,
        invoice_id: UUID | None,
        email_type: str,
        to_email: str,
    ) -> EmailNotification:
        notification = EmailNotification(
            organization_id=organization_id,
            customer_id=customer_id,
            invoice_id=invoice_id,
            type=email_type,
            to_email=to_email,
            status=EmailNotificationStatus.PENDING.value,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_sent(self, notification: EmailNotification) -> None:
        notification.status = EmailNotificationStatus.SENT.value  # type: ignore[assignment]
        notification.sent_at = utc_now()  # type: ignore[assignment]
        self.db.commit()

    def mark_failed(self, notification: EmailNotification, reason: str) -> None:
        notification.status = EmailNotificationStatus.FAILED.value  # type: ignore[assignment]
        notification.failure_reason = reason[:1000]  # type: ignore[assignment]
        self.db.commit()

    def get_for_invoice(self, invoice_id: UUID) -> list[EmailNotification]:
        return (
            self.db.query(EmailNotification)
            .filter(EmailNotification.invoice_id == invoice_id)
            .order_by(EmailNotification.created_at.asc())
            .all()
        )
