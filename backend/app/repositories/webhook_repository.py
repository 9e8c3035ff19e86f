"""Webhook repository for data access."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.webhook import Webhook


class WebhookRepository:
    """Repository for Webhook model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        organization_id: UUID,
        webhook_endpoint_id: UUID,
        webhook_type: str,
        payload: dict[str, Any],
        object_type: str | None = None,
        object_id: UUID | None = None,
    ) -> Webhook:
        """Create a new webhook record."""
        webhook = Webhook(
            organization_id=organization_id,
            webhook_endpoint_id=webhook_endpoint_id,
            webhook_type=webhook_type,
            object_type=object_type,
            object_id=object_id,
            payload=payload,
        )
        self.db.add(webhook)
        self.db.commit()
        self.db.refresh(webhook)
        return webhook

    def get_by_type(self, organization_id: UUID, webhook_type: str) -> list[Webhook]:
        return (
            self.db.query(Webhook)
            .filter(
                Webhook.organization_id == organization_id,
                Webhook.webhook_type == webhook_type,
            )
            .order_by(Webhook.created_at.asc())
            .all()
        )
