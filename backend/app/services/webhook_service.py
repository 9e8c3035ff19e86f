"""Webhook service recording outbound events for active endpoints."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.webhook import Webhook
from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.repositories.webhook_repository import WebhookRepository

logger = logging.getLogger(__name__)

# Event types emitted by the dunning engine
WEBHOOK_EVENT_TYPES = [
    "dunning.started",
    "dunning.attempt_failed",
    "dunning.attempt_succeeded",
    "dunning.final_attempt_failed",
    "dunning.ended",
    "subscription.suspended",
    "subscription.canceled",
]


class WebhookService:
    """Service for queueing webhooks."""

    def __init__(self, db: Session):
        self.db = db
        self.endpoint_repo = WebhookEndpointRepository(db)
        self.webhook_repo = WebhookRepository(db)

    def send_webhook(
        self,
        organization_id: UUID,
        webhook_type: str,
        object_type: str | None = None,
        object_id: UUID | None = None,
        payload: dict[str, Any] | None = None,
    ) -> list[Webhook]:
        """Create webhook records for all active endpoints.

        Args:
            organization_id: Organization that owns the event.
            webhook_type: Event type (e.g., "dunning.started").
            object_type: Type of the resource that triggered the event.
            object_id: ID of the resource that triggered the event.
            payload: Full event payload to deliver.

        Returns:
            List of created Webhook records. Delivery happens elsewhere.
        """
        if webhook_type not in WEBHOOK_EVENT_TYPES:
            raise ValueError(f"Unknown webhook type: {webhook_type}")
        if payload is None:
            payload = {}

        active_endpoints = self.endpoint_repo.get_active(organization_id)
        webhooks: list[Webhook] = []

        for endpoint in active_endpoints:
            webhook = self.webhook_repo.create(
                organization_id=organization_id,
                webhook_endpoint_id=endpoint.id,  # type: ignore[arg-type]
                webhook_type=webhook_type,
                object_type=object_type,
                object_id=object_id,
                payload=payload,
            )
            webhooks.append(webhook)

        logger.debug("Queued %s for %d endpoint(s)", webhook_type, len(webhooks))
        return webhooks
