"""WebhookEndpoint repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.models.webhook_endpoint import WebhookEndpoint


class WebhookEndpointRepository:
    """Repository for WebhookEndpoint model."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, organization_id: UUID, url: str) -> WebhookEndpoint:
        endpoint = WebhookEndpoint(organization_id=organization_id, url=url, status="active")
        self.db.add(endpoint)
        self.db.commit()
        self.db.refresh(endpoint)
        return endpoint

    def get_active(self, organization_id: UUID) -> list[WebhookEndpoint]:
        """Get the organization's active endpoints."""
        return (
            self.db.query(WebhookEndpoint)
            .filter(
                WebhookEndpoint.organization_id == organization_id,
                WebhookEndpoint.status == "active",
            )
            .all()
        )
