"""Tests for WebhookService — event recording per active endpoint."""

from uuid import uuid4

import pytest

from app.models.webhook import Webhook
from app.models.webhook_endpoint import WebhookEndpoint
from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.repositories.webhook_repository import WebhookRepository
from app.services.webhook_service import WEBHOOK_EVENT_TYPES, WebhookService


@pytest.fixture
def service(db_session):
    """Create a WebhookService instance."""
    return WebhookService(db_session)


@pytest.fixture
def active_endpoint(db_session, default_org_id):
    """Create an active webhook endpoint."""
    return WebhookEndpointRepository(db_session).create(
        default_org_id, "https://example.com/webhooks"
    )


@pytest.fixture
def second_active_endpoint(db_session, default_org_id):
    """Create a second active webhook endpoint."""
    return WebhookEndpointRepository(db_session).create(
        default_org_id, "https://example.com/webhooks2"
    )


@pytest.fixture
def inactive_endpoint(db_session, default_org_id):
    endpoint = WebhookEndpoint(
        organization_id=default_org_id,
        url="https://example.com/disabled",
        status="inactive",
    )
    db_session.add(endpoint)
    db_session.commit()
    return endpoint


class TestWebhookEventTypes:
    def test_dunning_lifecycle_events(self):
        assert WEBHOOK_EVENT_TYPES == [
            "dunning.started",
            "dunning.attempt_failed",
            "dunning.attempt_succeeded",
            "dunning.final_attempt_failed",
            "dunning.ended",
            "subscription.suspended",
            "subscription.canceled",
        ]


class TestSendWebhook:
    def test_creates_one_record_per_active_endpoint(
        self,
        service,
        default_org_id,
        active_endpoint,
        second_active_endpoint,
        inactive_endpoint,
    ):
        invoice_id = uuid4()

        webhooks = service.send_webhook(
            organization_id=default_org_id,
            webhook_type="dunning.started",
            object_type="invoice",
            object_id=invoice_id,
            payload={"invoice_id": str(invoice_id), "amount_due": 4999},
        )

        assert len(webhooks) == 2
        assert {w.webhook_endpoint_id for w in webhooks} == {
            active_endpoint.id,
            second_active_endpoint.id,
        }
        for webhook in webhooks:
            assert webhook.status == "pending"
            assert webhook.object_type == "invoice"
            assert webhook.object_id == invoice_id
            assert webhook.payload == {"invoice_id": str(invoice_id), "amount_due": 4999}

    def test_no_active_endpoints(self, service, default_org_id, inactive_endpoint):
        webhooks = service.send_webhook(
            organization_id=default_org_id,
            webhook_type="dunning.ended",
        )

        assert webhooks == []

    def test_other_organization_endpoints_are_ignored(
        self, service, db_session, default_org_id, active_endpoint
    ):
        webhooks = service.send_webhook(organization_id=uuid4(), webhook_type="dunning.ended")

        assert webhooks == []
        assert db_session.query(Webhook).count() == 0

    def test_payload_defaults_to_empty(self, service, default_org_id, active_endpoint):
        webhooks = service.send_webhook(
            organization_id=default_org_id,
            webhook_type="subscription.canceled",
        )

        assert webhooks[0].payload == {}
        assert webhooks[0].object_type is None

    def test_unknown_type_raises(self, service, db_session, default_org_id, active_endpoint):
        with pytest.raises(ValueError, match="Unknown webhook type: invoice.created"):
            service.send_webhook(
                organization_id=default_org_id,
                webhook_type="invoice.created",
            )

        assert db_session.query(Webhook).count() == 0

    def test_records_are_queryable_by_type(
        self, service, db_session, default_org_id, active_endpoint
    ):
        service.send_webhook(organization_id=default_org_id, webhook_type="dunning.started")
        service.send_webhook(organization_id=default_org_id, webhook_type="dunning.ended")

        started = WebhookRepository(db_session).get_by_type(default_org_id, "dunning.started")

        assert len(started) == 1
        assert started[0].webhook_type == "dunning.started"
