"""Tests for the dunning API router endpoints."""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.dunning_attempt import DunningAttempt
from app.models.dunning_email_template import DunningEmailType
from app.models.organization import Organization
from app.services.dunning_service import DunningService
from app.services.payment_provider import PaymentProviderError


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def in_dunning(db_session, default_org_id, invoice):
    """The fixture invoice with an active dunning episode."""
    email_service = MagicMock()
    email_service.send_dunning_email = AsyncMock(return_value=True)
    service = DunningService(db_session, payment_provider=MagicMock(), email_service=email_service)

    asyncio.run(service.start_dunning(default_org_id, invoice.id))
    db_session.refresh(invoice)
    return invoice


class TestDunningConfigApi:
    def test_get_defaults(self, client: TestClient) -> None:
        response = client.get("/v1/dunning/config")

        assert response.status_code == 200
        data = response.json()
        assert data["retry_schedule"] == [1, 3, 5, 7]
        assert data["max_attempts"] == 4
        assert data["final_action"] == "suspend"
        assert data["grace_period_days"] == 0
        assert data["emails_enabled"] is False
        assert data["is_default"] is True

    def test_update_and_read_back(self, client: TestClient) -> None:
        response = client.put(
            "/v1/dunning/config",
            json={"retry_schedule": [2, 4], "max_attempts": 2, "final_action": "cancel"},
        )

        assert response.status_code == 200
        assert response.json()["is_default"] is False

        data = client.get("/v1/dunning/config").json()
        assert data["retry_schedule"] == [2, 4]
        assert data["max_attempts"] == 2
        assert data["final_action"] == "cancel"

    @pytest.mark.parametrize(
        "payload",
        [
            {"retry_schedule": []},
            {"retry_schedule": [1, -2]},
            {"max_attempts": 0},
            {"max_attempts": 11},
            {"grace_period_days": 31},
            {"final_action": "delete"},
            {"from_email": "not-an-email"},
        ],
    )
    def test_invalid_update(self, client: TestClient, payload) -> None:
        response = client.put("/v1/dunning/config", json=payload)

        assert response.status_code == 422

    def test_delete_config(self, client: TestClient) -> None:
        client.put("/v1/dunning/config", json={"max_attempts": 2})

        response = client.delete("/v1/dunning/config")

        assert response.status_code == 204
        assert client.get("/v1/dunning/config").json()["is_default"] is True

    def test_delete_missing_config(self, client: TestClient) -> None:
        response = client.delete("/v1/dunning/config")

        assert response.status_code == 404
        assert response.json()["detail"] == "Dunning config not found"

    def test_organization_header_scopes_config(self, client: TestClient, db_session) -> None:
        other = Organization(name="Other Org")
        db_session.add(other)
        db_session.commit()
        headers = {"X-Organization-Id": str(other.id)}

        client.put("/v1/dunning/config", json={"max_attempts": 9}, headers=headers)

        assert client.get("/v1/dunning/config", headers=headers).json()["max_attempts"] == 9
        assert client.get("/v1/dunning/config").json()["max_attempts"] == 4

    def test_invalid_organization_header(self, client: TestClient) -> None:
        response = client.get("/v1/dunning/config", headers={"X-Organization-Id": "nope"})

        assert response.status_code == 400


class TestInvoicesInDunningApi:
    def test_empty_list(self, client: TestClient) -> None:
        response = client.get("/v1/dunning/invoices")

        assert response.status_code == 200
        assert response.json() == {"data": [], "has_more": False, "next_cursor": None}

    def test_lists_invoice_in_dunning(self, client: TestClient, in_dunning) -> None:
        response = client.get("/v1/dunning/invoices")

        data = response.json()
        assert len(data["data"]) == 1
        item = data["data"][0]
        assert item["id"] == str(in_dunning.id)
        assert item["invoice_number"] == "inv_1"
        assert item["amount_due"] == 4999
        assert item["dunning_attempt_count"] == 0
        assert item["next_dunning_attempt_at"] is not None

    def test_limit_bounds(self, client: TestClient) -> None:
        assert client.get("/v1/dunning/invoices?limit=0").status_code == 422
        assert client.get("/v1/dunning/invoices?limit=101").status_code == 422


class TestDunningAttemptsApi:
    def test_lists_attempts(self, client: TestClient, in_dunning) -> None:
        response = client.get(f"/v1/dunning/invoices/{in_dunning.id}/attempts")

        assert response.status_code == 200
        attempts = response.json()
        assert len(attempts) == 1
        assert attempts[0]["attempt_number"] == 1
        assert attempts[0]["status"] == "pending"
        assert attempts[0]["success"] is None

    def test_unknown_invoice(self, client: TestClient) -> None:
        response = client.get(f"/v1/dunning/invoices/{uuid.uuid4()}/attempts")

        assert response.status_code == 404


class TestRetryApi:
    def test_decline_is_reported(self, client: TestClient, in_dunning) -> None:
        provider = MagicMock()
        provider.pay_now.side_effect = PaymentProviderError(
            "Your card was declined.", decline_code="card_declined"
        )

        with patch(
            "app.services.dunning_service.get_payment_provider", return_value=provider
        ) as mock_get:
            response = client.post(f"/v1/dunning/invoices/{in_dunning.id}/retry")

        assert response.status_code == 200
        assert response.json() == {
            "attempt_id": "manual",
            "success": False,
            "failure_reason": "Your card was declined.",
            "decline_code": "card_declined",
            "next_attempt_at": None,
            "final_action_taken": None,
        }
        mock_get.assert_called_once_with("stripe")
        provider.pay_now.assert_called_once_with("in_123")

    def test_success_ends_dunning(self, client: TestClient, db_session, in_dunning) -> None:
        provider = MagicMock()

        with patch("app.services.dunning_service.get_payment_provider", return_value=provider):
            response = client.post(f"/v1/dunning/invoices/{in_dunning.id}/retry")

        assert response.json()["success"] is True
        db_session.refresh(in_dunning)
        assert in_dunning.dunning_ended_at is not None

    def test_unknown_invoice(self, client: TestClient) -> None:
        response = client.post(f"/v1/dunning/invoices/{uuid.uuid4()}/retry")

        assert response.status_code == 404


class TestStopApi:
    def test_stop(self, client: TestClient, db_session, in_dunning) -> None:
        response = client.post(
            f"/v1/dunning/invoices/{in_dunning.id}/stop",
            json={"reason": "Customer paid by bank transfer"},
        )

        assert response.status_code == 204
        attempt = db_session.query(DunningAttempt).one()
        db_session.refresh(attempt)
        assert attempt.status == "skipped"
        assert attempt.failure_reason == "Stopped: Customer paid by bank transfer"

    def test_stop_twice_is_accepted(self, client: TestClient, in_dunning) -> None:
        url = f"/v1/dunning/invoices/{in_dunning.id}/stop"
        client.post(url, json={"reason": "first"})

        assert client.post(url, json={"reason": "again"}).status_code == 204

    def test_reason_required(self, client: TestClient, in_dunning) -> None:
        response = client.post(f"/v1/dunning/invoices/{in_dunning.id}/stop", json={})

        assert response.status_code == 422

    def test_unknown_invoice(self, client: TestClient) -> None:
        response = client.post(
            f"/v1/dunning/invoices/{uuid.uuid4()}/stop", json={"reason": "n/a"}
        )

        assert response.status_code == 404


class TestStartApi:
    def test_enqueues_start(self, client: TestClient, default_org_id, invoice) -> None:
        job = MagicMock()
        job.job_id = "job-42"

        with patch(
            "app.routers.dunning.enqueue_start_dunning", AsyncMock(return_value=job)
        ) as mock_enqueue:
            response = client.post(f"/v1/dunning/invoices/{invoice.id}/start")

        assert response.status_code == 202
        assert response.json() == {"job_id": "job-42"}
        mock_enqueue.assert_awaited_once_with(default_org_id, invoice.id)

    def test_unknown_invoice(self, client: TestClient) -> None:
        with patch("app.routers.dunning.enqueue_start_dunning", AsyncMock()) as mock_enqueue:
            response = client.post(f"/v1/dunning/invoices/{uuid.uuid4()}/start")

        assert response.status_code == 404
        mock_enqueue.assert_not_awaited()


class TestStatsApi:
    def test_empty_stats(self, client: TestClient) -> None:
        response = client.get("/v1/dunning/stats")

        assert response.status_code == 200
        assert response.json() == {
            "invoices_in_dunning": 0,
            "total_amount_at_risk": 0,
            "currency": "usd",
            "amounts_by_currency": [],
            "recovery_rate": 0.0,
            "attempts_by_status": {"pending": 0, "succeeded": 0, "failed": 0},
        }

    def test_stats_with_invoice_in_dunning(self, client: TestClient, in_dunning) -> None:
        data = client.get("/v1/dunning/stats").json()

        assert data["invoices_in_dunning"] == 1
        assert data["total_amount_at_risk"] == 4999
        assert data["amounts_by_currency"] == [{"currency": "usd", "amount": 4999}]
        assert data["attempts_by_status"]["pending"] == 1


class TestEmailTemplatesApi:
    def test_list_templates(self, client: TestClient) -> None:
        response = client.get("/v1/dunning/email-templates")

        assert response.status_code == 200
        assert [t["type"] for t in response.json()] == [t.value for t in DunningEmailType]

    def test_get_template(self, client: TestClient) -> None:
        response = client.get("/v1/dunning/email-templates/final_warning")

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "final_warning"
        assert data["is_default"] is True
        assert data["enabled"] is True

    def test_unknown_type(self, client: TestClient) -> None:
        assert client.get("/v1/dunning/email-templates/welcome").status_code == 422
        assert client.put("/v1/dunning/email-templates/welcome", json={}).status_code == 422
        assert client.delete("/v1/dunning/email-templates/welcome").status_code == 422

    def test_update_and_reset(self, client: TestClient) -> None:
        response = client.put(
            "/v1/dunning/email-templates/payment_failed",
            json={"subject": "Payment problem with ${invoice_number}", "enabled": False},
        )

        assert response.status_code == 200
        assert response.json()["subject"] == "Payment problem with ${invoice_number}"
        assert response.json()["enabled"] is False
        assert response.json()["is_default"] is False

        assert client.delete("/v1/dunning/email-templates/payment_failed").status_code == 204
        data = client.get("/v1/dunning/email-templates/payment_failed").json()
        assert data["is_default"] is True
        assert data["enabled"] is True

    def test_reset_without_override(self, client: TestClient) -> None:
        assert client.delete("/v1/dunning/email-templates/payment_reminder").status_code == 204

    def test_empty_subject_rejected(self, client: TestClient) -> None:
        response = client.put(
            "/v1/dunning/email-templates/payment_failed", json={"subject": ""}
        )

        assert response.status_code == 422


class TestRoot:
    def test_root(self, client: TestClient) -> None:
        data = client.get("/").json()

        assert data["status"] == "running"
        assert data["app"] == "Dunning Service"

