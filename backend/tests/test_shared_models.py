"""Tests for shared model utilities and dunning model defaults."""

import uuid
from datetime import UTC, datetime, timedelta, timezone

from app.models.dunning_attempt import DunningAttempt, DunningAttemptStatus
from app.models.shared import (
    DEFAULT_ORGANIZATION_ID,
    UUIDType,
    ensure_utc,
    generate_uuid,
    utc_now,
)


class TestGenerateUuid:
    def test_returns_unique_uuid4(self):
        results = {generate_uuid() for _ in range(10)}
        assert len(results) == 10
        assert all(r.version == 4 for r in results)


class TestUtcNow:
    def test_returns_current_utc_time(self):
        before = datetime.now(UTC)
        result = utc_now()
        after = datetime.now(UTC)
        assert result.tzinfo == UTC
        assert before <= result <= after


class TestEnsureUtc:
    def test_naive_is_tagged_utc(self):
        naive = datetime(2026, 3, 1, 12, 0)

        result = ensure_utc(naive)

        assert result == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def test_aware_is_unchanged(self):
        aware = datetime(2026, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        assert ensure_utc(aware) is aware


class TestDefaultOrganizationId:
    def test_value(self):
        assert DEFAULT_ORGANIZATION_ID == uuid.UUID("00000000-0000-0000-0000-000000000001")


class TestUUIDType:
    def test_bind_param(self):
        t = UUIDType()
        val = uuid.uuid4()
        assert t.process_bind_param(None, None) is None
        assert t.process_bind_param(val, None) == str(val)
        assert t.process_bind_param(str(val).upper(), None) == str(val)

    def test_result_value(self):
        t = UUIDType()
        val = "12345678-1234-5678-1234-567812345678"
        assert t.process_result_value(None, None) is None
        assert t.process_result_value(val, None) == uuid.UUID(val)


class TestDunningAttemptModel:
    def test_defaults_to_pending(self, db_session, default_org_id, invoice):
        attempt = DunningAttempt(
            organization_id=default_org_id,
            invoice_id=invoice.id,
            customer_id=invoice.customer_id,
            attempt_number=1,
            scheduled_at=utc_now(),
        )
        db_session.add(attempt)
        db_session.commit()
        db_session.refresh(attempt)

        assert attempt.status == DunningAttemptStatus.PENDING.value
        assert attempt.executed_at is None
        assert attempt.success is None
        assert attempt.created_at is not None

    def test_invoice_starts_outside_dunning(self, invoice):
        assert invoice.dunning_started_at is None
        assert invoice.dunning_ended_at is None
        assert invoice.dunning_attempt_count == 0
        assert invoice.next_dunning_attempt_at is None
