"""Dunning service: the payment-recovery state machine.

An invoice whose payment failed enters a dunning episode. Each episode owns an
attempt ledger; exactly one attempt is pending or processing at a time, and
each new attempt is created only once its predecessor has a terminal status.
Attempts are executed after an atomic pending -> processing claim so that
overlapping scheduler ticks or workers never charge the same attempt twice.

Every state change is committed as one unit before any event or email goes
out. Events and emails are best-effort and never roll back dunning progress.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.dunning_attempt import DunningAttempt, DunningAttemptStatus
from app.models.dunning_config import DunningFinalAction
from app.models.dunning_email_template import DunningEmailType
from app.models.invoice import Invoice, InvoiceStatus
from app.models.shared import ensure_utc, utc_now
from app.models.subscription import RECOVERABLE_STATUSES, SubscriptionStatus
from app.repositories.dunning_attempt_repository import DunningAttemptRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.schemas.dunning import AmountByCurrency, AttemptsByStatus, DunningStatsResponse
from app.services.dunning_config_service import (
    DunningConfigService,
    DunningConfigView,
    calculate_final_action_date,
    calculate_next_retry_date,
    is_max_attempts_reached,
)
from app.services.email_service import EmailService
from app.services.payment_provider import (
    DunningPaymentProvider,
    PaymentOutcome,
    PaymentProviderError,
    get_payment_provider,
)
from app.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

MANUAL_ATTEMPT_ID = "manual"
DUNNING_ENDED_REASON = "Dunning already ended"

_FINAL_ACTION_STATUS = {
    DunningFinalAction.SUSPEND: SubscriptionStatus.SUSPENDED,
    DunningFinalAction.CANCEL: SubscriptionStatus.CANCELED,
}

_FINAL_ACTION_EVENT = {
    DunningFinalAction.SUSPEND: ("subscription.suspended", DunningEmailType.SUBSCRIPTION_SUSPENDED),
    DunningFinalAction.CANCEL: ("subscription.canceled", DunningEmailType.SUBSCRIPTION_CANCELED),
}


@dataclass
class DunningAttemptResult:
    """Outcome of executing one attempt or a manual retry."""

    attempt_id: str
    success: bool
    failure_reason: str | None = None
    decline_code: str | None = None
    next_attempt_at: datetime | None = None
    final_action_taken: DunningFinalAction | None = None


def _iso(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value is not None else None


def _str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


class DunningService:
    """Service driving dunning episodes from first failure to recovery or final action."""

    def __init__(
        self,
        db: Session,
        payment_provider: DunningPaymentProvider | None = None,
        email_service: EmailService | None = None,
    ):
        self.db = db
        # When unset, the provider is resolved from each invoice's provider name
        self.payment_provider = payment_provider
        self.email_service = email_service or EmailService()
        self.config_service = DunningConfigService(db)
        self.attempt_repo = DunningAttemptRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.subscription_repo = SubscriptionRepository(db)
        self.webhook_service = WebhookService(db)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit everything done in the block at once, or nothing."""
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    async def _emit_and_notify(
        self,
        organization_id: UUID,
        event_type: str,
        object_type: str,
        object_id: UUID,
        payload: dict[str, Any],
        email_type: DunningEmailType | None = None,
        customer_id: UUID | None = None,
        invoice_id: UUID | None = None,
        variables: dict[str, Any] | None = None,
    ) -> None:
        """Emit an event, then send the matching email. Never raises."""
        try:
            self.webhook_service.send_webhook(
                organization_id=organization_id,
                webhook_type=event_type,
                object_type=object_type,
                object_id=object_id,
                payload=payload,
            )
        except Exception:
            logger.exception("Failed to emit %s for %s %s", event_type, object_type, object_id)
            self.db.rollback()

        if email_type is None or customer_id is None:
            return
        try:
            await self.email_service.send_dunning_email(
                self.db,
                organization_id=organization_id,
                customer_id=customer_id,
                invoice_id=invoice_id,
                email_type=email_type,
                variables=variables,
            )
        except Exception:
            logger.exception("Failed to send %s email for invoice %s", email_type.value, invoice_id)
            self.db.rollback()

    def _get_invoice_or_raise(self, organization_id: UUID, invoice_id: UUID) -> Invoice:
        invoice = self.invoice_repo.get_by_id(invoice_id, organization_id)
        if not invoice:
            raise ValueError(f"Invoice {invoice_id} not found")
        return invoice

    def _provider_for(self, invoice: Invoice) -> DunningPaymentProvider:
        if self.payment_provider is not None:
            return self.payment_provider
        return get_payment_provider(str(invoice.provider))

    async def _collect(self, invoice: Invoice) -> PaymentOutcome:
        """Ask the invoice's provider to charge it; declines come back as values."""
        try:
            provider = self._provider_for(invoice)
        except ValueError as e:
            return PaymentOutcome(success=False, failure_reason=str(e))
        outcome = await asyncio.to_thread(
            provider.attempt_payment, str(invoice.provider_invoice_id)
        )
        if outcome.success:
            logger.info("Payment retry successful for invoice %s", invoice.id)
        return outcome

    # ------------------------------------------------------------------
    # Episode lifecycle
    # ------------------------------------------------------------------

    async def start_dunning(self, organization_id: UUID, invoice_id: UUID) -> bool:
        """Open a dunning episode for an invoice whose payment failed.

        Safe to call more than once: an invoice that already entered dunning,
        or is no longer open, is left alone. Returns True when an episode
        was started.

        Raises:
            ValueError: If the invoice does not exist.
        """
        invoice = self._get_invoice_or_raise(organization_id, invoice_id)

        if invoice.dunning_started_at is not None:
            logger.debug("Invoice %s already in dunning, skipping", invoice_id)
            return False
        if invoice.status != InvoiceStatus.OPEN.value:
            logger.debug("Invoice %s status is %s, not starting dunning", invoice_id, invoice.status)
            return False

        config = self.config_service.get_config(organization_id)
        now = utc_now()
        first_retry_at = calculate_next_retry_date(config, 0, now)
        if first_retry_at is None:
            logger.warning("No retry schedule configured for organization %s", organization_id)
            return False

        customer_id: UUID = invoice.customer_id  # type: ignore[assignment]
        subscription_id: UUID | None = invoice.subscription_id  # type: ignore[assignment]
        amount_due = int(invoice.amount_due)
        currency = str(invoice.currency)

        with self._transaction():
            started = self.invoice_repo.mark_dunning_started(invoice_id, now, first_retry_at)
            if started:
                self.attempt_repo.add_pending(
                    organization_id=organization_id,
                    invoice_id=invoice_id,
                    customer_id=customer_id,
                    subscription_id=subscription_id,
                    attempt_number=1,
                    scheduled_at=first_retry_at,
                )
        if not started:
            # A concurrent start won the race
            logger.debug("Invoice %s already in dunning, skipping", invoice_id)
            return False

        await self._emit_and_notify(
            organization_id,
            "dunning.started",
            "invoice",
            invoice_id,
            {
                "invoice_id": str(invoice_id),
                "subscription_id": _str_or_none(subscription_id),
                "customer_id": str(customer_id),
                "amount_due": amount_due,
                "currency": currency,
                "first_retry_at": _iso(first_retry_at),
                "max_attempts": config.max_attempts,
            },
            email_type=DunningEmailType.PAYMENT_FAILED,
            customer_id=customer_id,
            invoice_id=invoice_id,
            variables={
                "attempt_number": 1,
                "max_attempts": config.max_attempts,
                "next_retry_date": first_retry_at,
            },
        )
        logger.info("Started dunning for invoice %s, first retry at %s", invoice_id, first_retry_at)
        return True

    async def process_dunning_attempt(self, attempt_id: UUID) -> DunningAttemptResult:
        """Claim and execute one pending attempt.

        An attempt that is no longer pending, or that another worker claims
        first, is reported in its current state without being executed.

        Raises:
            ValueError: If the attempt does not exist.
        """
        attempt = self.attempt_repo.get_by_id(attempt_id)
        if not attempt:
            raise ValueError(f"Dunning attempt {attempt_id} not found")

        if attempt.status != DunningAttemptStatus.PENDING.value:
            logger.debug("Attempt %s status is %s, skipping", attempt_id, attempt.status)
            return self._current_outcome(attempt)

        if not self.attempt_repo.claim(attempt_id, utc_now()):
            current = self.attempt_repo.get_by_id(attempt_id)
            logger.debug("Attempt %s claimed elsewhere, now %s", attempt_id, current.status)  # type: ignore[union-attr]
            return self._current_outcome(current)  # type: ignore[arg-type]

        organization_id: UUID = attempt.organization_id  # type: ignore[assignment]
        invoice_id: UUID = attempt.invoice_id  # type: ignore[assignment]

        invoice = self.invoice_repo.get_by_id(invoice_id)
        if not invoice:
            with self._transaction():
                recorded = self.attempt_repo.mark_failed(attempt_id, "Invoice not found")
            if not recorded:
                return self._superseded_outcome(attempt_id)
            return DunningAttemptResult(
                attempt_id=str(attempt_id), success=False, failure_reason="Invoice not found"
            )

        if invoice.status == InvoiceStatus.PAID.value:
            logger.info("Invoice %s paid externally, ending dunning", invoice_id)
            await self.handle_payment_success(organization_id, invoice_id)
            return DunningAttemptResult(attempt_id=str(attempt_id), success=True)

        if invoice.dunning_started_at is None or invoice.dunning_ended_at is not None:
            # Released back to pending after the episode was stopped
            logger.info("Dunning ended for invoice %s, skipping attempt %s", invoice_id, attempt_id)
            with self._transaction():
                self.attempt_repo.skip_processing(attempt_id, DUNNING_ENDED_REASON)
            return DunningAttemptResult(
                attempt_id=str(attempt_id), success=False, failure_reason=DUNNING_ENDED_REASON
            )

        if invoice.status != InvoiceStatus.OPEN.value:
            return await self._end_uncollectable(attempt, invoice)

        outcome = await self._collect(invoice)
        if outcome.success:
            await self.handle_payment_success(organization_id, invoice_id)
            return DunningAttemptResult(attempt_id=str(attempt_id), success=True)

        return await self._handle_attempt_failure(
            attempt,
            outcome.failure_reason or "Payment failed",
            outcome.decline_code,
        )

    @staticmethod
    def _current_outcome(attempt: DunningAttempt) -> DunningAttemptResult:
        return DunningAttemptResult(
            attempt_id=str(attempt.id),
            success=attempt.status == DunningAttemptStatus.SUCCEEDED.value,
            failure_reason=attempt.failure_reason,  # type: ignore[arg-type]
            decline_code=attempt.decline_code,  # type: ignore[arg-type]
        )

    def _superseded_outcome(self, attempt_id: UUID) -> DunningAttemptResult:
        """Result for an attempt that was settled elsewhere while it was processing."""
        attempt = self.attempt_repo.get_by_id(attempt_id)
        self.db.refresh(attempt)
        logger.info("Attempt %s already settled as %s, keeping it", attempt_id, attempt.status)  # type: ignore[union-attr]
        return self._current_outcome(attempt)  # type: ignore[arg-type]

    async def _end_uncollectable(
        self, attempt: DunningAttempt, invoice: Invoice
    ) -> DunningAttemptResult:
        """End the episode of an invoice that was voided or written off."""
        organization_id: UUID = attempt.organization_id  # type: ignore[assignment]
        attempt_id: UUID = attempt.id  # type: ignore[assignment]
        invoice_id: UUID = invoice.id  # type: ignore[assignment]
        status = str(invoice.status)
        reason = f"Invoice status is {status}"
        now = utc_now()

        with self._transaction():
            self.attempt_repo.skip_processing(attempt_id, reason)
            self.attempt_repo.skip_pending(invoice_id, failure_reason=reason)
            self.invoice_repo.mark_dunning_ended(invoice_id, now)

        await self._emit_and_notify(
            organization_id,
            "dunning.ended",
            "invoice",
            invoice_id,
            {
                "invoice_id": str(invoice_id),
                "reason": f"invoice_{status}",
                "stopped_at": _iso(now),
            },
        )
        logger.info("Dunning ended for invoice %s: status is %s", invoice_id, status)
        return DunningAttemptResult(attempt_id=str(attempt_id), success=False, failure_reason=reason)

    async def _handle_attempt_failure(
        self,
        attempt: DunningAttempt,
        failure_reason: str,
        decline_code: str | None,
    ) -> DunningAttemptResult:
        organization_id: UUID = attempt.organization_id  # type: ignore[assignment]
        attempt_id: UUID = attempt.id  # type: ignore[assignment]
        invoice_id: UUID = attempt.invoice_id  # type: ignore[assignment]
        customer_id: UUID = attempt.customer_id  # type: ignore[assignment]
        subscription_id: UUID | None = attempt.subscription_id  # type: ignore[assignment]
        attempt_number = int(attempt.attempt_number)

        config = self.config_service.get_config(organization_id)

        invoice = self.invoice_repo.get_by_id(invoice_id)
        if invoice is None or invoice.dunning_started_at is None or invoice.dunning_ended_at is not None:
            # Episode stopped while this attempt was processing; record the outcome only
            with self._transaction():
                recorded = self.attempt_repo.mark_failed(attempt_id, failure_reason, decline_code)
            if not recorded:
                return self._superseded_outcome(attempt_id)
            return DunningAttemptResult(
                attempt_id=str(attempt_id),
                success=False,
                failure_reason=failure_reason,
                decline_code=decline_code,
            )

        if is_max_attempts_reached(config, attempt_number):
            return await self._handle_final_attempt_failure(
                attempt, config, failure_reason, decline_code
            )

        next_retry_at = calculate_next_retry_date(
            config, attempt_number, invoice.dunning_started_at  # type: ignore[arg-type]
        )
        if next_retry_at is None:
            # Schedule shorter than max_attempts
            return await self._handle_final_attempt_failure(
                attempt, config, failure_reason, decline_code
            )

        with self._transaction():
            recorded = self.attempt_repo.mark_failed(attempt_id, failure_reason, decline_code)
            if recorded:
                self.attempt_repo.add_pending(
                    organization_id=organization_id,
                    invoice_id=invoice_id,
                    customer_id=customer_id,
                    subscription_id=subscription_id,
                    attempt_number=attempt_number + 1,
                    scheduled_at=next_retry_at,
                )
                self.invoice_repo.record_attempt(invoice_id, attempt_number, next_retry_at)
        if not recorded:
            return self._superseded_outcome(attempt_id)

        if attempt_number + 1 == config.max_attempts:
            email_type = DunningEmailType.FINAL_WARNING
        else:
            email_type = DunningEmailType.PAYMENT_REMINDER

        await self._emit_and_notify(
            organization_id,
            "dunning.attempt_failed",
            "invoice",
            invoice_id,
            {
                "invoice_id": str(invoice_id),
                "subscription_id": _str_or_none(subscription_id),
                "customer_id": str(customer_id),
                "attempt_number": attempt_number,
                "max_attempts": config.max_attempts,
                "failure_reason": failure_reason,
                "decline_code": decline_code,
                "next_attempt_at": _iso(next_retry_at),
            },
            email_type=email_type,
            customer_id=customer_id,
            invoice_id=invoice_id,
            variables={
                "attempt_number": attempt_number,
                "max_attempts": config.max_attempts,
                "next_retry_date": next_retry_at,
            },
        )
        logger.info(
            "Attempt %d failed for invoice %s, next retry at %s",
            attempt_number,
            invoice_id,
            next_retry_at,
        )
        return DunningAttemptResult(
            attempt_id=str(attempt_id),
            success=False,
            failure_reason=failure_reason,
            decline_code=decline_code,
            next_attempt_at=next_retry_at,
        )

    async def _handle_final_attempt_failure(
        self,
        attempt: DunningAttempt,
        config: DunningConfigView,
        failure_reason: str,
        decline_code: str | None = None,
    ) -> DunningAttemptResult:
        """Retries are exhausted: apply the final action and end the episode."""
        organization_id: UUID = attempt.organization_id  # type: ignore[assignment]
        attempt_id: UUID = attempt.id  # type: ignore[assignment]
        invoice_id: UUID = attempt.invoice_id  # type: ignore[assignment]
        customer_id: UUID = attempt.customer_id  # type: ignore[assignment]
        subscription_id: UUID | None = attempt.subscription_id  # type: ignore[assignment]
        attempt_number = int(attempt.attempt_number)
        now = utc_now()

        with self._transaction():
            recorded = self.attempt_repo.mark_failed(attempt_id, failure_reason, decline_code)
            if recorded:
                if subscription_id is not None:
                    self._apply_final_action(subscription_id, config.final_action)
                self.invoice_repo.mark_dunning_ended(invoice_id, now, attempt_count=attempt_number)
        if not recorded:
            return self._superseded_outcome(attempt_id)

        await self._emit_and_notify(
            organization_id,
            "dunning.final_attempt_failed",
            "invoice",
            invoice_id,
            {
                "invoice_id": str(invoice_id),
                "subscription_id": _str_or_none(subscription_id),
                "customer_id": str(customer_id),
                "total_attempts": attempt_number,
                "pending_action": config.final_action.value,
                "final_action_at": _iso(calculate_final_action_date(config, now)),
                "failure_reason": failure_reason,
                "decline_code": decline_code,
            },
        )

        if subscription_id is None:
            logger.info("Dunning exhausted for invoice %s without a subscription", invoice_id)
            return DunningAttemptResult(
                attempt_id=str(attempt_id),
                success=False,
                failure_reason=failure_reason,
                decline_code=decline_code,
            )

        await self._announce_final_action(
            organization_id, invoice_id, subscription_id, config.final_action
        )
        return DunningAttemptResult(
            attempt_id=str(attempt_id),
            success=False,
            failure_reason=failure_reason,
            decline_code=decline_code,
            final_action_taken=config.final_action,
        )

    def _apply_final_action(self, subscription_id: UUID, action: DunningFinalAction) -> None:
        self.subscription_repo.set_status(subscription_id, _FINAL_ACTION_STATUS[action])

    async def _announce_final_action(
        self,
        organization_id: UUID,
        invoice_id: UUID,
        subscription_id: UUID,
        action: DunningFinalAction,
    ) -> None:
        invoice = self.invoice_repo.get_by_id(invoice_id)
        customer_id: UUID | None = invoice.customer_id if invoice else None  # type: ignore[assignment]
        event_type, email_type = _FINAL_ACTION_EVENT[action]

        await self._emit_and_notify(
            organization_id,
            event_type,
            "subscription",
            subscription_id,
            {
                "subscription_id": str(subscription_id),
                "customer_id": _str_or_none(customer_id),
                "reason": "payment_failed",
                "invoice_id": str(invoice_id),
                "amount_required": int(invoice.amount_due) if invoice else None,
                "currency": invoice.currency if invoice else None,
            },
            email_type=email_type,
            customer_id=customer_id,
            invoice_id=invoice_id,
        )
        logger.info("Subscription %s %s due to payment failure", subscription_id, action.value)

    async def execute_final_action(
        self,
        organization_id: UUID,
        invoice_id: UUID,
        subscription_id: UUID,
        action: DunningFinalAction,
    ) -> None:
        """Suspend or cancel the subscription of an unrecovered invoice."""
        with self._transaction():
            self._apply_final_action(subscription_id, action)
        await self._announce_final_action(organization_id, invoice_id, subscription_id, action)

    async def handle_payment_success(self, organization_id: UUID, invoice_id: UUID) -> None:
        """Record that the invoice got paid, wherever the payment came from.

        Ends the active episode, skips pending attempts, marks the processing
        attempt succeeded and reactivates a suspended or payment_failed
        subscription. Invoices that never entered dunning are left alone.
        """
        invoice = self.invoice_repo.get_by_id(invoice_id, organization_id)
        if not invoice:
            return
        if invoice.dunning_started_at is None:
            logger.debug("Invoice %s was never in dunning, nothing to recover", invoice_id)
            return

        customer_id: UUID = invoice.customer_id  # type: ignore[assignment]
        subscription_id: UUID | None = invoice.subscription_id  # type: ignore[assignment]
        amount_due = int(invoice.amount_due)
        currency = str(invoice.currency)
        episode_active = invoice.dunning_ended_at is None
        now = utc_now()

        with self._transaction():
            if episode_active:
                self.invoice_repo.mark_dunning_ended(invoice_id, now)
            self.attempt_repo.skip_pending(invoice_id)
            self.attempt_repo.succeed_processing(invoice_id)
            if subscription_id is not None:
                subscription = self.subscription_repo.get_by_id(subscription_id)
                if subscription and subscription.status in RECOVERABLE_STATUSES:
                    self.subscription_repo.set_status(subscription_id, SubscriptionStatus.ACTIVE)

        await self._emit_and_notify(
            organization_id,
            "dunning.attempt_succeeded",
            "invoice",
            invoice_id,
            {
                "invoice_id": str(invoice_id),
                "subscription_id": _str_or_none(subscription_id),
                "customer_id": str(customer_id),
                "amount_paid": amount_due,
                "currency": currency,
                "recovered_at": _iso(now),
            },
            email_type=DunningEmailType.PAYMENT_RECOVERED,
            customer_id=customer_id,
            invoice_id=invoice_id,
        )
        logger.info("Payment recovered for invoice %s", invoice_id)

    async def stop_dunning(self, organization_id: UUID, invoice_id: UUID, reason: str) -> bool:
        """Manually end an active episode. Returns False when none is active.

        An attempt already processing finishes normally; its result no longer
        schedules further attempts.

        Raises:
            ValueError: If the invoice does not exist.
        """
        invoice = self._get_invoice_or_raise(organization_id, invoice_id)
        if invoice.dunning_started_at is None or invoice.dunning_ended_at is not None:
            logger.debug("Invoice %s not in dunning, nothing to stop", invoice_id)
            return False

        now = utc_now()
        with self._transaction():
            self.invoice_repo.mark_dunning_ended(invoice_id, now)
            self.attempt_repo.skip_pending(invoice_id, failure_reason=f"Stopped: {reason}")

        await self._emit_and_notify(
            organization_id,
            "dunning.ended",
            "invoice",
            invoice_id,
            {
                "invoice_id": str(invoice_id),
                "reason": f"manual_stop: {reason}",
                "stopped_at": _iso(now),
            },
        )
        logger.info("Dunning stopped for invoice %s: %s", invoice_id, reason)
        return True

    async def trigger_manual_retry(
        self, organization_id: UUID, invoice_id: UUID
    ) -> DunningAttemptResult:
        """Charge the invoice right away, outside the attempt ledger.

        Declines are returned as a failed result. A successful charge is
        handled like any other observed payment.

        Raises:
            ValueError: If the invoice does not exist.
        """
        invoice = self._get_invoice_or_raise(organization_id, invoice_id)
        if invoice.status != InvoiceStatus.OPEN.value:
            return DunningAttemptResult(
                attempt_id=MANUAL_ATTEMPT_ID,
                success=False,
                failure_reason=f"Invoice status is {invoice.status}, cannot retry",
            )

        try:
            provider = self._provider_for(invoice)
            await asyncio.to_thread(provider.pay_now, str(invoice.provider_invoice_id))
        except (PaymentProviderError, ValueError) as e:
            logger.warning("Manual retry failed for invoice %s: %s", invoice_id, e)
            return DunningAttemptResult(
                attempt_id=MANUAL_ATTEMPT_ID,
                success=False,
                failure_reason=str(e),
                decline_code=getattr(e, "decline_code", None),
            )

        logger.info("Manual retry successful for invoice %s", invoice_id)
        await self.handle_payment_success(organization_id, invoice_id)
        return DunningAttemptResult(attempt_id=MANUAL_ATTEMPT_ID, success=True)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_invoices_in_dunning(
        self,
        organization_id: UUID,
        limit: int = 20,
        cursor: UUID | None = None,
    ) -> tuple[list[Invoice], bool, UUID | None]:
        """Page through active episodes, most recently started first.

        Returns (items, has_more, next_cursor).
        """
        rows = self.invoice_repo.get_in_dunning(organization_id, limit + 1, cursor)
        has_more = len(rows) > limit
        items = rows[:limit]
        next_cursor: UUID | None = items[-1].id if has_more and items else None  # type: ignore[assignment]
        return items, has_more, next_cursor

    def get_attempts(self, organization_id: UUID, invoice_id: UUID) -> list[DunningAttempt]:
        self._get_invoice_or_raise(organization_id, invoice_id)
        return self.attempt_repo.get_for_invoice(invoice_id)

    def get_dunning_stats(self, organization_id: UUID) -> DunningStatsResponse:
        invoices_in_dunning = self.invoice_repo.count_in_dunning(organization_id)
        amounts = [
            AmountByCurrency(currency=currency.lower(), amount=amount)
            for currency, amount in self.invoice_repo.amounts_in_dunning_by_currency(
                organization_id
            )
        ]

        counts = self.attempt_repo.count_by_status(organization_id)
        attempts_by_status = AttemptsByStatus(
            pending=counts.get(DunningAttemptStatus.PENDING.value, 0)
            + counts.get(DunningAttemptStatus.PROCESSING.value, 0),
            succeeded=counts.get(DunningAttemptStatus.SUCCEEDED.value, 0),
            failed=counts.get(DunningAttemptStatus.FAILED.value, 0),
        )
        resolved = attempts_by_status.succeeded + attempts_by_status.failed
        recovery_rate = attempts_by_status.succeeded / resolved * 100 if resolved else 0.0

        total_amount_at_risk = sum(item.amount for item in amounts)
        primary_currency = max(amounts, key=lambda item: item.amount).currency if amounts else "usd"

        return DunningStatsResponse(
            invoices_in_dunning=invoices_in_dunning,
            total_amount_at_risk=total_amount_at_risk,
            currency=primary_currency,
            amounts_by_currency=amounts,
            recovery_rate=round(recovery_rate, 2),
            attempts_by_status=attempts_by_status,
        )
