"""Email service for sending dunning emails via SMTP."""

from __future__ import annotations

import logging
from decimal import Decimal
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any
from uuid import UUID

from app.core.config import settings
from app.models.customer import Customer
from app.models.dunning_email_template import DunningEmailType
from app.models.invoice import Invoice
from app.models.organization import Organization
from app.repositories.email_notification_repository import EmailNotificationRepository
from app.services.dunning_config_service import DunningConfigService
from app.services.dunning_email_templates import payment_link_variables, render

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _format_amount(cents: object) -> str:
    """Format an amount in the smallest currency unit to two decimal places."""
    if cents is None:
        return "0.00"
    return f"{Decimal(str(cents)) / 100:.2f}"


def _format_date(dt: object) -> str:
    """Format a datetime to YYYY-MM-DD, or return empty string if None."""
    if dt is None:
        return ""
    return str(dt)[:10]


class EmailService:
    """Service for sending transactional emails via SMTP."""

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """Send an email via SMTP.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML content of the email.
            text_body: Optional plain-text alternative.
            from_email: Sender address overriding the SMTP default.
            from_name: Sender display name overriding the SMTP default.
            reply_to: Optional Reply-To address.

        Returns:
            True if sent successfully (or no-op when SMTP unconfigured).
        """
        if not settings.email_enabled:
            logger.info("SMTP not configured, skipping email to %s: %s", to, subject)
            return True

        import aiosmtplib

        msg = EmailMessage()
        msg["From"] = (
            f"{from_name or settings.SMTP_FROM_NAME} <{from_email or settings.SMTP_FROM_EMAIL}>"
        )
        msg["To"] = to
        msg["Subject"] = subject
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content(text_body or "Please view this email in an HTML-capable client.")
        msg.add_alternative(html_body, subtype="html")

        await aiosmtplib.send(
            msg,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME or None,
            password=settings.SMTP_PASSWORD or None,
            start_tls=settings.SMTP_USE_TLS,
        )
        logger.info("Email sent to %s: %s", to, subject)
        return True

    async def send_dunning_email(
        self,
        db: Session,
        organization_id: UUID,
        customer_id: UUID,
        invoice_id: UUID | None,
        email_type: DunningEmailType,
        variables: dict[str, Any] | None = None,
    ) -> bool:
        """Render and send one dunning email, recording an EmailNotification.

        Returns False when nothing was sent: emails disabled for the
        organization, template disabled, customer without an email address,
        or an SMTP failure (recorded on the notification row).
        """
        config_service = DunningConfigService(db)
        config = config_service.get_config(organization_id)
        if not config.emails_enabled:
            logger.debug("Dunning emails disabled for organization %s", organization_id)
            return False

        template = config_service.get_email_template(organization_id, email_type)
        if not template.enabled:
            logger.debug("Template %s disabled for organization %s", email_type.value, organization_id)
            return False

        customer = db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer or not customer.email:
            logger.warning("Customer %s has no email, skipping %s email", customer_id, email_type.value)
            return False

        invoice = None
        if invoice_id is not None:
            invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
        organization = db.query(Organization).filter(Organization.id == organization_id).first()

        context: dict[str, Any] = {
            "customer_name": customer.name or "Customer",
            "company_name": config.from_name or (organization.name if organization else ""),
            "support_email": (
                config.reply_to_email
                or config.from_email
                or (organization.email if organization else "")
            ),
            "attempt_number": "",
            "next_retry_date": "",
        }
        if invoice is not None:
            context.update(
                {
                    "invoice_number": invoice.invoice_number,
                    "invoice_amount": _format_amount(invoice.amount_due),
                    "invoice_currency": str(invoice.currency).upper(),
                }
            )
            context.update(payment_link_variables(email_type, invoice.provider_invoice_url))  # type: ignore[arg-type]
        else:
            context.update(payment_link_variables(email_type, None))
        for key, value in (variables or {}).items():
            context[key] = _format_date(value) if key.endswith("_date") else value

        subject = render(template.subject, context)
        html_body = render(template.body_html, context)
        text_body = render(template.body_text, context) if template.body_text else None

        notification_repo = EmailNotificationRepository(db)
        notification = notification_repo.create(
            organization_id=organization_id,
            customer_id=customer_id,
            invoice_id=invoice_id,
            email_type=email_type.value,
            to_email=str(customer.email),
        )
        try:
            await self.send_email(
                to=str(customer.email),
                subject=subject,
                html_body=html_body,
                text_body=text_body,
                from_email=config.from_email,
                from_name=config.from_name,
                reply_to=config.reply_to_email,
            )
        except Exception as e:
            logger.warning("Failed to send %s email to %s: %s", email_type.value, customer.email, e)
            notification_repo.mark_failed(notification, str(e))
            return False

        notification_repo.mark_sent(notification)
        return True
