"""Built-in dunning email templates.

Placeholders use ``string.Template`` syntax. ``${update_payment_link}`` and
``${update_payment_text}`` expand to an empty string when the invoice has no
hosted payment page.
"""

from dataclasses import dataclass
from string import Template

from app.models.dunning_email_template import DunningEmailType


@dataclass(frozen=True)
class DefaultTemplate:
    subject: str
    html: str
    text: str


_BUTTON = (
    '<p><a href="${update_payment_url}" style="display: inline-block; padding: 12px 24px; '
    'background-color: #4F46E5; color: white; text-decoration: none; border-radius: 6px;">'
    "${label}</a></p>"
)

DEFAULT_TEMPLATES: dict[DunningEmailType, DefaultTemplate] = {
    DunningEmailType.PAYMENT_FAILED: DefaultTemplate(
        subject="Action Required: Payment Failed for Invoice ${invoice_number}",
        html=(
            "<p>Hi ${customer_name},</p>"
            "<p>We were unable to process the payment for your invoice "
            "<strong>${invoice_number}</strong> in the amount of "
            "<strong>${invoice_amount} ${invoice_currency}</strong>.</p>"
            "<p>We will retry the payment on ${next_retry_date}. Please make sure your "
            "payment details are up to date.</p>"
            "${update_payment_link}"
            "<p>If you have any questions, please contact us at ${support_email}.</p>"
            "<p>Best regards,<br>${company_name}</p>"
        ),
        text=(
            "Hi ${customer_name},\n\n"
            "We were unable to process the payment for your invoice ${invoice_number} "
            "in the amount of ${invoice_amount} ${invoice_currency}.\n\n"
            "We will retry the payment on ${next_retry_date}.\n"
            "${update_payment_text}\n"
            "If you have any questions, please contact us at ${support_email}.\n\n"
            "Best regards,\n${company_name}"
        ),
    ),
    DunningEmailType.PAYMENT_REMINDER: DefaultTemplate(
        subject="Payment Reminder: Invoice ${invoice_number} Still Outstanding",
        html=(
            "<p>Hi ${customer_name},</p>"
            "<p>This is a reminder that your invoice <strong>${invoice_number}</strong> for "
            "<strong>${invoice_amount} ${invoice_currency}</strong> remains unpaid.</p>"
            "<p>We've attempted to charge your payment method ${attempt_number} time(s).</p>"
            "${update_payment_link}"
            "<p>We'll try again on ${next_retry_date}.</p>"
            "<p>Best regards,<br>${company_name}</p>"
        ),
        text=(
            "Hi ${customer_name},\n\n"
            "This is a reminder that your invoice ${invoice_number} for "
            "${invoice_amount} ${invoice_currency} remains unpaid.\n\n"
            "We've attempted to charge your payment method ${attempt_number} time(s).\n"
            "${update_payment_text}\n"
            "We'll try again on ${next_retry_date}.\n\n"
            "Best regards,\n${company_name}"
        ),
    ),
    DunningEmailType.FINAL_WARNING: DefaultTemplate(
        subject="Final Notice: Service May Be Suspended",
        html=(
            "<p>Hi ${customer_name},</p>"
            "<p>Despite our previous attempts, we've been unable to process your payment "
            "for invoice <strong>${invoice_number}</strong> "
            "(${invoice_amount} ${invoice_currency}).</p>"
            "<p>We will make a final attempt on ${next_retry_date}. If it fails, your "
            "subscription will be interrupted.</p>"
            "${update_payment_link}"
            "<p>If you believe this is an error or need assistance, please contact us at "
            "${support_email}.</p>"
            "<p>Best regards,<br>${company_name}</p>"
        ),
        text=(
            "Hi ${customer_name},\n\n"
            "Despite our previous attempts, we've been unable to process your payment for "
            "invoice ${invoice_number} (${invoice_amount} ${invoice_currency}).\n\n"
            "We will make a final attempt on ${next_retry_date}. If it fails, your "
            "subscription will be interrupted.\n"
            "${update_payment_text}\n"
            "If you believe this is an error or need assistance, please contact us at "
            "${support_email}.\n\n"
            "Best regards,\n${company_name}"
        ),
    ),
    DunningEmailType.SUBSCRIPTION_SUSPENDED: DefaultTemplate(
        subject="Your Subscription Has Been Suspended",
        html=(
            "<p>Hi ${customer_name},</p>"
            "<p>Your subscription has been suspended because we were unable to collect "
            "payment for invoice <strong>${invoice_number}</strong>.</p>"
            "<p>To reactivate your service, please update your payment method and pay the "
            "outstanding invoice of <strong>${invoice_amount} ${invoice_currency}</strong>.</p>"
            "${update_payment_link}"
            "<p>If you have any questions, please contact us at ${support_email}.</p>"
            "<p>Best regards,<br>${company_name}</p>"
        ),
        text=(
            "Hi ${customer_name},\n\n"
            "Your subscription has been suspended because we were unable to collect payment "
            "for invoice ${invoice_number}.\n\n"
            "To reactivate your service, please update your payment method and pay the "
            "outstanding invoice of ${invoice_amount} ${invoice_currency}.\n"
            "${update_payment_text}\n"
            "If you have any questions, please contact us at ${support_email}.\n\n"
            "Best regards,\n${company_name}"
        ),
    ),
    DunningEmailType.SUBSCRIPTION_CANCELED: DefaultTemplate(
        subject="Your Subscription Has Been Canceled",
        html=(
            "<p>Hi ${customer_name},</p>"
            "<p>Your subscription has been canceled because we were unable to collect "
            "payment for invoice <strong>${invoice_number}</strong> "
            "(${invoice_amount} ${invoice_currency}).</p>"
            "<p>If you would like to continue using our service, please contact us at "
            "${support_email}.</p>"
            "<p>Best regards,<br>${company_name}</p>"
        ),
        text=(
            "Hi ${customer_name},\n\n"
            "Your subscription has been canceled because we were unable to collect payment "
            "for invoice ${invoice_number} (${invoice_amount} ${invoice_currency}).\n\n"
            "If you would like to continue using our service, please contact us at "
            "${support_email}.\n\n"
            "Best regards,\n${company_name}"
        ),
    ),
    DunningEmailType.PAYMENT_RECOVERED: DefaultTemplate(
        subject="Payment Received for Invoice ${invoice_number}",
        html=(
            "<p>Hi ${customer_name},</p>"
            "<p>Good news! We've received your payment of "
            "<strong>${invoice_amount} ${invoice_currency}</strong> for invoice "
            "<strong>${invoice_number}</strong>.</p>"
            "<p>Your subscription remains active. Thank you for your business.</p>"
            "<p>Best regards,<br>${company_name}</p>"
        ),
        text=(
            "Hi ${customer_name},\n\n"
            "Good news! We've received your payment of ${invoice_amount} ${invoice_currency} "
            "for invoice ${invoice_number}.\n\n"
            "Your subscription remains active. Thank you for your business.\n\n"
            "Best regards,\n${company_name}"
        ),
    ),
}

_BUTTON_LABELS = {
    DunningEmailType.FINAL_WARNING: "Update Payment Method Now",
    DunningEmailType.SUBSCRIPTION_SUSPENDED: "Reactivate My Subscription",
}


def get_default_template(email_type: DunningEmailType) -> DefaultTemplate:
    return DEFAULT_TEMPLATES[email_type]


def payment_link_variables(
    email_type: DunningEmailType, update_payment_url: str | None
) -> dict[str, str]:
    """Render the optional "update payment method" block for a template."""
    if not update_payment_url:
        return {"update_payment_link": "", "update_payment_text": ""}
    label = _BUTTON_LABELS.get(email_type, "Update Payment Method")
    return {
        "update_payment_link": Template(_BUTTON).safe_substitute(
            update_payment_url=update_payment_url, label=label
        ),
        "update_payment_text": f"Update your payment method: {update_payment_url}\n",
    }


def render(template: str, variables: dict[str, object]) -> str:
    """Substitute known variables; unknown placeholders are left as-is."""
    return Template(template).safe_substitute(
        {key: "" if value is None else str(value) for key, value in variables.items()}
    )
