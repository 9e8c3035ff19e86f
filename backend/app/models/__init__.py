from app.models.customer import Customer
from app.models.dunning_attempt import DunningAttempt, DunningAttemptStatus
from app.models.dunning_config import DunningConfig, DunningFinalAction
from app.models.dunning_email_template import DunningEmailTemplate, DunningEmailType
from app.models.email_notification import EmailNotification, EmailNotificationStatus
from app.models.invoice import Invoice, InvoiceStatus
from app.models.organization import Organization
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.webhook import Webhook
from app.models.webhook_endpoint import WebhookEndpoint

__all__ = [
    "Customer",
    "DunningAttempt",
    "DunningAttemptStatus",
    "DunningConfig",
    "DunningEmailTemplate",
    "DunningEmailType",
    "DunningFinalAction",
    "EmailNotification",
    "EmailNotificationStatus",
    "Invoice",
    "InvoiceStatus",
    "Organization",
    "Subscription",
    "SubscriptionStatus",
    "Webhook",
    "WebhookEndpoint",
]
