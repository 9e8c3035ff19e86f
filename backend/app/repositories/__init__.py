from app.repositories.dunning_attempt_repository import DunningAttemptRepository
from app.repositories.dunning_config_repository import DunningConfigRepository
from app.repositories.email_notification_repository import EmailNotificationRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.repositories.webhook_repository import WebhookRepository

__all__ = [
    "DunningAttemptRepository",
    "DunningConfigRepository",
    "EmailNotificationRepository",
    "InvoiceRepository",
    "SubscriptionRepository",
    "WebhookEndpointRepository",
    "WebhookRepository",
]
