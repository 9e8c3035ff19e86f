from uuid import UUID

from sqlalchemy.orm import Session

from app.models.shared import utc_now
from app.models.subscription import Subscription, SubscriptionStatus


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, subscription_id: UUID) -> Subscription | None:
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).first()

    def set_status(self, subscription_id: UUID, status: SubscriptionStatus) -> Subscription | None:
        """Set the subscription status without committing."""
        subscription = self.get_by_id(subscription_id)
        if not subscription:
            return None
        subscription.status = status.value  # type: ignore[assignment]
        if status == SubscriptionStatus.CANCELED:
            subscription.canceled_at = utc_now()  # type: ignore[assignment]
        self.db.flush()
        return subscription
