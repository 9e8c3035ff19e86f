"""EmailNotification model - log of dunning emails dispatched to customers."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class EmailNotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EmailNotification(Base):
    __tablename__ = "email_notifications"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id = Column(UUIDType, nullable=False, index=True)
    invoice_id = Column(UUIDType, nullable=True, index=True)
    type = Column(String(50), nullable=False)
    to_email = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=EmailNotificationStatus.PENDING.value)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
