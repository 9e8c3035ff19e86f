"""Per-organization overrides of the built-in dunning email templates."""

from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class DunningEmailType(str, Enum):
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_REMINDER = "payment_reminder"
    FINAL_WARNING = "final_warning"
    SUBSCRIPTION_SUSPENDED = "subscription_suspended"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    PAYMENT_RECOVERED = "payment_recovered"


class DunningEmailTemplate(Base):
    __tablename__ = "dunning_email_templates"
    __table_args__ = (
        UniqueConstraint("dunning_config_id", "type", name="uq_dunning_email_templates_config_type"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    dunning_config_id = Column(
        UUIDType,
        ForeignKey("dunning_configs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(50), nullable=False)
    subject = Column(String(500), nullable=False)
    body_html = Column(Text, nullable=False)
    body_text = Column(Text, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
