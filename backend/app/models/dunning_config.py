"""DunningConfig model - per-organization payment retry policy."""

from enum import Enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid

DEFAULT_RETRY_SCHEDULE = [1, 3, 5, 7]  # days after the first failure
DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_GRACE_PERIOD_DAYS = 0


class DunningFinalAction(str, Enum):
    SUSPEND = "suspend"
    CANCEL = "cancel"


class DunningConfig(Base):
    __tablename__ = "dunning_configs"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    retry_schedule = Column(JSON, nullable=False, default=lambda: list(DEFAULT_RETRY_SCHEDULE))
    max_attempts = Column(Integer, nullable=False, default=DEFAULT_MAX_ATTEMPTS)
    final_action = Column(String(20), nullable=False, default=DunningFinalAction.SUSPEND.value)
    grace_period_days = Column(Integer, nullable=False, default=DEFAULT_GRACE_PERIOD_DAYS)
    emails_enabled = Column(Boolean, nullable=False, default=False)
    from_email = Column(String(255), nullable=True)
    from_name = Column(String(200), nullable=True)
    reply_to_email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
