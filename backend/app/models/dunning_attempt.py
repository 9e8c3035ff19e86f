"""DunningAttempt model - one row per scheduled payment retry."""

from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class DunningAttemptStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class DunningAttempt(Base):
    __tablename__ = "dunning_attempts"
    __table_args__ = (
        Index("ix_dunning_attempts_status_scheduled_at", "status", "scheduled_at"),
        UniqueConstraint("invoice_id", "attempt_number", name="uq_dunning_attempts_invoice_number"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_id = Column(
        UUIDType,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscription_id = Column(UUIDType, nullable=True, index=True)
    customer_id = Column(UUIDType, nullable=False)
    attempt_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=DunningAttemptStatus.PENDING.value)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    executed_at = Column(DateTime(timezone=True), nullable=True)
    success = Column(Boolean, nullable=True)
    failure_reason = Column(String(1000), nullable=True)
    decline_code = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
