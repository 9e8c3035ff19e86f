from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func

from app.core.database import Base
from app.models.shared import DEFAULT_ORGANIZATION_ID, UUIDType, generate_uuid


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    UNCOLLECTIBLE = "uncollectible"


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_organization_id_status", "organization_id", "status"),
        Index("ix_invoices_dunning_started_at", "dunning_started_at"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_ORGANIZATION_ID,
    )
    invoice_number = Column(String(50), unique=True, index=True, nullable=False)
    customer_id = Column(UUIDType, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False)
    subscription_id = Column(
        UUIDType, ForeignKey("subscriptions.id", ondelete="RESTRICT"), nullable=True
    )
    status = Column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)

    # Amount in the smallest currency unit
    amount_due = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Provider reference used to collect the invoice
    provider = Column(String(50), nullable=False, default="manual")
    provider_invoice_id = Column(String(255), nullable=False)
    provider_invoice_url = Column(String(2048), nullable=True)

    # Dunning episode; dunning_started_at is the authoritative "in dunning" flag
    dunning_started_at = Column(DateTime(timezone=True), nullable=True)
    dunning_ended_at = Column(DateTime(timezone=True), nullable=True)
    dunning_attempt_count = Column(Integer, nullable=False, default=0)
    next_dunning_attempt_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
