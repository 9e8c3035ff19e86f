"""Dunning schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.dunning_config import DunningFinalAction
from app.models.dunning_email_template import DunningEmailType


class DunningConfigUpdate(BaseModel):
    """Schema for creating or updating a dunning configuration.

    Unset fields keep their stored value, or the default when the
    configuration does not exist yet.
    """

    retry_schedule: list[int] | None = Field(default=None, min_length=1)
    max_attempts: int | None = Field(default=None, ge=1, le=10)
    final_action: DunningFinalAction | None = None
    grace_period_days: int | None = Field(default=None, ge=0, le=30)
    emails_enabled: bool | None = None
    from_email: EmailStr | None = None
    from_name: str | None = Field(default=None, max_length=200)
    reply_to_email: EmailStr | None = None

    @field_validator("retry_schedule")
    @classmethod
    def validate_retry_schedule(cls, v: list[int] | None) -> list[int] | None:
        if v is None:
            return v
        if not v:
            raise ValueError("retry_schedule must not be empty")
        if any(day < 1 for day in v):
            raise ValueError("retry_schedule entries must be positive day offsets")
        return v


class DunningConfigResponse(BaseModel):
    """Schema for dunning configuration response."""

    model_config = ConfigDict(from_attributes=True)

    organization_id: UUID
    retry_schedule: list[int]
    max_attempts: int
    final_action: DunningFinalAction
    grace_period_days: int
    emails_enabled: bool
    from_email: str | None = None
    from_name: str | None = None
    reply_to_email: str | None = None
    is_default: bool


class DunningAttemptResponse(BaseModel):
    """Schema for a single entry of an invoice's attempt ledger."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_id: UUID
    subscription_id: UUID | None = None
    customer_id: UUID
    attempt_number: int
    status: str
    scheduled_at: datetime
    executed_at: datetime | None = None
    success: bool | None = None
    failure_reason: str | None = None
    decline_code: str | None = None


class DunningAttemptResultResponse(BaseModel):
    """Outcome of executing an attempt or a manual retry."""

    attempt_id: str
    success: bool
    failure_reason: str | None = None
    decline_code: str | None = None
    next_attempt_at: datetime | None = None
    final_action_taken: DunningFinalAction | None = None


class InvoiceInDunningResponse(BaseModel):
    """Invoice summary for the dunning list view."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    customer_id: UUID
    subscription_id: UUID | None = None
    status: str
    amount_due: int
    currency: str
    due_date: datetime | None = None
    dunning_started_at: datetime | None = None
    dunning_attempt_count: int
    next_dunning_attempt_at: datetime | None = None


class InvoicesInDunningPage(BaseModel):
    """Cursor-paginated list of invoices in dunning."""

    data: list[InvoiceInDunningResponse] = Field(default_factory=list)
    has_more: bool
    next_cursor: UUID | None = None


class AmountByCurrency(BaseModel):
    currency: str
    amount: int


class AttemptsByStatus(BaseModel):
    pending: int = 0
    succeeded: int = 0
    failed: int = 0


class DunningStatsResponse(BaseModel):
    """Dashboard statistics for invoices at risk and recovery performance."""

    invoices_in_dunning: int
    total_amount_at_risk: int
    currency: str
    amounts_by_currency: list[AmountByCurrency] = Field(default_factory=list)
    recovery_rate: float
    attempts_by_status: AttemptsByStatus


class StopDunningRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class DunningEmailTemplateUpdate(BaseModel):
    subject: str | None = Field(default=None, min_length=1, max_length=500)
    body_html: str | None = Field(default=None, min_length=1)
    body_text: str | None = None
    enabled: bool | None = None


class DunningEmailTemplateResponse(BaseModel):
    type: DunningEmailType
    subject: str
    body_html: str
    body_text: str | None = None
    enabled: bool
    is_default: bool
