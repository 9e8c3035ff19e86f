"""Dunning configuration lookup and retry schedule calculations."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.dunning_config import (
    DEFAULT_GRACE_PERIOD_DAYS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_SCHEDULE,
    DunningConfig,
    DunningFinalAction,
)
from app.models.dunning_email_template import DunningEmailTemplate, DunningEmailType
from app.models.shared import ensure_utc
from app.repositories.dunning_config_repository import DunningConfigRepository
from app.schemas.dunning import DunningConfigUpdate, DunningEmailTemplateUpdate
from app.services.dunning_email_templates import get_default_template


@dataclass(frozen=True)
class DunningConfigView:
    """Effective dunning policy for an organization, stored or default."""

    organization_id: UUID
    retry_schedule: list[int] = field(default_factory=lambda: list(DEFAULT_RETRY_SCHEDULE))
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    final_action: DunningFinalAction = DunningFinalAction.SUSPEND
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS
    emails_enabled: bool = False
    from_email: str | None = None
    from_name: str | None = None
    reply_to_email: str | None = None
    config_id: UUID | None = None
    is_default: bool = True

    @classmethod
    def from_model(cls, config: DunningConfig) -> "DunningConfigView":
        return cls(
            organization_id=config.organization_id,  # type: ignore[arg-type]
            retry_schedule=[int(day) for day in (config.retry_schedule or [])],
            max_attempts=int(config.max_attempts),
            final_action=DunningFinalAction(config.final_action),
            grace_period_days=int(config.grace_period_days),
            emails_enabled=bool(config.emails_enabled),
            from_email=config.from_email,  # type: ignore[arg-type]
            from_name=config.from_name,  # type: ignore[arg-type]
            reply_to_email=config.reply_to_email,  # type: ignore[arg-type]
            config_id=config.id,  # type: ignore[arg-type]
            is_default=False,
        )


@dataclass(frozen=True)
class EmailTemplateView:
    type: DunningEmailType
    subject: str
    body_html: str
    body_text: str | None
    enabled: bool
    is_default: bool


def calculate_next_retry_date(
    config: DunningConfigView,
    attempt_index: int,
    first_failure_at: datetime,
) -> datetime | None:
    """Return when retry ``attempt_index`` (0-based) fires, or None.

    Offsets are days after the first failure. Out-of-order schedules
    saturate to the largest offset seen so far, so a later retry never
    fires before an earlier one. None means the schedule is exhausted.
    """
    schedule = config.retry_schedule
    if attempt_index < 0 or attempt_index >= len(schedule):
        return None
    days_after_first = max(schedule[: attempt_index + 1])
    return ensure_utc(first_failure_at) + timedelta(days=days_after_first)


def is_max_attempts_reached(config: DunningConfigView, attempts_so_far: int) -> bool:
    return attempts_so_far >= config.max_attempts


def calculate_final_action_date(config: DunningConfigView, last_attempt_at: datetime) -> datetime:
    """Date the final action is due once the grace period has elapsed."""
    return ensure_utc(last_attempt_at) + timedelta(days=config.grace_period_days)


class DunningConfigService:
    """Service for dunning configuration and email template management."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DunningConfigRepository(db)

    def get_config(self, organization_id: UUID) -> DunningConfigView:
        """Get the organization's configuration, or the defaults when none is stored."""
        config = self.repo.get_by_organization(organization_id)
        if config is not None:
            return DunningConfigView.from_model(config)
        return DunningConfigView(organization_id=organization_id)

    def get_raw_config(self, organization_id: UUID) -> DunningConfig | None:
        return self.repo.get_by_organization(organization_id)

    def upsert_config(
        self, organization_id: UUID, data: DunningConfigUpdate
    ) -> DunningConfigView:
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("final_action") is not None:
            update_data["final_action"] = DunningFinalAction(update_data["final_action"]).value
        # Required columns cannot be cleared with an explicit null
        for key in ("retry_schedule", "max_attempts", "final_action", "grace_period_days",
                    "emails_enabled"):
            if key in update_data and update_data[key] is None:
                del update_data[key]
        config = self.repo.upsert(organization_id, update_data)
        return DunningConfigView.from_model(config)

    def delete_config(self, organization_id: UUID) -> bool:
        """Delete the stored configuration, reverting to defaults."""
        return self.repo.delete(organization_id)

    # Pure calculations, exposed on the service for callers holding an instance
    calculate_next_retry_date = staticmethod(calculate_next_retry_date)
    is_max_attempts_reached = staticmethod(is_max_attempts_reached)
    calculate_final_action_date = staticmethod(calculate_final_action_date)

    # ------------------------------------------------------------------
    # Email templates
    # ------------------------------------------------------------------

    @staticmethod
    def _custom_view(template: DunningEmailTemplate) -> EmailTemplateView:
        return EmailTemplateView(
            type=DunningEmailType(template.type),
            subject=str(template.subject),
            body_html=str(template.body_html),
            body_text=template.body_text,  # type: ignore[arg-type]
            enabled=bool(template.enabled),
            is_default=False,
        )

    @staticmethod
    def _default_view(email_type: DunningEmailType) -> EmailTemplateView:
        default = get_default_template(email_type)
        return EmailTemplateView(
            type=email_type,
            subject=default.subject,
            body_html=default.html,
            body_text=default.text,
            enabled=True,
            is_default=True,
        )

    def get_email_templates(self, organization_id: UUID) -> list[EmailTemplateView]:
        """All six email templates, custom overrides taking precedence."""
        config = self.repo.get_by_organization(organization_id)
        custom: dict[str, DunningEmailTemplate] = {}
        if config is not None:
            custom = {str(t.type): t for t in self.repo.get_templates(config.id)}
        return [
            self._custom_view(custom[email_type.value])
            if email_type.value in custom
            else self._default_view(email_type)
            for email_type in DunningEmailType
        ]

    def get_email_template(
        self, organization_id: UUID, email_type: DunningEmailType
    ) -> EmailTemplateView:
        config = self.repo.get_by_organization(organization_id)
        if config is not None:
            template = self.repo.get_template(config.id, email_type.value)
            if template is not None:
                return self._custom_view(template)
        return self._default_view(email_type)

    def update_email_template(
        self,
        organization_id: UUID,
        email_type: DunningEmailType,
        data: DunningEmailTemplateUpdate,
    ) -> EmailTemplateView:
        """Override one template, creating the dunning configuration if needed.

        Fields left unset start from the current template (custom or default).
        """
        config = self.repo.get_by_organization(organization_id)
        if config is None:
            config = self.repo.upsert(organization_id, {})

        current = self.get_email_template(organization_id, email_type)
        values = {
            "subject": current.subject,
            "body_html": current.body_html,
            "body_text": current.body_text,
            "enabled": current.enabled,
        }
        for key, value in data.model_dump(exclude_unset=True).items():
            # body_text is the only nullable template column
            if value is not None or key == "body_text":
                values[key] = value
        template = self.repo.upsert_template(config.id, email_type.value, values)
        return self._custom_view(template)

    def reset_email_template(
        self, organization_id: UUID, email_type: DunningEmailType
    ) -> EmailTemplateView:
        config = self.repo.get_by_organization(organization_id)
        if config is not None:
            self.repo.delete_template(config.id, email_type.value)
        return self._default_view(email_type)
