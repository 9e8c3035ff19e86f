"""DunningConfig repository for data access."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.dunning_config import (
    DEFAULT_GRACE_PERIOD_DAYS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_SCHEDULE,
    DunningConfig,
    DunningFinalAction,
)
from app.models.dunning_email_template import DunningEmailTemplate


class DunningConfigRepository:
    """Repository for DunningConfig and its email template overrides."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_organization(self, organization_id: UUID) -> DunningConfig | None:
        return (
            self.db.query(DunningConfig)
            .filter(DunningConfig.organization_id == organization_id)
            .first()
        )

    def upsert(self, organization_id: UUID, data: dict[str, Any]) -> DunningConfig:
        """Create or partially update the organization's configuration."""
        config = self.get_by_organization(organization_id)
        if config is None:
            config = DunningConfig(
                organization_id=organization_id,
                retry_schedule=list(DEFAULT_RETRY_SCHEDULE),
                max_attempts=DEFAULT_MAX_ATTEMPTS,
                final_action=DunningFinalAction.SUSPEND.value,
                grace_period_days=DEFAULT_GRACE_PERIOD_DAYS,
                emails_enabled=False,
            )
            self.db.add(config)
        for key, value in data.items():
            setattr(config, key, value)
        self.db.commit()
        self.db.refresh(config)
        return config

    def delete(self, organization_id: UUID) -> bool:
        config = self.get_by_organization(organization_id)
        if not config:
            return False
        self.db.query(DunningEmailTemplate).filter(
            DunningEmailTemplate.dunning_config_id == config.id,
        ).delete()
        self.db.delete(config)
        self.db.commit()
        return True

    def get_templates(self, config_id: UUID) -> list[DunningEmailTemplate]:
        return (
            self.db.query(DunningEmailTemplate)
            .filter(DunningEmailTemplate.dunning_config_id == config_id)
            .all()
        )

    def get_template(self, config_id: UUID, email_type: str) -> DunningEmailTemplate | None:
        return (
            self.db.query(DunningEmailTemplate)
            .filter(
                DunningEmailTemplate.dunning_config_id == config_id,
                DunningEmailTemplate.type == email_type,
            )
            .first()
        )

    def upsert_template(
        self,
        config_id: UUID,
        email_type: str,
        data: dict[str, Any],
    ) -> DunningEmailTemplate:
        template = self.get_template(config_id, email_type)
        if template is None:
            template = DunningEmailTemplate(dunning_config_id=config_id, type=email_type)
            self.db.add(template)
        for key, value in data.items():
            setattr(template, key, value)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, config_id: UUID, email_type: str) -> bool:
        deleted = (
            self.db.query(DunningEmailTemplate)
            .filter(
                DunningEmailTemplate.dunning_config_id == config_id,
                DunningEmailTemplate.type == email_type,
            )
            .delete()
        )
        self.db.commit()
        return bool(deleted)
