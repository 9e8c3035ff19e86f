from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Dunning Service"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/dunning.db"
    REDIS_URL: str = "redis://localhost:6379"

    # Payment providers
    stripe_api_key: str = ""

    # SMTP (empty host disables delivery)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_FROM_EMAIL: str = "billing@example.com"
    SMTP_FROM_NAME: str = "Billing Team"

    # Dunning poller
    DUNNING_ATTEMPT_BATCH_SIZE: int = 50
    DUNNING_MAX_CONCURRENCY: int = 10
    DUNNING_CANDIDATE_BATCH_SIZE: int = 20
    DUNNING_MISSED_CANDIDATE_MARGIN_MINUTES: int = 60
    DUNNING_STALE_ATTEMPT_TIMEOUT_MINUTES: int = 10

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def email_enabled(self) -> bool:
        return bool(self.SMTP_HOST)


settings = Settings()
