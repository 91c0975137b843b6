"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="healthdb", alias="APP_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database
    database_url: str = Field(default="sqlite:///./healthdb.sqlite3", alias="DATABASE_URL")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    # Analytics parameters
    self_pay_sentinel: str = Field(default="None/SelfPay", alias="SELF_PAY_SENTINEL")
    chronic_icd10_codes: list[str] = Field(
        default=["I10", "E11.9", "J45.909", "E78.5"],
        alias="CHRONIC_ICD10_CODES",
        description="ICD-10 codes treated as chronic for the high-risk cohort",
    )
    late_payment_days: int = Field(default=45, ge=0, alias="LATE_PAYMENT_DAYS")
    er_window_days: int = Field(default=45, ge=0, alias="ER_WINDOW_DAYS")
    retention_window_days: int = Field(default=180, ge=0, alias="RETENTION_WINDOW_DAYS")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
