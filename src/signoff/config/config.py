# src/signoff/config/config.py
"""Configuration system for Signoff."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_", env_file=".env", extra="ignore"
    )

    user: str = Field(default="signoff")
    password: str = Field(default="signoff_password")
    db: str = Field(default="signoff")
    host: str = Field(default="localhost")
    port: str = Field(default="5432")
    url: str = Field(default="", description="Full DSN, overrides the parts above")
    connect_attempts: int = Field(default=20, ge=1)
    connect_wait_max: float = Field(default=5.0, gt=0.0)

    @property
    def postgres_url(self) -> str:
        """Generate PostgreSQL connection URL with psycopg driver."""
        if self.url:
            return self.url
        return (
            f"postgresql+psycopg://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.db}"
        )


class ReviewConfig(BaseSettings):
    """Review workflow settings."""

    model_config = SettingsConfigDict(
        env_prefix="REVIEW_", env_file=".env", extra="ignore"
    )

    token_ttl_days: int = Field(default=7, ge=1)
    # 32 bytes -> 256 bits of entropy, hex encoded
    token_bytes: int = Field(default=32, ge=32)
    # Total attempts of the status recompute cycle (1 retry after a conflict)
    approval_attempts: int = Field(default=2, ge=1)
    approval_retry_wait: float = Field(default=0.05, ge=0.0)
    single_use_approval: bool = Field(default=False)
    notify_timeout: float = Field(default=10.0, gt=0.0)


class SystemConfig(BaseSettings):
    """System configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="SIGNOFF_", env_file=".env", extra="ignore"
    )

    log_level: str = Field(default="INFO")
    log_file: str = Field(default="./signoff_log.txt")
    port: int = Field(default=8000)
    disable_auth: bool = Field(default=False)
    web_token: str = Field(default="changeme")


class SignoffConfig(BaseModel):
    """Main configuration class."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load(cls) -> SignoffConfig:
        """Load configuration from environment variables."""
        return cls(
            database=DatabaseConfig(),
            review=ReviewConfig(),
            system=SystemConfig(),
        )


# Global configuration instance
config = SignoffConfig.load()
