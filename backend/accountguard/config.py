"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "development"
    log_level: str = "INFO"

    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"

    # Redis
    redis_host: str = "redis"
    redis_port: int = 6379

    # JWT Configuration
    jwt_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    jwt_refresh_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_ANOTHER_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "accountguard"
    jwt_audience: str = "accountguard-clients"
    jwt_access_token_expire_minutes: int = 15
    jwt_refresh_token_expire_days: int = 7
    refresh_token_revoke_on_rotation: bool = False

    # Password hashing / reset
    bcrypt_rounds: int = 12
    password_reset_token_expire_minutes: int = 60

    # Rate limiting (per IP, backed by Redis)
    login_rate_limit_attempts: int = 5
    login_rate_limit_window_seconds: int = 900

    # Account protection
    lockout_window_hours: int = 24
    lockout_tier_selection: str = "first_match"
    login_attempt_retention_days: int = 30
    risk_local_timezone: Optional[str] = None
    risk_block_high_risk_logins: bool = False

    # Retention sweep worker
    sweep_interval_minutes: int = 60

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
