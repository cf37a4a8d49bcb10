"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

OTP and session timings default to the values the phone-login flow has
always used (10 minute codes, 3 attempts, 24 hour sessions extended every
30 minutes); they are exposed here so tests and self-hosters can tune them.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "dineezy"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional. Without Redis the session store falls back to a local file
    redis_uri: Optional[str] = None


class OTPSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_ttl_seconds: int = 600
    otp_max_attempts: int = 3
    otp_country_code: str = "91"

    # 0 disables the per-number resend cooldown
    otp_resend_cooldown_seconds: int = 0

    # How long after a successful verify the new profile may be completed
    otp_profile_completion_window_seconds: int = 600


class SessionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    session_ttl_seconds: int = 86400
    session_keepalive_interval_seconds: int = 1800
    session_storage_key: str = "phoneAuthSession"
    session_file_path: str = ".dineezy/session.json"


class MessagingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    whatsapp_api_base_url: str = "https://api.webifyit.in/api/v1/dev"
    whatsapp_api_key: str = ""
    whatsapp_timeout_seconds: float = 5.0
    brand_name: str = "Dineezy"


class RouteSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    user_login_path: str = "/user/login"
    admin_login_path: str = "/admin/login"
    user_home_path: str = "/user"
    admin_home_path: str = "/admin"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "https://dineezy.in"
    app_name: str = "dineezy-auth"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    otp: Optional[OTPSettings] = None
    session: Optional[SessionSettings] = None
    messaging: Optional[MessagingSettings] = None
    routes: Optional[RouteSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.otp is None:
            self.otp = OTPSettings()
        if self.session is None:
            self.session = SessionSettings()
        if self.messaging is None:
            self.messaging = MessagingSettings()
        if self.routes is None:
            self.routes = RouteSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
