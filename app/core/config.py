from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AUTH_SECRET = "local-dev-auth-secret-change-me"


class Settings(BaseSettings):
    app_env: str = "local"
    api_port: int = 8000
    log_level: str = "INFO"

    postgres_host: str = "127.0.0.1"
    postgres_port: int = 5432
    postgres_db: str = "expert_chat"
    postgres_user: str = "chat_user"
    postgres_password: str = "chat_password"
    database_url_override: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL_OVERRIDE", "DATABASE_URL"),
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_auto_create: bool = False
    db_seed_default_accounts: bool = False

    auth_secret: str = DEFAULT_AUTH_SECRET
    auth_token_ttl_minutes: int = 480
    login_rate_limit: int = 10
    login_rate_window_seconds: int = 60

    # Total attempts (first try included) for a claim that loses a version race.
    claim_max_attempts: int = Field(default=3, ge=1, le=20)

    cors_allowed_origins_raw: str = "http://127.0.0.1:5173,http://localhost:5173"
    trusted_hosts_raw: str = "127.0.0.1,localhost"
    force_https: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cors_allowed_origins(self) -> list[str]:
        return [
            origin.strip()
            for origin in self.cors_allowed_origins_raw.split(",")
            if origin.strip()
        ]

    @property
    def trusted_hosts(self) -> list[str]:
        return [
            host.strip() for host in self.trusted_hosts_raw.split(",") if host.strip()
        ]

    def validate_security_settings(self) -> None:
        if self.app_env.lower() != "production":
            return

        if self.auth_secret == DEFAULT_AUTH_SECRET:
            raise ValueError("AUTH_SECRET must be overridden in production.")
        if len(self.auth_secret) < 32:
            raise ValueError(
                "AUTH_SECRET must be at least 32 characters in production."
            )
        if not self.cors_allowed_origins:
            raise ValueError(
                "CORS_ALLOWED_ORIGINS_RAW must define explicit origins in production."
            )
        if "*" in self.cors_allowed_origins:
            raise ValueError("Wildcard CORS origin is not allowed in production.")
        if not self.trusted_hosts:
            raise ValueError(
                "TRUSTED_HOSTS_RAW must define explicit hosts in production."
            )
        if "*" in self.trusted_hosts:
            raise ValueError("Wildcard trusted host is not allowed in production.")
        if self.db_seed_default_accounts:
            raise ValueError("Demo account seeding is not allowed in production.")


@lru_cache
def get_settings() -> Settings:
    return Settings()
