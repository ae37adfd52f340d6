import pytest
from pydantic import ValidationError

from app.core.config import DEFAULT_AUTH_SECRET, Settings


def test_claim_attempts_default_and_bounds() -> None:
    assert Settings().claim_max_attempts == 3
    assert Settings(claim_max_attempts=5).claim_max_attempts == 5

    with pytest.raises(ValidationError):
        Settings(claim_max_attempts=0)


def test_csv_settings_are_split() -> None:
    settings = Settings(trusted_hosts_raw="a.example, b.example ,")
    assert settings.trusted_hosts == ["a.example", "b.example"]


def test_production_rejects_default_secret() -> None:
    settings = Settings(app_env="production", auth_secret=DEFAULT_AUTH_SECRET)

    with pytest.raises(ValueError):
        settings.validate_security_settings()


def test_production_rejects_account_seeding() -> None:
    settings = Settings(
        app_env="production",
        auth_secret="x" * 48,
        cors_allowed_origins_raw="https://chat.example",
        trusted_hosts_raw="chat.example",
        db_seed_default_accounts=True,
    )

    with pytest.raises(ValueError):
        settings.validate_security_settings()


def test_local_settings_skip_security_checks() -> None:
    Settings(app_env="local").validate_security_settings()
