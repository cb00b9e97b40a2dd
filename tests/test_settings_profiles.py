from __future__ import annotations

from taskgrid.core.config import Settings


def test_environment_profiles_apply_defaults() -> None:
    dev = Settings(environment="development")
    assert dev.environment == "development"
    assert dev.log_level == "DEBUG"
    assert dev.reload is True

    test_profile = Settings(environment="test")
    assert test_profile.environment == "test"
    assert test_profile.log_level == "WARNING"
    assert test_profile.reload is False

    ci_profile = Settings(environment="ci")
    assert ci_profile.environment == "ci"
    assert ci_profile.log_level == "INFO"
    assert ci_profile.reload is False


def test_environment_aliases_are_normalised() -> None:
    assert Settings(environment="DEV").environment == "development"
    assert Settings(environment="testing").environment == "test"


def test_environment_profile_respects_explicit_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TASKGRID_LOG_LEVEL", "error")
    overridden = Settings(environment="test")
    assert overridden.log_level == "ERROR"


def test_interchange_defaults(monkeypatch) -> None:
    monkeypatch.delenv("TASKGRID_ADMIN_INVITE_TOKEN", raising=False)
    settings = Settings(environment="test")

    assert settings.admin_invite_token == ""
    assert settings.import_default_password == "defaultPassword123"
    assert settings.export_sensitive_fields is True
    assert settings.import_strict_segments is False
    assert settings.export_date_format == "%d/%m/%Y"

