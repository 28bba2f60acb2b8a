import pytest

from speedsanta.backend.config import load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("SPEEDSANTA_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("SPEEDSANTA_HOST", "localhost")
    monkeypatch.setenv("SPEEDSANTA_PORT", "9000")
    monkeypatch.setenv("SPEEDSANTA_MIN_PARTICIPANTS", "2")
    monkeypatch.setenv("SPEEDSANTA_BUDGET_POLICY", "STRICT")
    monkeypatch.setenv("SPEEDSANTA_MAX_RETRIES", "5")

    settings = load_settings()

    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.min_participants == 2
    assert settings.budget_policy == "strict"
    assert settings.max_retries == 5


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "SPEEDSANTA_DATABASE_URL",
        "SPEEDSANTA_HOST",
        "SPEEDSANTA_PORT",
        "SPEEDSANTA_MIN_PARTICIPANTS",
        "SPEEDSANTA_BUDGET_POLICY",
        "SPEEDSANTA_MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.min_participants == 3
    assert settings.budget_policy == "lenient"
    assert settings.max_retries == 3


def test_load_settings_rejects_unknown_budget_policy(monkeypatch) -> None:
    monkeypatch.setenv("SPEEDSANTA_BUDGET_POLICY", "generous")

    with pytest.raises(ValueError):
        load_settings()


def test_load_settings_rejects_threshold_below_two(monkeypatch) -> None:
    monkeypatch.setenv("SPEEDSANTA_MIN_PARTICIPANTS", "1")

    with pytest.raises(ValueError):
        load_settings()
