import pytest

from config import Settings


def test_defaults_from_empty_env(monkeypatch):
    for key in ("DATABASE_URL", "PAYMENT_PROCESSING_DELAY", "PAYMENT_FAILURE_THRESHOLD",
                "INSTALLED_WALLET_PACKAGES", "DEFAULT_PAYMENT_CURRENCY", "PAYMENT_RANDOM_SEED"):
        monkeypatch.delenv(key, raising=False)
    settings = Settings.from_env()
    assert settings.database_url is None
    assert settings.processing_delay == 2.0
    assert settings.failure_threshold == 0.1
    assert settings.payment_session_minutes == 30
    assert settings.default_payment_currency == "USDT"
    assert settings.random_seed is None


def test_values_from_env(monkeypatch):
    monkeypatch.setenv("PAYMENT_PROCESSING_DELAY", "0.5")
    monkeypatch.setenv("PAYMENT_FAILURE_THRESHOLD", "0.25")
    monkeypatch.setenv("PAYMENT_RANDOM_SEED", "42")
    monkeypatch.setenv("DEFAULT_PAYMENT_CURRENCY", "btc")
    monkeypatch.setenv("INSTALLED_WALLET_PACKAGES", "io.metamask, app.phantom ,")
    monkeypatch.setenv("PAYMENT_BASE_URL", "https://pay.example.org/")

    settings = Settings.from_env()
    assert settings.processing_delay == 0.5
    assert settings.failure_threshold == 0.25
    assert settings.random_seed == 42
    assert settings.default_payment_currency == "BTC"
    assert settings.installed_wallet_packages == ("io.metamask", "app.phantom")
    assert settings.payment_base_url == "https://pay.example.org"


def test_invalid_threshold_rejected(monkeypatch):
    monkeypatch.setenv("PAYMENT_FAILURE_THRESHOLD", "1.5")
    with pytest.raises(ValueError):
        Settings.from_env()
