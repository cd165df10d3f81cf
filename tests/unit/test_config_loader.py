"""Tests for the profile-based config loader."""

from __future__ import annotations

import pytest

from gelatobase.config import load_settings

pytestmark = [pytest.mark.config]


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in (
        "GELATO_CONFIG_PROFILE",
        "GELATO_CONFIG_DIR",
        "DATABASE_URL",
        "ADMIN_PASSWORD",
        "GELATO_API_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_settings_falls_back_to_defaults(monkeypatch, tmp_path):
    """Missing profiles should default to the built-in dev configuration."""

    monkeypatch.setenv("GELATO_CONFIG_PROFILE", "missing")
    monkeypatch.setenv("GELATO_CONFIG_DIR", str(tmp_path))
    settings = load_settings()

    assert settings.environment == "dev"
    assert settings.database_url.endswith("icecream.db")
    assert settings.admin_password is None
    assert settings.shops.primary == "Joelato"
    assert settings.shops.secondary == "Mary's Milk Bar"
    assert settings.analytics.top_flavour_limit == 10
    assert settings.analytics.recent_window_days == 7
    assert settings.api.base_url == "http://localhost:8000"


def test_load_settings_reads_yaml_profile(monkeypatch, tmp_path):
    """Config loader should parse YAML profiles and expose nested sections."""

    profiles_dir = tmp_path / "profiles"
    profiles_dir.mkdir()
    (profiles_dir / "staging.yaml").write_text(
        """
environment: staging

database:
  url: "postgresql+psycopg://postgres:pw@db:5432/gelato"

api:
  base_url: "https://gelato.example.test/"
  timeout_seconds: 3

cache:
  directory: /tmp/gelato-cache

shops:
  primary: Alpha
  secondary: Beta
  options: [Alpha, Beta]

analytics:
  trend_months: 12
""",
        encoding="utf-8",
    )

    monkeypatch.setenv("GELATO_CONFIG_PROFILE", "staging")
    monkeypatch.setenv("GELATO_CONFIG_DIR", str(profiles_dir))

    settings = load_settings()

    assert settings.environment == "staging"
    assert settings.database_url.endswith("/gelato")
    assert settings.api.base_url == "https://gelato.example.test"
    assert settings.api.timeout_seconds == 3.0
    assert str(settings.cache_directory) == "/tmp/gelato-cache"
    assert settings.shops.primary == "Alpha"
    assert settings.shops.default == "Alpha"
    assert settings.shops.options == ["Alpha", "Beta"]
    assert settings.analytics.trend_months == 12
    assert settings.analytics.top_flavour_limit == 10


def test_environment_overrides_take_precedence(monkeypatch, tmp_path):
    (tmp_path / "dev.yaml").write_text(
        "database:\n  url: sqlite+pysqlite:///profile.db\n", encoding="utf-8"
    )
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///override.db")
    monkeypatch.setenv("ADMIN_PASSWORD", "s3cret")
    monkeypatch.setenv("GELATO_API_BASE_URL", "http://api.internal:9000/")

    settings = load_settings(profile="dev", config_dir=tmp_path)

    assert settings.database_url == "sqlite+pysqlite:///override.db"
    assert settings.admin_password == "s3cret"
    assert settings.api.base_url == "http://api.internal:9000"


def test_empty_admin_password_is_unset(monkeypatch, tmp_path):
    monkeypatch.setenv("ADMIN_PASSWORD", "")

    settings = load_settings(profile="dev", config_dir=tmp_path)

    assert settings.admin_password is None


def test_invalid_yaml_raises_runtime_error(tmp_path):
    (tmp_path / "dev.yaml").write_text("shops: [unclosed\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="Failed to parse"):
        load_settings(profile="dev", config_dir=tmp_path)


def test_non_mapping_profile_is_rejected(tmp_path):
    (tmp_path / "dev.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="must be a mapping"):
        load_settings(profile="dev", config_dir=tmp_path)


def test_bundled_dev_profile_loads():
    settings = load_settings(profile="dev")

    assert settings.environment == "dev"
    assert "Joelato" in settings.shops.options
