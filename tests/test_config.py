"""Tests for tradebook.config — environment variable loading and validation."""

import pytest

from tradebook.config import Config, load_config

_VARS = [
    "CONTENT_API_URL",
    "CONTENT_API_TOKEN",
    "ACCOUNT_EQUITY",
    "TARGET_RISK_PCT",
    "BUCKET_COUNT",
    "TARGET_EXPOSURE_PCT",
    "MIN_RISK_AMOUNT",
    "LOG_LEVEL",
    "HTTP_PORT",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure tradebook env vars are cleared between tests."""
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def env_path(tmp_path):
    # Non-existent file so load_dotenv never picks up a real .env
    return str(tmp_path / "nonexistent.env")


class TestLoadConfig:
    def test_loads_required_vars(self, monkeypatch, env_path):
        monkeypatch.setenv("CONTENT_API_URL", "https://journal.example.com/api/")
        cfg = load_config(env_path)
        assert cfg.content_api_url == "https://journal.example.com/api/"
        assert cfg.content_base_url == "https://journal.example.com/api"

    def test_defaults(self, monkeypatch, env_path):
        monkeypatch.setenv("CONTENT_API_URL", "http://localhost:3000/api")
        cfg = load_config(env_path)
        assert cfg.content_api_token == ""
        assert cfg.account_equity is None
        assert cfg.target_risk_pct is None
        assert cfg.bucket_count == 4
        assert cfg.target_exposure_pct == 400.0
        assert cfg.min_risk_amount == 0.01
        assert cfg.log_level == "INFO"
        assert cfg.http_port == 8080

    def test_overrides(self, monkeypatch, env_path):
        monkeypatch.setenv("CONTENT_API_URL", "http://localhost:3000/api")
        monkeypatch.setenv("ACCOUNT_EQUITY", "25000")
        monkeypatch.setenv("TARGET_RISK_PCT", "0.5")
        monkeypatch.setenv("BUCKET_COUNT", "5")
        cfg = load_config(env_path)
        assert cfg.account_equity == 25_000.0
        assert cfg.target_risk_pct == 0.5
        assert cfg.bucket_count == 5

    def test_config_missing_var(self, env_path):
        with pytest.raises(ValueError, match="CONTENT_API_URL"):
            load_config(env_path)

    def test_bad_number_rejected(self, monkeypatch, env_path):
        monkeypatch.setenv("CONTENT_API_URL", "http://localhost:3000/api")
        monkeypatch.setenv("ACCOUNT_EQUITY", "lots")
        with pytest.raises(ValueError):
            load_config(env_path)

    def test_analytics_settings(self, monkeypatch, env_path):
        monkeypatch.setenv("CONTENT_API_URL", "http://localhost:3000/api")
        monkeypatch.setenv("ACCOUNT_EQUITY", "10000")
        monkeypatch.setenv("TARGET_RISK_PCT", "1")
        settings = load_config(env_path).analytics_settings()
        assert settings.equity == 10_000.0
        assert settings.target_risk_pct == 1.0
        assert settings.bucket_count == 4

    def test_config_is_frozen(self, monkeypatch, env_path):
        monkeypatch.setenv("CONTENT_API_URL", "http://localhost:3000/api")
        cfg = load_config(env_path)
        assert isinstance(cfg, Config)
        with pytest.raises(AttributeError):
            cfg.bucket_count = 8  # type: ignore[misc]
