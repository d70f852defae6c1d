import pytest

from config import load_config
from core.exceptions import ConfigurationError


def test_defaults(monkeypatch):
    for name in ("SPIN_DURATION_MS", "DEFAULT_WHEEL_ID", "RIGGING_FALLBACK_URL"):
        monkeypatch.delenv(name, raising=False)
    config = load_config()
    assert config.spin_duration_ms == 6000
    assert config.default_wheel_id == "default-wheel"
    assert config.rigging_fallback_url is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SPIN_DURATION_MS", "2500")
    monkeypatch.setenv("RIGGING_FALLBACK_URL", " http://localhost:9000/pick ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    config = load_config()
    assert config.spin_duration_ms == 2500
    assert config.rigging_fallback_url == "http://localhost:9000/pick"
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("name, value", [
    ("SPIN_DURATION_MS", "0"),
    ("SPIN_DURATION_MS", "fast"),
    ("DB_POOL_SIZE", "0"),
    ("RIGGING_FALLBACK_TIMEOUT", "-1"),
])
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        load_config()
