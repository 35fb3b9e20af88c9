# tests/test_config_reader.py
"""Tests for Settings defaults and environment overrides."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from sofizpay.config_reader import Settings


def test_defaults_track_dzt_on_public_network():
    settings = Settings()

    assert settings.asset_code == "DZT"
    assert settings.asset_issuer == "GCAZI7YBLIDJWIVEL7ETNAZGPP3LC24NO6KAOBWZHUERXQ7M5BC52DLV"
    assert settings.stellar_testnet is False
    assert settings.stream_check_interval == 30
    assert "BEGIN PUBLIC KEY" in settings.signature_public_key


def test_env_prefix_overrides(monkeypatch):
    monkeypatch.setenv("SOFIZPAY_HORIZON_URL", "http://localhost:8000")
    monkeypatch.setenv("SOFIZPAY_STELLAR_TESTNET", "true")

    settings = Settings()

    assert settings.horizon_url == "http://localhost:8000"
    assert settings.stellar_testnet is True


@pytest.mark.parametrize("interval", [4, 301])
def test_check_interval_bounds(interval):
    with pytest.raises(PydanticValidationError):
        Settings(stream_check_interval=interval)
