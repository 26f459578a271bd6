"""Configuration selection and production guards."""

from __future__ import annotations

import pytest
from tokensession.core.config import (
    DEV_SIGNING_KEY,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    env_bool,
    get_config,
    validate_config,
)


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ("production", ProductionConfig),
        ("testing", TestingConfig),
        ("development", DevelopmentConfig),
        ("unknown", DevelopmentConfig),
    ],
)
def test_get_config_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)

    assert get_config() is expected


def test_env_bool(monkeypatch):
    monkeypatch.setenv("FLAG", "Yes")
    assert env_bool("FLAG") is True
    monkeypatch.setenv("FLAG", "0")
    assert env_bool("FLAG", True) is False
    monkeypatch.delenv("FLAG")
    assert env_bool("FLAG", True) is True


def test_defaults_are_documented_values():
    assert TestingConfig.ACCESS_TOKEN_TTL_SECONDS == 900
    assert TestingConfig.REFRESH_TOKEN_TTL_SECONDS == 14 * 24 * 3600
    assert TestingConfig.REFRESH_RETENTION_SECONDS == 7 * 24 * 3600
    assert TestingConfig.TOKEN_KEY_OVERLAP_SECONDS == 3600


def test_production_refuses_placeholder_key():
    with pytest.raises(RuntimeError):
        validate_config({"DEBUG": False, "TESTING": False, "TOKEN_SIGNING_KEY": DEV_SIGNING_KEY})
    with pytest.raises(RuntimeError):
        validate_config({"TOKEN_SIGNING_KEY": ""})

    validate_config({"TOKEN_SIGNING_KEY": "a-real-secret-from-the-vault-0123456789"})
    validate_config({"TESTING": True, "TOKEN_SIGNING_KEY": DEV_SIGNING_KEY})
