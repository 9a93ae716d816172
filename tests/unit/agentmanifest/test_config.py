from __future__ import annotations

import pytest
from pydantic import ValidationError

from agentmanifest.config import DEFAULT_JWT_SECRET, ValidatorConfig, get_config


def test_defaults() -> None:
    config = ValidatorConfig(_env_file=None)
    assert config.manifest_timeout == 10.0
    assert config.probe_timeout == 8.0
    assert config.max_endpoint_probes == 3
    assert config.max_bearer_probes == 2
    assert config.token_validity_days == 90
    assert config.escalate_probe_warnings is False
    assert "lorem ipsum" in config.boilerplate_patterns


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("AGENTMANIFEST_PROBE_TIMEOUT", "2.5")
    monkeypatch.setenv("AGENTMANIFEST_ESCALATE_PROBE_WARNINGS", "true")
    monkeypatch.setenv("AGENTMANIFEST_LOG_LEVEL", "debug")
    config = ValidatorConfig(_env_file=None)
    assert config.probe_timeout == 2.5
    assert config.escalate_probe_warnings is True
    assert config.log_level == "DEBUG"


def test_invalid_log_level() -> None:
    with pytest.raises(ValidationError):
        ValidatorConfig(_env_file=None, log_level="chatty")


def test_default_secret_rejected_in_production() -> None:
    with pytest.raises(ValidationError, match="jwt_secret"):
        ValidatorConfig(_env_file=None, environment="production", jwt_secret=DEFAULT_JWT_SECRET)
    assert ValidatorConfig(_env_file=None, environment="production", jwt_secret="real").environment == "production"


def test_get_config_caches(monkeypatch) -> None:
    first = get_config(force_reload=True)
    assert get_config() is first
    monkeypatch.setenv("AGENTMANIFEST_PORT", "4100")
    assert get_config(force_reload=True).port == 4100
    monkeypatch.delenv("AGENTMANIFEST_PORT")
    get_config(force_reload=True)
