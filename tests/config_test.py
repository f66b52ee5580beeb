"""Test configuration parsing."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError
from safir.logging import LogLevel, Profile

from rollcall.config import Config
from rollcall.exceptions import ConfigurationError
from rollcall.models.directory import DirectoryVariant

from .support.config import config_path


def parse_config(path: Path) -> dict:
    """Load a configuration file for modification by a test."""
    with path.open("r") as f:
        return yaml.safe_load(f)


def test_config_base() -> None:
    config = Config.from_file(config_path("base"))
    assert config.timeout == timedelta(seconds=10)
    assert config.search_size_limit == 100
    assert config.log_level == LogLevel.DEBUG
    assert config.log_profile == Profile.production
    assert config.path_prefix == "/rollcall"
    assert not config.slack_alerts

    directory = config.get_directory("s1")
    assert str(directory.url) == "ldap://ldap.example.com/"
    assert directory.root_path == "dc=school,dc=example"
    assert directory.search_user == "admin"
    assert directory.search_user_password.get_secret_value() == (
        "some-password"
    )
    assert directory.provider == DirectoryVariant.general
    assert config.get_directory("ucs").provider == DirectoryVariant.univention

    with pytest.raises(ConfigurationError, match="unknown"):
        config.get_directory("unknown")


def test_config_small() -> None:
    config = Config.from_file(config_path("small"))
    assert config.timeout == timedelta(seconds=2)
    assert config.search_size_limit == 2
    assert config.path_prefix == "/directory"
    assert config.log_level == LogLevel.INFO


def test_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLLCALL_TIMEOUT", "1m")
    monkeypatch.setenv("ROLLCALL_SEARCH_SIZE_LIMIT", "5")
    monkeypatch.setenv("ROLLCALL_LOG_LEVEL", "WARNING")
    config = Config.from_file(config_path("base"))
    assert config.timeout == timedelta(minutes=1)
    assert config.search_size_limit == 5
    assert config.log_level == LogLevel.WARNING


@pytest.mark.parametrize("setting", ["timeout", "searchSizeLimit"])
def test_config_required_limits(setting: str) -> None:
    data = parse_config(config_path("base"))
    del data[setting]
    with pytest.raises(ValidationError):
        Config.model_validate(data)


def test_config_invalid() -> None:
    data = parse_config(config_path("base"))

    with pytest.raises(ValidationError):
        Config.model_validate({**data, "timeout": "0s"})
    with pytest.raises(ValidationError):
        Config.model_validate({**data, "searchSizeLimit": 0})
    with pytest.raises(ValidationError, match="pathPrefix"):
        Config.model_validate({**data, "pathPrefix": "rollcall"})
    with pytest.raises(ValidationError, match="slackWebhook"):
        Config.model_validate({**data, "slackAlerts": True})

    directories = [data["directories"][0], data["directories"][0]]
    with pytest.raises(ValidationError, match="Duplicate directory"):
        Config.model_validate({**data, "directories": directories})

    directory = {**data["directories"][0], "url": "https://example.com/"}
    with pytest.raises(ValidationError):
        Config.model_validate({**data, "directories": [directory]})

    directory = {**data["directories"][0], "provider": "active-directory"}
    with pytest.raises(ValidationError):
        Config.model_validate({**data, "directories": [directory]})

    directory = {**data["directories"][0], "bindDn": "cn=admin"}
    with pytest.raises(ValidationError):
        Config.model_validate({**data, "directories": [directory]})
