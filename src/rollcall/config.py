"""Configuration for Rollcall.

Rollcall is configured by a YAML file whose path is given by the
``ROLLCALL_CONFIG_PATH`` environment variable. Secrets and a few deployment
settings may instead be injected via environment variables, which take
precedence over the file. Only the settings with explicit
``validation_alias`` settings support configuration via environment variable.

The list of directories in the configuration file is the store of directory
configurations. Each entry is immutable once loaded.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Annotated, Self, override

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    UrlConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import Url
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging
from safir.models import ErrorLocation
from safir.pydantic import HumanTimedelta

from .exceptions import ConfigurationError
from .models.directory import DirectoryVariant

LdapDsn = Annotated[
    Url, UrlConstraints(allowed_schemes=["ldap", "ldaps"], host_required=True)
]
"""DSN for connecting to an LDAP server."""

__all__ = [
    "CamelCaseSettings",
    "Config",
    "DirectoryConfig",
    "EnvFirstSettings",
    "LdapDsn",
]


class CamelCaseSettings(BaseSettings):
    """Base class for Pydantic settings supporting camel-case.

    This base class also forbids all extra attributes. It should be used as
    the base class (possibly indirectly) for all Rollcall configuration
    models that support environment variable overrides.
    """

    model_config = SettingsConfigDict(
        alias_generator=to_camel, extra="forbid", populate_by_name=True
    )


class EnvFirstSettings(CamelCaseSettings):
    """Base class for Pydantic settings with environment overrides.

    Classes that inherit from this base class will prioritize environment
    variables over arguments to the class constructor.
    """

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the YAML configuration file and we want environment variables to
        take precedent.
        """
        return (env_settings, init_settings)


class DirectoryConfig(BaseModel):
    """Connection settings for one directory server.

    The search user is a service account used for roster searches and group
    updates. Its bind DN is derived from ``search_user`` and ``root_path``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        title="Directory identifier",
        description="Unique identifier of this directory configuration",
        min_length=1,
    )

    url: LdapDsn = Field(
        ...,
        title="LDAP server URL",
        description="URL of the directory server, including scheme and port",
    )

    root_path: str = Field(
        ...,
        title="Root DN",
        description="Distinguished name of the root of the directory tree",
        examples=["dc=example,dc=org"],
    )

    search_user: str = Field(
        ...,
        title="Search user",
        description=(
            "Username of the service account. The account is bound as"
            " ``uid=<searchUser>,cn=users,<rootPath>``."
        ),
    )

    search_user_password: SecretStr = Field(
        ...,
        title="Search user password",
        description="Password of the service account",
    )

    provider: DirectoryVariant = Field(
        DirectoryVariant.general,
        title="Directory variant",
        description=(
            "Flavor of directory server, which determines how schools, users,"
            " classes, and groups are laid out"
        ),
    )


class Config(EnvFirstSettings):
    """Configuration for Rollcall."""

    directories: list[DirectoryConfig] = Field(
        [],
        title="Directories",
        description="Directory servers that Rollcall may talk to",
    )

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level",
        validation_alias=AliasChoices("ROLLCALL_LOG_LEVEL", "logLevel"),
    )

    log_profile: Profile = Field(
        Profile.production,
        title="Logging profile",
        description=(
            "Use ``production`` for JSON logs and ``development`` for"
            " human-readable logs"
        ),
        validation_alias=AliasChoices("ROLLCALL_LOG_PROFILE", "logProfile"),
    )

    path_prefix: str = Field(
        "/rollcall",
        title="URL path prefix",
        description="Prefix under which the API routes are mounted",
    )

    search_size_limit: int = Field(
        ...,
        title="Search size limit",
        description=(
            "Maximum number of entries a single search may return. Searches"
            " that exceed this limit fail rather than return partial results."
        ),
        ge=1,
        validation_alias=AliasChoices(
            "ROLLCALL_SEARCH_SIZE_LIMIT", "searchSizeLimit"
        ),
    )

    slack_alerts: bool = Field(
        False,
        title="Enable Slack alerts",
        description=(
            "Whether to enable Slack alerts. If true, ``slack_webhook`` must"
            " also be set."
        ),
    )

    slack_webhook: SecretStr | None = Field(
        None,
        title="Slack webhook for alerts",
        description="If set, alerts will be posted to this Slack webhook",
        validation_alias=AliasChoices(
            "ROLLCALL_SLACK_WEBHOOK", "slackWebhook"
        ),
    )

    timeout: HumanTimedelta = Field(
        ...,
        title="LDAP operation timeout",
        description="Timeout for binds and searches against a directory",
        validation_alias=AliasChoices("ROLLCALL_TIMEOUT", "timeout"),
    )

    @field_validator("path_prefix")
    @classmethod
    def _validate_path_prefix(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("pathPrefix must start with /")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def _validate_timeout(cls, v: timedelta) -> timedelta:
        if v <= timedelta(seconds=0):
            raise ValueError("timeout must be positive")
        return v

    @model_validator(mode="after")
    def _validate_directories(self) -> Self:
        """Ensure directory identifiers are unique."""
        seen = set()
        for directory in self.directories:
            if directory.id in seen:
                msg = f"Duplicate directory identifier {directory.id}"
                raise ValueError(msg)
            seen.add(directory.id)
        return self

    @model_validator(mode="after")
    def _validate_slack(self) -> Self:
        if self.slack_alerts and not self.slack_webhook:
            raise ValueError("slackWebhook required if slackAlerts is set")
        return self

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct a Config object from a configuration file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        Config
            The corresponding `Config` object.
        """
        with path.open("r") as f:
            return cls.model_validate(yaml.safe_load(f))

    def configure_logging(self) -> None:
        """Configure logging based on the Rollcall configuration."""
        configure_logging(
            name="rollcall",
            profile=self.log_profile,
            log_level=self.log_level,
        )

    def get_directory(self, directory_id: str) -> DirectoryConfig:
        """Look up a directory configuration by identifier.

        Parameters
        ----------
        directory_id
            Identifier of the directory.

        Returns
        -------
        DirectoryConfig
            The matching configuration.

        Raises
        ------
        ConfigurationError
            Raised if no directory with that identifier is configured.
        """
        for directory in self.directories:
            if directory.id == directory_id:
                return directory
        msg = f"Directory {directory_id} not configured"
        raise ConfigurationError(msg, ErrorLocation.path, ["directory_id"])
