"""Config dependency for FastAPI."""

from __future__ import annotations

import os
from pathlib import Path

from ..config import Config
from ..constants import CONFIG_PATH

__all__ = ["ConfigDependency", "config_dependency"]


class ConfigDependency:
    """Load the Rollcall configuration on first use and cache it.

    Loading the configuration also configures logging, so every entry point
    (the web application, the command-line interface, and the test suite)
    gets logging set up from the same settings.

    Parameters
    ----------
    default_path
        Configuration file used unless ``ROLLCALL_CONFIG_PATH`` is set.
    """

    def __init__(self, default_path: str = CONFIG_PATH) -> None:
        self._path = Path(os.getenv("ROLLCALL_CONFIG_PATH", default_path))
        self._config: Config | None = None

    async def __call__(self) -> Config:
        """Return the configuration, loading it if necessary."""
        return self.config()

    def config(self) -> Config:
        """Return the configuration, loading it if necessary.

        Usable from code that isn't async, such as application construction.
        """
        if self._config is None:
            return self._load()
        return self._config

    def set_config_path(self, path: Path) -> None:
        """Switch to another configuration file and load it immediately.

        Parameters
        ----------
        path
            New configuration file.
        """
        self._path = path
        self._load()

    def _load(self) -> Config:
        config = Config.from_file(self._path)
        config.configure_logging()
        self._config = config
        return config


config_dependency = ConfigDependency()
"""The dependency that will return the current configuration."""
