"""Create Rollcall components."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from typing import Self

import structlog
from structlog.stdlib import BoundLogger

from .config import Config
from .connection import DirectoryConnectionManager
from .services.directory import DirectoryService
from .services.health import HealthCheckService
from .strategies import DirectoryStrategy, build_strategy

__all__ = ["Factory", "ProcessContext"]


@dataclass(frozen=True, slots=True)
class ProcessContext:
    """Per-process application context.

    This object caches all of the per-process singletons that can be reused
    for every request and only need to be recreated if the application
    configuration changes.
    """

    config: Config
    """Rollcall's configuration."""

    connections: DirectoryConnectionManager
    """Cached connections to directory servers."""

    strategies: dict[str, DirectoryStrategy]
    """Strategy for each directory, keyed by directory identifier."""

    @classmethod
    def from_config(cls, config: Config) -> Self:
        """Create a new process context from the Rollcall configuration.

        Parameters
        ----------
        config
            The Rollcall configuration.

        Returns
        -------
        ProcessContext
            Shared context for a Rollcall process.
        """
        logger = structlog.get_logger("rollcall")
        return cls(
            config=config,
            connections=DirectoryConnectionManager(config.timeout, logger),
            strategies={
                d.id: build_strategy(d, logger) for d in config.directories
            },
        )

    async def aclose(self) -> None:
        """Clean up a process context.

        Called during shutdown, or before recreating the process context using
        a different configuration.
        """
        await self.connections.aclose()


class Factory:
    """Build Rollcall components.

    Uses the contents of a `ProcessContext` to construct the components of the
    application on demand.

    Parameters
    ----------
    context
        Shared process context.
    logger
        Logger to use for errors.
    """

    @classmethod
    @asynccontextmanager
    async def standalone(cls, config: Config) -> AsyncIterator[Self]:
        """Async context manager for Rollcall components.

        Intended for the command-line interface and other code outside the
        web application.  Creates its own process context, which is closed on
        exit.

        Parameters
        ----------
        config
            Rollcall configuration.

        Yields
        ------
        Factory
            The factory.  Must be used as an async context manager.

        Examples
        --------
        .. code-block:: python

           async with Factory.standalone(config) as factory:
               directory_service = factory.create_directory_service()
               schools = await directory_service.list_schools(directory)
        """
        logger = structlog.get_logger("rollcall")
        context = ProcessContext.from_config(config)
        async with aclosing(cls(context, logger)) as factory:
            yield factory

    def __init__(self, context: ProcessContext, logger: BoundLogger) -> None:
        self._context = context
        self._logger = logger

    async def aclose(self) -> None:
        """Shut down the factory.

        After this method is called, the factory object is no longer valid and
        must not be used.
        """
        await self._context.aclose()

    def create_directory_service(self) -> DirectoryService:
        """Create the directory service.

        Returns
        -------
        DirectoryService
            Newly-created directory service.
        """
        return DirectoryService(
            connections=self._context.connections,
            strategies=self._context.strategies,
            timeout=self._context.config.timeout,
            size_limit=self._context.config.search_size_limit,
            logger=self._logger,
        )

    def create_health_check_service(self) -> HealthCheckService:
        """Create a service for performing health checks.

        Returns
        -------
        HealthCheckService
            Newly-created health check service.
        """
        return HealthCheckService(
            directories=self._context.config.directories,
            directory_service=self.create_directory_service(),
        )

    def set_logger(self, logger: BoundLogger) -> None:
        """Replace the internal logger.

        Used by the context dependency to update the logger for all
        newly-created components when it's rebound with additional context.

        Parameters
        ----------
        logger
            New logger.
        """
        self._logger = logger
