"""Request context dependency for FastAPI.

Route handlers receive a single `RequestContext` holding the configuration,
a component factory, and a request logger.  The logger picks up the directory,
school, team, and user of the request as handlers discover them, and the
factory passes that logger on to every service it builds.
"""

from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Request
from safir.dependencies.logger import logger_dependency
from structlog.stdlib import BoundLogger

from ..config import Config, DirectoryConfig
from ..factory import Factory, ProcessContext

__all__ = [
    "ContextDependency",
    "RequestContext",
    "context_dependency",
]


@dataclass(slots=True)
class RequestContext:
    """Per-request context passed to route handlers."""

    request: Request
    """The incoming request."""

    config: Config
    """Rollcall's configuration."""

    logger: BoundLogger
    """Request logger, rebound as handlers learn more about the request."""

    factory: Factory
    """Factory for the services used by the handler."""

    def get_directory(self, directory_id: str) -> DirectoryConfig:
        """Resolve the directory named in the route.

        The identifier is also added to the logging context.

        Parameters
        ----------
        directory_id
            Identifier of the directory.

        Returns
        -------
        DirectoryConfig
            Configuration of that directory.

        Raises
        ------
        ConfigurationError
            Raised if that directory is not configured.
        """
        directory = self.config.get_directory(directory_id)
        self.rebind_logger(directory=directory.id)
        return directory

    def rebind_logger(self, **values: Any) -> None:
        """Bind more values into the request logger.

        Services created by the factory from now on log with the new values.

        Parameters
        ----------
        **values
            Key and value pairs to add to the logging context.
        """
        self.logger = self.logger.bind(**values)
        self.factory.set_logger(self.logger)


class ContextDependency:
    """Build a `RequestContext` for each request.

    The directory connections and strategies live in a single
    `~rollcall.factory.ProcessContext` created when the application starts,
    so every request shares them.
    """

    def __init__(self) -> None:
        self._config: Config | None = None
        self._process_context: ProcessContext | None = None

    async def __call__(
        self,
        *,
        request: Request,
        logger: Annotated[BoundLogger, Depends(logger_dependency)],
    ) -> RequestContext:
        """Create a per-request context and return it."""
        if not self._config or not self._process_context:
            raise RuntimeError("ContextDependency not initialized")
        return RequestContext(
            request=request,
            config=self._config,
            logger=logger,
            factory=Factory(self._process_context, logger),
        )

    async def aclose(self) -> None:
        """Close all directory connections and forget the configuration."""
        if self._process_context:
            await self._process_context.aclose()
        self._config = None
        self._process_context = None

    async def initialize(self, config: Config) -> None:
        """Set up the shared process context.

        Any previous process context, and with it every cached directory
        connection, is closed first.

        Parameters
        ----------
        config
            Rollcall configuration.
        """
        if self._process_context:
            await self._process_context.aclose()
        self._config = config
        self._process_context = ProcessContext.from_config(config)


context_dependency = ContextDependency()
"""The dependency that will return the per-request context."""
