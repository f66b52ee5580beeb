"""Health check for the Rollcall service."""

from __future__ import annotations

from ..config import DirectoryConfig
from .directory import DirectoryService

__all__ = ["HealthCheckService"]


class HealthCheckService:
    """Check the health of the Rollcall service.

    Intended to be invoked via a Kubernetes liveness check and test the
    connections to every configured directory.

    Parameters
    ----------
    directories
        Configurations of all directories.
    directory_service
        Service used to obtain directory connections.
    """

    def __init__(
        self,
        *,
        directories: list[DirectoryConfig],
        directory_service: DirectoryService,
    ) -> None:
        self._directories = directories
        self._directory = directory_service

    async def check(self) -> list[str]:
        """Check that every directory accepts a bind of its search user.

        Cached connections are reused, so this only binds to directories
        that have no live connection.

        Returns
        -------
        list of str
            Identifiers of the checked directories.

        Raises
        ------
        AuthenticationError
            Raised if a directory rejected its search user.
        DirectoryError
            Raised if a directory could not be reached.
        """
        for directory in self._directories:
            await self._directory.get_connection(directory)
        return [d.id for d in self._directories]
