"""Registry of live directory connections.

One connection manager is created per process, managed by
`~rollcall.factory.ProcessContext`, and injected into every
`~rollcall.services.directory.DirectoryService`.  It holds at most one
authenticated connection per directory configuration identifier.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import timedelta

import bonsai
from bonsai import LDAPClient
from bonsai.asyncio import AIOLDAPConnection
from structlog.stdlib import BoundLogger

from .config import DirectoryConfig
from .constants import DEFAULT_USER_CONTAINER
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DirectoryError,
)

__all__ = ["DirectoryConnectionManager"]


class DirectoryConnectionManager:
    """Establish, cache, and close authenticated directory connections.

    Connections are keyed by the identifier of their directory configuration
    and reused as long as they have not been closed.  Establishing a
    connection for a given identifier takes a per-identifier lock, so
    concurrent callers wait for a single bind rather than each binding and
    racing to store their connection.

    Parameters
    ----------
    timeout
        Timeout for establishing a connection and binding.
    logger
        Logger for debug messages and errors.
    """

    def __init__(self, timeout: timedelta, logger: BoundLogger) -> None:
        self._timeout = timeout
        self._logger = logger
        self._connections: dict[str, AIOLDAPConnection] = {}
        self._locks: defaultdict[str, asyncio.Lock]
        self._locks = defaultdict(asyncio.Lock)

    async def aclose(self) -> None:
        """Close all cached connections.

        Called during shutdown, or before recreating the process context using
        a different configuration.
        """
        for directory_id in list(self._connections):
            async with self._locks[directory_id]:
                connection = self._connections.pop(directory_id, None)
                if connection:
                    connection.close()
        self._locks.clear()

    async def connect(
        self,
        config: DirectoryConfig | None,
        username: str | None = None,
        password: str | None = None,
    ) -> AIOLDAPConnection:
        """Open a new authenticated connection without caching it.

        Parameters
        ----------
        config
            Configuration of the directory server.
        username
            DN to bind as.  Defaults to the search user of the configuration,
            ``uid=<search_user>,cn=users,<root_path>``, bound with the
            configured password.
        password
            Password to bind with.  Ignored if ``username`` is not given.

        Returns
        -------
        bonsai.asyncio.AIOLDAPConnection
            Newly-opened connection.  The caller is responsible for closing
            it.

        Raises
        ------
        AuthenticationError
            Raised if the server rejected the bind.
        ConfigurationError
            Raised if the configuration is missing or has no URL.
        DirectoryError
            Raised if the server could not be reached or the bind timed out.
        """
        if not (config and config.url):
            raise ConfigurationError("Invalid URL in directory configuration")
        if username is None:
            search_user = config.search_user
            root = config.root_path
            username = f"uid={search_user},{DEFAULT_USER_CONTAINER},{root}"
            password = config.search_user_password.get_secret_value()
        if not password:
            # An empty password would silently make an unauthenticated bind.
            raise AuthenticationError("Wrong credentials")
        logger = self._logger.bind(
            directory=config.id, ldap_url=str(config.url), ldap_user=username
        )

        client = LDAPClient(str(config.url))
        client.set_credentials("SIMPLE", user=username, password=password)
        try:
            logger.debug("Binding to directory")
            timeout = self._timeout.total_seconds()
            return await client.connect(is_async=True, timeout=timeout)
        except bonsai.AuthenticationError as e:
            logger.info("Directory rejected bind", error=str(e))
            raise AuthenticationError("Wrong credentials") from e
        except (bonsai.TimeoutError, asyncio.TimeoutError) as e:
            msg = f"Bind timed out after {timeout}s"
            logger.error("Cannot bind to directory", error=msg)
            raise DirectoryError(msg, config.id) from e
        except bonsai.LDAPError as e:
            logger.exception("Cannot bind to directory", error=str(e))
            msg = f"Cannot bind to directory: {e!s}"
            raise DirectoryError(msg, config.id) from e

    async def disconnect(self, config: DirectoryConfig | None) -> None:
        """Close and forget the cached connection for a directory.

        Does nothing if no connection is cached.

        Parameters
        ----------
        config
            Configuration of the directory server.

        Raises
        ------
        ConfigurationError
            Raised if the configuration is missing or has no identifier.
        """
        if not (config and config.id):
            raise ConfigurationError("Invalid directory configuration")
        async with self._locks[config.id]:
            connection = self._connections.pop(config.id, None)
        if connection:
            self._logger.debug("Closing connection", directory=config.id)
            connection.close()

    async def get_connection(
        self, config: DirectoryConfig | None
    ) -> AIOLDAPConnection:
        """Return the cached connection for a directory, binding if needed.

        A new connection is opened as the search user if none is cached or
        the cached one has been closed.

        Parameters
        ----------
        config
            Configuration of the directory server.

        Returns
        -------
        bonsai.asyncio.AIOLDAPConnection
            Connection bound as the search user of that directory.

        Raises
        ------
        AuthenticationError
            Raised if the server rejected the bind.
        ConfigurationError
            Raised if the configuration is missing or has no URL.
        DirectoryError
            Raised if the server could not be reached or the bind timed out.
        """
        if not (config and config.url):
            raise ConfigurationError("Invalid URL in directory configuration")
        connection = self._connections.get(config.id)
        if connection is not None and not connection.closed:
            return connection
        async with self._locks[config.id]:
            connection = self._connections.get(config.id)
            if connection is not None and not connection.closed:
                return connection
            connection = await self.connect(config)
            self._connections[config.id] = connection
            return connection

    def invalidate(
        self, config: DirectoryConfig, connection: AIOLDAPConnection
    ) -> None:
        """Close a connection that failed and drop it from the cache.

        The cache entry is only dropped if it still holds that connection, so
        a replacement opened by another caller survives.

        Parameters
        ----------
        config
            Configuration of the directory server.
        connection
            The connection that failed.
        """
        if self._connections.get(config.id) is connection:
            del self._connections[config.id]
        connection.close()
