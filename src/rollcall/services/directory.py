"""Directory lookups, login delegation, and team group updates."""

from __future__ import annotations

from datetime import timedelta

from bonsai.asyncio import AIOLDAPConnection
from structlog.stdlib import BoundLogger

from ..config import DirectoryConfig
from ..connection import DirectoryConnectionManager
from ..exceptions import AuthenticationError, NotFoundError
from ..models.directory import (
    DirectoryEntry,
    DirectoryGroup,
    DirectoryUser,
    SearchOptions,
    SearchScope,
    Team,
)
from ..storage.ldap import DirectoryStorage
from ..strategies import DirectoryStrategy, build_strategy

__all__ = ["DirectoryService"]


class DirectoryService:
    """Talk to the directory servers of schools.

    This collects all of the directory logic used by the route handlers:
    connection reuse, delegated authentication, searches, roster listing, and
    mirroring team membership into directory groups.

    Parameters
    ----------
    connections
        Registry of cached connections, shared by the whole process.
    strategies
        Strategies already selected for directory configurations, keyed by
        configuration identifier.  A strategy is built and added for any
        configuration not yet present.
    timeout
        Timeout for each LDAP operation.
    size_limit
        Maximum number of entries returned by a search.
    logger
        Logger to use.
    """

    def __init__(
        self,
        *,
        connections: DirectoryConnectionManager,
        strategies: dict[str, DirectoryStrategy],
        timeout: timedelta,
        size_limit: int,
        logger: BoundLogger,
    ) -> None:
        self._connections = connections
        self._strategies = strategies
        self._timeout = timeout
        self._size_limit = size_limit
        self._logger = logger

    async def authenticate(
        self, config: DirectoryConfig, full_username: str, password: str
    ) -> DirectoryEntry:
        """Authenticate a user against a directory.

        Binds on a dedicated connection with the user's own credentials, which
        is never cached, and then looks up the entry of the bound user over
        that connection.

        Parameters
        ----------
        config
            Configuration of the directory of the user's school.
        full_username
            Distinguished name of the user.
        password
            Password of the user.

        Returns
        -------
        dict
            Directory entry of the user.

        Raises
        ------
        AuthenticationError
            Raised if the directory rejected the credentials.
        NotFoundError
            Raised if the user's own entry could not be found.
        DirectoryError
            Raised if the directory could not be searched.
        """
        logger = self._logger.bind(directory=config.id, user=full_username)
        if not full_username:
            raise AuthenticationError("Wrong credentials")
        connection = await self._connections.connect(
            config, full_username, password
        )
        try:
            options = SearchOptions(scope=SearchScope.sub)
            storage = self._build_storage(config)
            entries = await storage.search(
                full_username, options, connection=connection
            )
        finally:
            connection.close()
        if not entries:
            logger.warning("Authenticated user has no directory entry")
            raise NotFoundError("Object not found")
        logger.info("Authenticated user against directory")
        return entries[0]

    async def add_user_to_group(
        self, config: DirectoryConfig, user: DirectoryUser, team: Team
    ) -> None:
        """Add a user to the directory group of a team.

        Parameters
        ----------
        config
            Configuration of the directory.
        user
            User to add.
        team
            Team whose group the user joins.  The group is created if it
            doesn't exist yet.

        Raises
        ------
        DirectoryError
            Raised if the directory could not be searched or updated.
        """
        group = DirectoryGroup.from_team(team)
        strategy = self._get_strategy(config)
        storage = self._build_storage(config)
        await strategy.add_user_to_group(storage, user, group)

    async def disconnect(self, config: DirectoryConfig) -> None:
        """Close the cached connection to a directory.

        Parameters
        ----------
        config
            Configuration of the directory.

        Raises
        ------
        ConfigurationError
            Raised if the configuration has no identifier.
        """
        await self._connections.disconnect(config)

    async def get_connection(
        self, config: DirectoryConfig
    ) -> AIOLDAPConnection:
        """Return the cached search-user connection, binding if needed.

        Parameters
        ----------
        config
            Configuration of the directory.

        Returns
        -------
        bonsai.asyncio.AIOLDAPConnection
            Connection bound as the search user.

        Raises
        ------
        AuthenticationError
            Raised if the directory rejected the search user.
        ConfigurationError
            Raised if the configuration is missing or has no URL.
        DirectoryError
            Raised if the directory could not be reached.
        """
        return await self._connections.get_connection(config)

    async def list_classes(
        self, config: DirectoryConfig, school: str
    ) -> list[DirectoryEntry]:
        """List all classes of a school."""
        query = self._get_strategy(config).build_classes_query(school)
        return await self.search_many(
            config, query.search_base, query.options
        )

    async def list_schools(
        self, config: DirectoryConfig
    ) -> list[DirectoryEntry]:
        """List all schools in a directory."""
        query = self._get_strategy(config).build_schools_query()
        return await self.search_many(
            config, query.search_base, query.options
        )

    async def list_users(
        self, config: DirectoryConfig, school: str
    ) -> list[DirectoryEntry]:
        """List all users of a school."""
        query = self._get_strategy(config).build_users_query(school)
        return await self.search_many(
            config, query.search_base, query.options
        )

    async def remove_user_from_group(
        self, config: DirectoryConfig, user: DirectoryUser, team: Team
    ) -> None:
        """Remove a user from the directory group of a team.

        Parameters
        ----------
        config
            Configuration of the directory.
        user
            User to remove.
        team
            Team whose group the user leaves.  The group is deleted if the
            user was its last member.

        Raises
        ------
        DirectoryError
            Raised if the directory could not be searched or updated.
        """
        group = DirectoryGroup.from_team(team)
        strategy = self._get_strategy(config)
        storage = self._build_storage(config)
        await strategy.remove_user_from_group(storage, user, group)

    async def search_many(
        self, config: DirectoryConfig, search_base: str, options: SearchOptions
    ) -> list[DirectoryEntry]:
        """Return every entry matching a search.

        Parameters
        ----------
        config
            Configuration of the directory.
        search_base
            Base DN of the search.
        options
            Filter, scope, and attributes of the search.

        Returns
        -------
        list of dict
            Matching entries, in the order the server returned them.

        Raises
        ------
        DirectoryError
            Raised if the search failed.  No partial results are returned.
        """
        storage = self._build_storage(config)
        return await storage.search(search_base, options)

    async def search_one(
        self, config: DirectoryConfig, search_base: str, options: SearchOptions
    ) -> DirectoryEntry:
        """Return the first entry matching a search.

        Raises
        ------
        NotFoundError
            Raised if nothing matched.
        DirectoryError
            Raised if the search failed.
        """
        entries = await self.search_many(config, search_base, options)
        if not entries:
            raise NotFoundError("Object not found")
        return entries[0]

    def _build_storage(self, config: DirectoryConfig) -> DirectoryStorage:
        return DirectoryStorage(
            config,
            self._connections,
            timeout=self._timeout,
            size_limit=self._size_limit,
            logger=self._logger,
        )

    def _get_strategy(self, config: DirectoryConfig) -> DirectoryStrategy:
        strategy = self._strategies.get(config.id)
        if not strategy:
            strategy = build_strategy(config, self._logger)
            self._strategies[config.id] = strategy
        return strategy
