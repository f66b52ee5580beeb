"""LDAP storage layer for Rollcall."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import bonsai
from bonsai import LDAPEntry, LDAPModOp
from bonsai.asyncio import AIOLDAPConnection
from structlog.stdlib import BoundLogger

from ..config import DirectoryConfig
from ..connection import DirectoryConnectionManager
from ..exceptions import DirectoryError
from ..models.directory import DirectoryEntry, SearchOptions

__all__ = ["DirectoryStorage"]


def _to_entry(result: Mapping[str, Any]) -> DirectoryEntry:
    """Convert a bonsai search result to a plain directory entry.

    bonsai returns values that are not valid UTF-8, such as photos or key
    material, as `bytes`.  Those are base64-encoded so that the entry can be
    serialized to JSON.
    """
    dn = getattr(result, "dn", None) or result.get("dn")
    entry: DirectoryEntry = {
        k: [_to_value(v) for v in values]
        for k, values in result.items()
        if k.lower() != "dn"
    }
    entry["dn"] = str(dn)
    return entry


def _to_value(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode()
    return value


class DirectoryStorage:
    """LDAP storage layer for one directory server.

    Runs individual LDAP operations over the cached search-user connection of
    that directory, or over a caller-supplied connection, and translates
    bonsai exceptions into `~rollcall.exceptions.DirectoryError`.

    Parameters
    ----------
    config
        Configuration of the directory server.
    connections
        Registry of cached connections.
    timeout
        Timeout for each operation.
    size_limit
        Maximum number of entries returned by a search.
    logger
        Logger for debug messages and errors.
    """

    def __init__(
        self,
        config: DirectoryConfig,
        connections: DirectoryConnectionManager,
        *,
        timeout: timedelta,
        size_limit: int,
        logger: BoundLogger,
    ) -> None:
        self._config = config
        self._connections = connections
        self._timeout = timeout.total_seconds()
        self._size_limit = size_limit
        self._logger = logger.bind(
            directory=config.id, ldap_url=str(config.url)
        )

    async def add(self, dn: str, attributes: dict[str, list[str]]) -> bool:
        """Add a new entry.

        Parameters
        ----------
        dn
            Distinguished name of the new entry.
        attributes
            Attributes of the new entry, including ``objectClass``.

        Returns
        -------
        bool
            `True` if the entry was added, `False` if an entry with that DN
            already existed.

        Raises
        ------
        DirectoryError
            Raised if the entry could not be added.
        """
        connection = await self._connections.get_connection(self._config)
        logger = self._logger.bind(ldap_dn=dn)
        entry = LDAPEntry(dn)
        for attribute, values in attributes.items():
            entry[attribute] = values
        async with self._handle_errors(connection, "add", logger):
            logger.debug("Adding LDAP entry", ldap_attrs=list(attributes))
            try:
                await connection.add(entry, timeout=self._timeout)
            except bonsai.AlreadyExists:
                logger.debug("LDAP entry already exists")
                return False
        return True

    async def delete(self, dn: str) -> None:
        """Delete an entry.

        Parameters
        ----------
        dn
            Distinguished name of the entry.

        Raises
        ------
        DirectoryError
            Raised if the entry could not be deleted.
        """
        connection = await self._connections.get_connection(self._config)
        logger = self._logger.bind(ldap_dn=dn)
        async with self._handle_errors(connection, "delete", logger):
            logger.debug("Deleting LDAP entry")
            await connection.delete(dn, timeout=self._timeout)

    async def modify(
        self, dn: str, attribute: str, op: LDAPModOp, values: list[str]
    ) -> None:
        """Add or remove values of one attribute of an entry.

        Parameters
        ----------
        dn
            Distinguished name of the entry.
        attribute
            Attribute to change.
        op
            Either `bonsai.LDAPModOp.ADD` or `bonsai.LDAPModOp.DELETE`.
        values
            Values to add or remove.

        Raises
        ------
        DirectoryError
            Raised if the entry could not be modified.
        """
        connection = await self._connections.get_connection(self._config)
        logger = self._logger.bind(ldap_dn=dn, ldap_attr=attribute)
        entry = LDAPEntry(dn, connection)
        entry.change_attribute(attribute, op, *values)
        async with self._handle_errors(connection, "modify", logger):
            logger.debug("Modifying LDAP entry", ldap_op=op.name)
            await entry.modify(timeout=self._timeout)

    async def search(
        self,
        search_base: str,
        options: SearchOptions,
        *,
        connection: AIOLDAPConnection | None = None,
    ) -> list[DirectoryEntry]:
        """Perform an LDAP search and buffer every result.

        Parameters
        ----------
        search_base
            Base DN of the search.
        options
            Filter, scope, and attributes of the search.
        connection
            Connection to search over.  Defaults to the cached search-user
            connection of the directory.

        Returns
        -------
        list of dict
            Matching entries in the order the server returned them.

        Raises
        ------
        DirectoryError
            Raised if the search failed for any reason, including a non-zero
            result code, a timeout, or more results than the size limit.  No
            partial results are returned.
        """
        if not connection:
            connection = await self._connections.get_connection(self._config)
        logger = self._logger.bind(
            ldap_attrs=options.attributes,
            ldap_base=search_base,
            ldap_scope=options.scope.value,
            ldap_search=options.filter,
        )
        async with self._handle_errors(connection, "search", logger):
            logger.debug("Querying LDAP")
            results = await connection.search(
                base=search_base,
                scope=options.scope.to_bonsai(),
                filter_exp=options.filter,
                attrlist=options.attributes or None,
                timeout=self._timeout,
                sizelimit=self._size_limit,
            )
        entries = [_to_entry(r) for r in results]
        logger.debug("LDAP search complete", count=len(entries))
        return entries

    @asynccontextmanager
    async def _handle_errors(
        self, connection: AIOLDAPConnection, action: str, logger: BoundLogger
    ) -> AsyncIterator[None]:
        """Translate bonsai exceptions raised inside the block.

        A connection that timed out or lost its server is closed and dropped
        from the cache so that the next operation reconnects.
        """
        directory = self._config.id
        try:
            yield
        except bonsai.SizeLimitError as e:
            msg = f"LDAP {action} exceeded size limit of {self._size_limit}"
            logger.error(f"Cannot {action} LDAP", error=msg)
            raise DirectoryError(msg, directory) from e
        except (bonsai.TimeoutError, asyncio.TimeoutError) as e:
            self._connections.invalidate(self._config, connection)
            msg = f"LDAP {action} timed out after {self._timeout}s"
            logger.error(f"Cannot {action} LDAP", error=msg)
            raise DirectoryError(msg, directory) from e
        except bonsai.ConnectionError as e:
            self._connections.invalidate(self._config, connection)
            logger.error(f"Cannot {action} LDAP", error=str(e))
            msg = f"Lost connection to directory: {e!s}"
            raise DirectoryError(msg, directory) from e
        except bonsai.LDAPError as e:
            logger.exception(f"Cannot {action} LDAP", error=str(e))
            msg = f"Error during LDAP {action}: {e!s}"
            raise DirectoryError(msg, directory) from e
