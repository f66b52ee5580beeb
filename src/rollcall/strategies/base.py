"""Base class for directory strategies."""

from __future__ import annotations

from abc import ABCMeta, abstractmethod

from bonsai import LDAPModOp
from bonsai.utils import escape_attribute_value, escape_filter_exp
from structlog.stdlib import BoundLogger

from ..config import DirectoryConfig
from ..models.directory import (
    DirectoryGroup,
    DirectoryQuery,
    DirectoryUser,
    SearchOptions,
    SearchScope,
)
from ..storage.ldap import DirectoryStorage

__all__ = ["DirectoryStrategy"]


class DirectoryStrategy(metaclass=ABCMeta):
    """Queries and group updates for one flavor of directory server.

    Each `~rollcall.models.directory.DirectoryVariant` has one subclass,
    which knows where that flavor keeps schools, users, and classes and how
    it represents groups.  Group membership handling is shared: subclasses
    only say where team groups live and which object class and member
    attribute they use.

    Parameters
    ----------
    config
        Configuration of the directory server.
    logger
        Logger to use.
    """

    group_object_class: str
    """Object class of the groups that mirror teams."""

    group_member_attr: str
    """Attribute of those groups holding the member DNs."""

    def __init__(self, config: DirectoryConfig, logger: BoundLogger) -> None:
        self._config = config
        self._logger = logger.bind(
            directory=config.id, directory_variant=config.provider.value
        )

    @property
    @abstractmethod
    def groups_dn(self) -> str:
        """Distinguished name of the container holding team groups."""

    @abstractmethod
    def build_schools_query(self) -> DirectoryQuery:
        """Build the query for every school in the directory."""

    @abstractmethod
    def build_users_query(self, school: str) -> DirectoryQuery:
        """Build the query for every user of a school.

        Parameters
        ----------
        school
            Name of the school as known to the directory.
        """

    @abstractmethod
    def build_classes_query(self, school: str) -> DirectoryQuery:
        """Build the query for every class of a school.

        Parameters
        ----------
        school
            Name of the school as known to the directory.
        """

    async def add_user_to_group(
        self,
        storage: DirectoryStorage,
        user: DirectoryUser,
        group: DirectoryGroup,
    ) -> None:
        """Add a user to a group, creating the group if necessary.

        Parameters
        ----------
        storage
            Storage layer of the directory.
        user
            User to add.
        group
            Group to add them to.

        Raises
        ------
        DirectoryError
            Raised if the directory could not be searched or updated.
        """
        logger = self._logger.bind(group=group.name, user=user.username)
        members = await self._get_members(storage, group)
        group_dn = self._group_dn(group)
        if members is None:
            logger.info("Creating group with initial member")
            created = await storage.add(
                group_dn,
                {
                    "objectClass": ["top", self.group_object_class],
                    "cn": [group.name],
                    "description": [group.description],
                    self.group_member_attr: [user.dn],
                },
            )
            if created:
                return

            # Another request created the group after it was searched for.
            logger.debug("Group created concurrently")
        elif user.dn.lower() in members:
            logger.debug("User already member of group")
            return
        logger.info("Adding user to group")
        await storage.modify(
            group_dn, self.group_member_attr, LDAPModOp.ADD, [user.dn]
        )

    async def remove_user_from_group(
        self,
        storage: DirectoryStorage,
        user: DirectoryUser,
        group: DirectoryGroup,
    ) -> None:
        """Remove a user from a group, deleting the group if now empty.

        Groups of names must have at least one member, so removing the last
        member deletes the group.

        Parameters
        ----------
        storage
            Storage layer of the directory.
        user
            User to remove.
        group
            Group to remove them from.

        Raises
        ------
        DirectoryError
            Raised if the directory could not be searched or updated.
        """
        logger = self._logger.bind(group=group.name, user=user.username)
        members = await self._get_members(storage, group)
        group_dn = self._group_dn(group)
        if members is None or user.dn.lower() not in members:
            logger.debug("User not member of group")
        elif len(members) == 1:
            logger.info("Removing last member, deleting group")
            await storage.delete(group_dn)
        else:
            logger.info("Removing user from group")
            await storage.modify(
                group_dn, self.group_member_attr, LDAPModOp.DELETE, [user.dn]
            )

    async def _get_members(
        self, storage: DirectoryStorage, group: DirectoryGroup
    ) -> set[str] | None:
        """Get the lowercased member DNs of a group.

        Returns `None` if the group does not exist.
        """
        options = SearchOptions(
            filter=(
                f"(&(objectClass={self.group_object_class})"
                f"(cn={escape_filter_exp(group.name)}))"
            ),
            scope=SearchScope.one,
            attributes=["cn", self.group_member_attr],
        )
        results = await storage.search(self.groups_dn, options)
        if not results:
            return None
        members = results[0].get(self.group_member_attr, [])
        return {str(m).lower() for m in members}

    def _group_dn(self, group: DirectoryGroup) -> str:
        return f"cn={escape_attribute_value(group.name)},{self.groups_dn}"
