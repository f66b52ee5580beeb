"""Data models for directory searches and group membership."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from bonsai import LDAPSearchScope
from pydantic import BaseModel, ConfigDict, Field

from ..constants import TEAM_GROUP_PREFIX

DirectoryEntry = dict[str, Any]
"""An entry returned by a directory search.

Maps attribute names to lists of values, plus the ``dn`` key holding the
distinguished name of the entry. The contents are never interpreted by the
directory service.
"""

__all__ = [
    "DirectoryEntry",
    "DirectoryGroup",
    "DirectoryQuery",
    "DirectoryUser",
    "DirectoryVariant",
    "SearchOptions",
    "SearchScope",
    "Team",
]


class DirectoryVariant(str, Enum):
    """Flavor of directory server, which determines its schema."""

    general = "general"
    univention = "univention"


class SearchScope(str, Enum):
    """Scope of a directory search."""

    base = "base"
    one = "one"
    sub = "sub"

    def to_bonsai(self) -> LDAPSearchScope:
        """Convert to the corresponding bonsai search scope."""
        match self:
            case SearchScope.base:
                return LDAPSearchScope.BASE
            case SearchScope.one:
                return LDAPSearchScope.ONELEVEL
            case SearchScope.sub:
                return LDAPSearchScope.SUB


class SearchOptions(BaseModel):
    """Options for a directory search."""

    model_config = ConfigDict(frozen=True)

    filter: Annotated[
        str | None,
        Field(
            title="Search filter",
            description="LDAP filter expression, or `None` to match anything",
        ),
    ] = None

    scope: Annotated[SearchScope, Field(title="Search scope")] = (
        SearchScope.sub
    )

    attributes: Annotated[
        list[str],
        Field(
            title="Attributes",
            description="Attributes to retrieve, or empty for all of them",
        ),
    ] = []


class DirectoryQuery(BaseModel):
    """A search base and the options to search it with."""

    model_config = ConfigDict(frozen=True)

    search_base: str
    """Distinguished name of the root of the searched subtree."""

    options: SearchOptions
    """Filter, scope, and attributes of the search."""


class Team(BaseModel):
    """A team of users in the school cloud."""

    id: Annotated[str, Field(title="Team ID", min_length=1)]

    name: Annotated[str, Field(title="Team name")]


class DirectoryUser(BaseModel):
    """A user with an entry in a directory."""

    username: Annotated[str, Field(title="Username", min_length=1)]

    dn: Annotated[
        str, Field(title="Distinguished name of the user", min_length=1)
    ]


class DirectoryGroup(BaseModel):
    """A directory group that mirrors the membership of a team."""

    name: str
    """Common name of the group."""

    description: str
    """Description of the group, the name of the team."""

    @classmethod
    def from_team(cls, team: Team) -> DirectoryGroup:
        """Derive the group for a team.

        The group name depends only on the team ID so that renaming a team
        does not orphan its group.

        Parameters
        ----------
        team
            The team to mirror.

        Returns
        -------
        DirectoryGroup
            Corresponding directory group.
        """
        return cls(name=f"{TEAM_GROUP_PREFIX}{team.id}", description=team.name)
