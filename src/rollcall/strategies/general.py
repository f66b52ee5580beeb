"""Strategy for general LDAP directories."""

from __future__ import annotations

from bonsai.utils import escape_attribute_value

from ..models.directory import DirectoryQuery, SearchOptions, SearchScope
from .base import DirectoryStrategy

__all__ = ["GeneralStrategy"]


class GeneralStrategy(DirectoryStrategy):
    """Strategy for directories using standard object classes.

    Each school is an ``organizationalUnit`` directly below the root.  Users
    of a school are ``inetOrgPerson`` entries anywhere below their school and
    classes are ``groupOfNames`` entries in the ``ou=classes`` container of
    the school.  Team groups are ``groupOfNames`` entries in ``ou=groups``.
    """

    group_object_class = "groupOfNames"
    group_member_attr = "member"

    @property
    def groups_dn(self) -> str:
        return f"ou=groups,{self._config.root_path}"

    def build_schools_query(self) -> DirectoryQuery:
        return DirectoryQuery(
            search_base=self._config.root_path,
            options=SearchOptions(
                filter="(objectClass=organizationalUnit)",
                scope=SearchScope.one,
                attributes=["ou", "description"],
            ),
        )

    def build_users_query(self, school: str) -> DirectoryQuery:
        return DirectoryQuery(
            search_base=self._school_dn(school),
            options=SearchOptions(
                filter="(objectClass=inetOrgPerson)",
                scope=SearchScope.sub,
                attributes=["uid", "givenName", "sn", "mail", "cn"],
            ),
        )

    def build_classes_query(self, school: str) -> DirectoryQuery:
        return DirectoryQuery(
            search_base=f"ou=classes,{self._school_dn(school)}",
            options=SearchOptions(
                filter="(objectClass=groupOfNames)",
                scope=SearchScope.sub,
                attributes=["cn", "description", "member"],
            ),
        )

    def _school_dn(self, school: str) -> str:
        ou = escape_attribute_value(school)
        return f"ou={ou},{self._config.root_path}"
