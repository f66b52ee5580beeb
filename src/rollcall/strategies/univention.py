"""Strategy for UCS@school directories."""

from __future__ import annotations

from bonsai.utils import escape_attribute_value, escape_filter_exp

from ..models.directory import DirectoryQuery, SearchOptions, SearchScope
from .base import DirectoryStrategy

__all__ = ["UniventionStrategy"]


class UniventionStrategy(DirectoryStrategy):
    """Strategy for Univention Corporate Server with UCS@school.

    Schools are ``ucsschoolOrganizationalUnit`` entries.  All users live in
    ``cn=users`` below the root and name their schools in the multi-valued
    ``ucsschoolSchool`` attribute.  Classes are the groups in the
    ``cn=klassen,cn=schueler,cn=groups`` container of the school.  Team groups
    are ``groupOfUniqueNames`` entries in ``cn=groups`` below the root.
    """

    group_object_class = "groupOfUniqueNames"
    group_member_attr = "uniqueMember"

    @property
    def groups_dn(self) -> str:
        return f"cn=groups,{self._config.root_path}"

    def build_schools_query(self) -> DirectoryQuery:
        return DirectoryQuery(
            search_base=self._config.root_path,
            options=SearchOptions(
                filter="(objectClass=ucsschoolOrganizationalUnit)",
                scope=SearchScope.sub,
                attributes=["ou", "displayName"],
            ),
        )

    def build_users_query(self, school: str) -> DirectoryQuery:
        search = (
            "(&(objectClass=ucsschoolType)"
            f"(ucsschoolSchool={escape_filter_exp(school)}))"
        )
        return DirectoryQuery(
            search_base=f"cn=users,{self._config.root_path}",
            options=SearchOptions(
                filter=search,
                scope=SearchScope.sub,
                attributes=[
                    "uid",
                    "givenName",
                    "sn",
                    "mailPrimaryAddress",
                    "ucsschoolRole",
                    "ucsschoolSchool",
                ],
            ),
        )

    def build_classes_query(self, school: str) -> DirectoryQuery:
        ou = escape_attribute_value(school)
        container = f"cn=klassen,cn=schueler,cn=groups,ou={ou}"
        return DirectoryQuery(
            search_base=f"{container},{self._config.root_path}",
            options=SearchOptions(
                filter="(objectClass=univentionGroup)",
                scope=SearchScope.one,
                attributes=["cn", "description", "uniqueMember"],
            ),
        )
