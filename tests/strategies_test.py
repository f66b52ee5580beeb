"""Tests for the queries built for each flavor of directory."""

from __future__ import annotations

import structlog

from rollcall.config import Config
from rollcall.models.directory import (
    DirectoryQuery,
    SearchOptions,
    SearchScope,
)
from rollcall.strategies import (
    GeneralStrategy,
    UniventionStrategy,
    build_strategy,
)


def test_build_strategy(config: Config) -> None:
    logger = structlog.get_logger("rollcall")
    strategy = build_strategy(config.get_directory("s1"), logger)
    assert isinstance(strategy, GeneralStrategy)
    strategy = build_strategy(config.get_directory("ucs"), logger)
    assert isinstance(strategy, UniventionStrategy)


def test_general(config: Config) -> None:
    logger = structlog.get_logger("rollcall")
    strategy = GeneralStrategy(config.get_directory("s1"), logger)
    root = "dc=school,dc=example"

    assert strategy.groups_dn == f"ou=groups,{root}"
    assert strategy.build_schools_query() == DirectoryQuery(
        search_base=root,
        options=SearchOptions(
            filter="(objectClass=organizationalUnit)",
            scope=SearchScope.one,
            attributes=["ou", "description"],
        ),
    )

    query = strategy.build_users_query("gym")
    assert query.search_base == f"ou=gym,{root}"
    assert query.options.filter == "(objectClass=inetOrgPerson)"
    assert query.options.scope == SearchScope.sub

    query = strategy.build_classes_query("gym")
    assert query.search_base == f"ou=classes,ou=gym,{root}"
    assert query.options.filter == "(objectClass=groupOfNames)"

    # Special characters in school names are escaped in the DN.
    query = strategy.build_users_query("a,b")
    assert query.search_base == f"ou=a\\,b,{root}"


def test_univention(config: Config) -> None:
    logger = structlog.get_logger("rollcall")
    strategy = UniventionStrategy(config.get_directory("ucs"), logger)
    root = "dc=ucs,dc=example"

    assert strategy.groups_dn == f"cn=groups,{root}"
    query = strategy.build_schools_query()
    assert query.search_base == root
    assert query.options.filter == "(objectClass=ucsschoolOrganizationalUnit)"

    query = strategy.build_users_query("gym")
    assert query.search_base == f"cn=users,{root}"
    assert query.options.filter == (
        "(&(objectClass=ucsschoolType)(ucsschoolSchool=gym))"
    )
    assert "ucsschoolRole" in query.options.attributes

    # Filter metacharacters in school names are escaped.
    query = strategy.build_users_query("a*b")
    assert "a*b" not in query.options.filter

    query = strategy.build_classes_query("gym")
    assert query.search_base == (
        f"cn=klassen,cn=schueler,cn=groups,ou=gym,{root}"
    )
    assert query.options.scope == SearchScope.one
