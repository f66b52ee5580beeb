"""Constants for Rollcall."""

__all__ = [
    "CONFIG_PATH",
    "DEFAULT_USER_CONTAINER",
    "TEAM_GROUP_PREFIX",
]

CONFIG_PATH = "/etc/rollcall/rollcall.yaml"
"""Default configuration path."""

DEFAULT_USER_CONTAINER = "cn=users"
"""Container under the root path holding the search user.

Used to derive the bind DN of the search user when no explicit credentials
are given.
"""

TEAM_GROUP_PREFIX = "schulcloud-"
"""Prefix of the names of directory groups that mirror teams."""
