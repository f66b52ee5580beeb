"""Request models for the Rollcall API."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel

__all__ = [
    "LoginRequest",
    "TeamMembershipRequest",
]


class LoginRequest(BaseModel):
    """Credentials for a login delegated to a directory."""

    username: Annotated[
        str,
        Field(
            title="Fully-qualified username",
            description="Distinguished name of the user to bind as",
            examples=["uid=someuser,cn=users,dc=example,dc=org"],
            min_length=1,
        ),
    ]

    password: Annotated[SecretStr, Field(title="Password")]


class TeamMembershipRequest(BaseModel):
    """Request to add a user to the directory group of a team."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    team_name: Annotated[
        str,
        Field(
            title="Team name",
            description="Used as the description of a newly-created group",
            examples=["Robotics club"],
        ),
    ]

    username: Annotated[str, Field(title="Username", min_length=1)]

    user_dn: Annotated[
        str,
        Field(
            title="Distinguished name of the user",
            examples=["uid=someuser,cn=users,dc=example,dc=org"],
            min_length=1,
        ),
    ]
