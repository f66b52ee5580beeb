"""Route handlers for the ``/api/v1`` API.

All the route handlers are intentionally defined in a single file to encourage
the implementation to be very short.  All the business logic is defined in
`~rollcall.services.directory.DirectoryService`.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path
from safir.models import ErrorModel
from safir.slack.webhook import SlackRouteErrorHandler

from ..dependencies.context import RequestContext, context_dependency
from ..models.api import LoginRequest, TeamMembershipRequest
from ..models.directory import DirectoryUser, Team

__all__ = ["router"]

router = APIRouter(route_class=SlackRouteErrorHandler)

_not_configured = {
    404: {"description": "Directory not configured", "model": ErrorModel},
}

DirectoryId = Annotated[
    str,
    Path(
        title="Directory",
        description="Identifier of the directory configuration",
        examples=["school-1"],
        min_length=1,
    ),
]

School = Annotated[
    str,
    Path(
        title="School",
        description="Name of the school as known to the directory",
        examples=["gymnasium-nord"],
        min_length=1,
    ),
]

TeamId = Annotated[
    str,
    Path(
        title="Team",
        description="Identifier of the team",
        examples=["5c3f2a4b1e8d"],
        min_length=1,
    ),
]


@router.get(
    "/directories/{directory_id}/schools",
    responses=_not_configured,
    summary="List schools",
    tags=["roster"],
)
async def get_schools(
    directory_id: DirectoryId,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> list[dict[str, Any]]:
    directory = context.get_directory(directory_id)
    directory_service = context.factory.create_directory_service()
    return await directory_service.list_schools(directory)


@router.get(
    "/directories/{directory_id}/schools/{school}/users",
    responses=_not_configured,
    summary="List users of a school",
    tags=["roster"],
)
async def get_users(
    directory_id: DirectoryId,
    school: School,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> list[dict[str, Any]]:
    directory = context.get_directory(directory_id)
    context.rebind_logger(school=school)
    directory_service = context.factory.create_directory_service()
    return await directory_service.list_users(directory, school)


@router.get(
    "/directories/{directory_id}/schools/{school}/classes",
    responses=_not_configured,
    summary="List classes of a school",
    tags=["roster"],
)
async def get_classes(
    directory_id: DirectoryId,
    school: School,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> list[dict[str, Any]]:
    directory = context.get_directory(directory_id)
    context.rebind_logger(school=school)
    directory_service = context.factory.create_directory_service()
    return await directory_service.list_classes(directory, school)


@router.post(
    "/directories/{directory_id}/login",
    description=(
        "Check a username and password against the directory and return the"
        " directory entry of the user"
    ),
    responses={
        401: {"description": "Wrong credentials", "model": ErrorModel},
        404: {
            "description": "Directory not configured or user not found",
            "model": ErrorModel,
        },
    },
    summary="Log in via directory",
    tags=["login"],
)
async def post_login(
    directory_id: DirectoryId,
    login: LoginRequest,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> dict[str, Any]:
    directory = context.get_directory(directory_id)
    context.rebind_logger(user=login.username)
    directory_service = context.factory.create_directory_service()
    return await directory_service.authenticate(
        directory, login.username, login.password.get_secret_value()
    )


@router.post(
    "/directories/{directory_id}/teams/{team_id}/members",
    responses=_not_configured,
    status_code=204,
    summary="Add user to team group",
    tags=["teams"],
)
async def post_team_member(
    directory_id: DirectoryId,
    team_id: TeamId,
    membership: TeamMembershipRequest,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> None:
    directory = context.get_directory(directory_id)
    context.rebind_logger(team=team_id, user=membership.username)
    directory_service = context.factory.create_directory_service()
    user = DirectoryUser(username=membership.username, dn=membership.user_dn)
    team = Team(id=team_id, name=membership.team_name)
    await directory_service.add_user_to_group(directory, user, team)


@router.delete(
    "/directories/{directory_id}/teams/{team_id}/members/{user_dn}",
    responses=_not_configured,
    status_code=204,
    summary="Remove user from team group",
    tags=["teams"],
)
async def delete_team_member(
    directory_id: DirectoryId,
    team_id: TeamId,
    user_dn: Annotated[
        str,
        Path(
            title="User DN",
            description="Distinguished name of the user",
            examples=["uid=someuser,cn=users,dc=example,dc=org"],
            min_length=1,
        ),
    ],
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> None:
    directory = context.get_directory(directory_id)
    context.rebind_logger(team=team_id, user=user_dn)
    directory_service = context.factory.create_directory_service()
    user = DirectoryUser(username=user_dn, dn=user_dn)
    team = Team(id=team_id, name="")
    await directory_service.remove_user_from_group(directory, user, team)
