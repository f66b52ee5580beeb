"""Routes for health checks and application metadata.

These are mounted at the root rather than under the path prefix and are only
meant to be reached from inside the cluster.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from safir.metadata import Metadata, get_metadata
from safir.slack.webhook import SlackRouteErrorHandler

from ..dependencies.context import RequestContext, context_dependency
from ..models.health import HealthCheck, HealthStatus

router = APIRouter(route_class=SlackRouteErrorHandler)

__all__ = ["router"]


@router.get(
    "/",
    description="Name, version, and source of the running Rollcall.",
    response_model_exclude_none=True,
    summary="Application metadata",
    tags=["internal"],
)
async def get_index() -> Metadata:
    return get_metadata(package_name="rollcall", application_name="rollcall")


@router.get(
    "/health",
    description=(
        "Bind to every configured directory as its search user, reusing"
        " cached connections. Fails with a 502 error if any directory cannot"
        " be reached."
    ),
    summary="Check directory connections",
    tags=["internal"],
)
async def get_health(
    *,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> HealthCheck:
    health_service = context.factory.create_health_check_service()
    checked = await health_service.check()
    return HealthCheck(status=HealthStatus.HEALTHY, directories=checked)
