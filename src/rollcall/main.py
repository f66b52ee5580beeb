"""Application definition for Rollcall."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from importlib.metadata import version

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from safir.fastapi import ClientRequestError, client_request_error_handler
from safir.logging import configure_uvicorn_logging
from safir.models import ErrorModel
from safir.slack.webhook import SlackRouteErrorHandler

from .dependencies.config import config_dependency
from .dependencies.context import context_dependency
from .exceptions import DirectoryError
from .handlers import api, internal

__all__ = ["create_app", "create_openapi"]


async def directory_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Report a failed LDAP operation as a bad gateway error.

    The failure has already been logged, and reported to Slack if configured,
    by the time this handler runs.
    """
    error = {"msg": str(exc), "type": "directory_error"}
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=jsonable_encoder({"detail": [error]}),
    )


def create_app(
    *,
    load_config: bool = True,
    extra_startup: Callable[[FastAPI], Awaitable[None]] | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    This is in a function rather than using a global variable (as is more
    typical for FastAPI) because the route prefix and Slack alerting depend
    on configuration settings and we therefore want to recreate the
    application between tests.

    Parameters
    ----------
    load_config
        If set to `False`, do not try to load the configuration and mount the
        API under the default prefix. This is used primarily for OpenAPI
        schema generation, where constructing the app is required but the
        configuration won't matter.
    extra_startup
        If provided, an additional coroutine to run as part of the startup
        section of the lifespan context manager, used by the test suite.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        config = config_dependency.config()
        await context_dependency.initialize(config)
        if extra_startup:
            await extra_startup(app)

        yield

        await context_dependency.aclose()

    # Load configuration if it is available to us and configure Uvicorn
    # logging.
    config = None
    path_prefix = "/rollcall"
    if load_config:
        config = config_dependency.config()
        path_prefix = config.path_prefix
        configure_uvicorn_logging()

    app = FastAPI(
        title="Rollcall",
        description=(
            "Rollcall connects the school cloud to the directory servers of"
            " schools. It delegates logins to a directory, lists the schools,"
            " users, and classes it holds, and mirrors team membership into"
            " directory groups."
        ),
        version=version("rollcall"),
        tags_metadata=[
            {
                "name": "login",
                "description": "Authentication delegated to a directory.",
            },
            {
                "name": "roster",
                "description": "Schools, users, and classes of a directory.",
            },
            {
                "name": "teams",
                "description": "Directory groups mirroring team membership.",
            },
            {
                "name": "internal",
                "description": "Internal routes used by health checks.",
            },
        ],
        openapi_url=f"{path_prefix}/openapi.json",
        docs_url=f"{path_prefix}/docs",
        redoc_url=f"{path_prefix}/redoc",
        lifespan=lifespan,
    )

    # Add all of the routes.
    app.include_router(
        api.router,
        prefix=f"{path_prefix}/api/v1",
        responses={
            502: {"description": "Directory failure", "model": ErrorModel},
        },
    )
    app.include_router(internal.router)

    # Configure Slack alerts.
    if config and config.slack_alerts and config.slack_webhook:
        logger = structlog.get_logger("rollcall")
        SlackRouteErrorHandler.initialize(
            config.slack_webhook.get_secret_value(), "Rollcall", logger
        )
        logger.debug("Initialized Slack webhook")

    # Handle exceptions descended from ClientRequestError and failures of the
    # directory servers.
    app.exception_handler(ClientRequestError)(client_request_error_handler)
    app.exception_handler(DirectoryError)(directory_error_handler)

    return app


def create_openapi() -> str:
    """Generate the OpenAPI schema.

    Returns
    -------
    str
        OpenAPI schema as serialized JSON.
    """
    app = create_app(load_config=False)
    schema = get_openapi(
        title=app.title,
        description=app.description,
        version=app.version,
        routes=app.routes,
    )
    return json.dumps(schema)
