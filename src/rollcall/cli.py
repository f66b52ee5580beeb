"""Administrative command-line interface."""

from __future__ import annotations

import sys
from pathlib import Path

import click
import structlog
import uvicorn
from safir.asyncio import run_with_asyncio
from safir.click import display_help

from .dependencies.config import config_dependency
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DirectoryError,
)
from .factory import Factory
from .main import create_openapi

__all__ = [
    "check_directory",
    "help",
    "main",
    "openapi_schema",
    "run",
]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s")
def main() -> None:
    """Administrative command-line interface for rollcall."""


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic)


@main.command()
@click.argument("directory_id")
@click.option(
    "--config-path",
    envvar="ROLLCALL_CONFIG_PATH",
    type=click.Path(path_type=Path),
    default=None,
    help="Application configuration file.",
)
@run_with_asyncio
async def check_directory(
    directory_id: str, *, config_path: Path | None
) -> None:
    """Bind to a directory as its search user and count its schools."""
    if config_path:
        config_dependency.set_config_path(config_path)
    config = await config_dependency()
    logger = structlog.get_logger("rollcall")
    try:
        directory = config.get_directory(directory_id)
        async with Factory.standalone(config) as factory:
            directory_service = factory.create_directory_service()
            schools = await directory_service.list_schools(directory)
    except (AuthenticationError, ConfigurationError, DirectoryError) as e:
        raise click.ClickException(str(e)) from e
    logger.debug("Checked directory", directory=directory_id)
    click.echo(f"{directory_id}: {len(schools)} schools")


@main.command()
@click.option(
    "--output",
    default=None,
    type=click.Path(path_type=Path),
    help="Output path (output to stdout if not given).",
)
def openapi_schema(*, output: Path | None) -> None:
    """Generate the OpenAPI schema."""
    schema = create_openapi()
    if output:
        output.parent.mkdir(exist_ok=True)
        output.write_text(schema)
    else:
        sys.stdout.write(schema)


@main.command()
@click.option(
    "--port", default=8080, type=int, help="Port to run the application on."
)
def run(*, port: int) -> None:
    """Run the application (for testing only)."""
    uvicorn.run(
        "rollcall.main:create_app",
        factory=True,
        port=port,
        reload=True,
        reload_dirs=["src"],
    )
