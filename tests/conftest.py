"""Test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
import respx
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from safir.testing.slack import MockSlackWebhook, mock_slack_webhook

from rollcall.config import Config
from rollcall.factory import Factory
from rollcall.main import create_app

from .support.config import configure
from .support.constants import TEST_HOSTNAME
from .support.ldap import MockLDAP, patch_ldap


@pytest_asyncio.fixture
async def app(
    mock_ldap: MockLDAP, mock_slack: MockSlackWebhook | None
) -> AsyncIterator[FastAPI]:
    """Return a configured test application.

    Wraps the application in a lifespan manager so that startup and shutdown
    events are sent during test execution.
    """
    app = create_app()
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an ``httpx.AsyncClient`` configured to talk to the test app."""
    async with AsyncClient(
        base_url=f"https://{TEST_HOSTNAME}", transport=ASGITransport(app=app)
    ) as client:
        yield client


@pytest.fixture
def config() -> Config:
    """Set up and return the default test configuration."""
    return configure("base")


@pytest_asyncio.fixture
async def factory(
    config: Config, mock_ldap: MockLDAP
) -> AsyncIterator[Factory]:
    """Return a component factory with its own process context."""
    async with Factory.standalone(config) as factory:
        yield factory


@pytest.fixture
def mock_ldap(config: Config) -> Iterator[MockLDAP]:
    """Replace the bonsai LDAP API with a mock class."""
    yield from patch_ldap(config)


@pytest.fixture
def mock_slack(
    config: Config, respx_mock: respx.Router
) -> MockSlackWebhook | None:
    """Mock a Slack webhook."""
    if not config.slack_webhook:
        return None
    webhook = config.slack_webhook.get_secret_value()
    return mock_slack_webhook(webhook, respx_mock)
