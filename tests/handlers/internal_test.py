"""Tests for the internal routes."""

from __future__ import annotations

import bonsai
import pytest
from httpx import AsyncClient

from ..support.ldap import MockLDAP


@pytest.mark.asyncio
async def test_get_index(client: AsyncClient) -> None:
    r = await client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["name"] == "rollcall"
    assert isinstance(data["version"], str)


@pytest.mark.asyncio
async def test_health(client: AsyncClient, mock_ldap: MockLDAP) -> None:
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "directories": ["s1", "ucs"]}
    assert len(mock_ldap.binds) == 2

    # Cached connections are reused.
    r = await client.get("/health")
    assert r.status_code == 200
    assert len(mock_ldap.binds) == 2


@pytest.mark.asyncio
async def test_health_failure(
    client: AsyncClient, mock_ldap: MockLDAP
) -> None:
    mock_ldap.fail_next("bind", bonsai.ConnectionError("Can't contact"))
    r = await client.get("/health")
    assert r.status_code == 502
    assert r.json()["detail"][0]["type"] == "directory_error"
