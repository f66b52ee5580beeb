"""Tests for the command-line interface.

Be careful when writing tests in this framework because the click command
handling code spawns its own event loop when needed.  None of these tests can
therefore be async.
"""

from __future__ import annotations

import json
from pathlib import Path

import bonsai
from click.testing import CliRunner

from rollcall.cli import main
from rollcall.config import Config

from .support.config import config_path
from .support.ldap import MockLDAP


def test_help() -> None:
    runner = CliRunner()

    result = runner.invoke(main, ["-h"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Commands:" in result.output

    result = runner.invoke(main, ["help"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Commands:" in result.output

    result = runner.invoke(
        main, ["help", "check-directory"], catch_exceptions=False
    )
    assert result.exit_code == 0
    assert "Commands:" not in result.output
    assert "DIRECTORY_ID" in result.output

    result = runner.invoke(
        main, ["help", "unknown-command"], catch_exceptions=False
    )
    assert result.exit_code != 0
    assert "Unknown help topic unknown-command" in result.output


def test_check_directory(config: Config, mock_ldap: MockLDAP) -> None:
    root = "dc=school,dc=example"
    mock_ldap.add_entries_for_test(
        root,
        "(objectClass=organizationalUnit)",
        [{"dn": f"ou=gym,{root}"}, {"dn": f"ou=rs,{root}"}],
    )
    runner = CliRunner()

    result = runner.invoke(
        main,
        ["check-directory", "s1", "--config-path", str(config_path("base"))],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert "s1: 2 schools\n" in result.output
    assert mock_ldap.binds[0][1] == f"uid=admin,cn=users,{root}"
    assert mock_ldap.connections[0].closed


def test_check_directory_errors(config: Config, mock_ldap: MockLDAP) -> None:
    runner = CliRunner()

    result = runner.invoke(main, ["check-directory", "unknown"])
    assert result.exit_code == 1
    assert "Directory unknown not configured" in result.output

    mock_ldap.fail_next("bind", bonsai.ConnectionError("Can't contact"))
    result = runner.invoke(main, ["check-directory", "s1"])
    assert result.exit_code == 1
    assert "Cannot bind to directory" in result.output


def test_openapi_schema(tmp_path: Path) -> None:
    runner = CliRunner()
    output_path = tmp_path / "openapi.json"

    result = runner.invoke(
        main,
        ["openapi-schema", "--output", str(output_path)],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    schema = json.loads(output_path.read_text())
    assert schema["info"]["title"] == "Rollcall"
    assert "/rollcall/api/v1/directories/{directory_id}/login" in (
        schema["paths"]
    )

    result = runner.invoke(main, ["openapi-schema"], catch_exceptions=False)
    assert result.exit_code == 0
    assert json.loads(result.output) == schema
