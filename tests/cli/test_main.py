"""Tests for the ``openclaw-tescmd`` CLI commands and exit codes."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from openclaw_tescmd.cli.main import EXIT_FAILURE, EXIT_WAKE_REQUIRED, _parse_params, cli, main
from openclaw_tescmd.models import (
    Command,
    Failure,
    FailureKind,
    NodeStatus,
    RequiresWakeConfirmation,
    Success,
)

pytestmark = pytest.mark.usefixtures("cli_env")


def _stack(*, outcome: Any = None, status: NodeStatus | None = None) -> MagicMock:
    stack = MagicMock()
    stack.dispatcher.dispatch = AsyncMock(return_value=outcome)
    stack.dispatcher.status = AsyncMock(return_value=status)
    stack.aclose = AsyncMock()
    return stack


def _run(args: list[str], stack: MagicMock) -> tuple[Any, MagicMock]:
    with patch("openclaw_tescmd.cli.main.build_dispatcher", return_value=stack) as build:
        result = CliRunner().invoke(cli, args)
    return result, build


class TestInvoke:
    def test_success_json(self) -> None:
        stack = _stack(outcome=Success(value={"battery_level": 72}))
        result, _ = _run(["--format", "json", "invoke", "battery.get"], stack)

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["ok"] is True
        assert payload["command"] == "battery.get"
        assert payload["data"] == {"battery_level": 72}
        assert payload["fallback"] is False
        stack.aclose.assert_awaited_once()

    def test_params_forwarded(self) -> None:
        stack = _stack(outcome=Success(value="ok"))
        result, _ = _run(
            ["invoke", "charge.set_limit", "--params", '{"percent": 80}', "--format", "json"],
            stack,
        )
        assert result.exit_code == 0, result.output
        stack.dispatcher.dispatch.assert_awaited_once_with(
            Command(method="charge.set_limit", params={"percent": 80})
        )

    def test_wake_flag_sets_allow_wake(self) -> None:
        stack = _stack(outcome=Success(value={"result": True}, fallback=True))
        result, _ = _run(["invoke", "door.lock", "--wake", "--format", "json"], stack)
        assert result.exit_code == 0, result.output
        command = stack.dispatcher.dispatch.await_args.args[0]
        assert command.params == {"allow_wake": True}
        assert json.loads(result.output)["fallback"] is True

    def test_no_fallback_flag(self) -> None:
        stack = _stack(outcome=Success(value="ok"))
        _, build = _run(["invoke", "door.lock", "--no-fallback", "--format", "json"], stack)
        assert build.call_args.kwargs["enable_fallback"] is False

    def test_fallback_enabled_by_default(self) -> None:
        stack = _stack(outcome=Success(value="ok"))
        _, build = _run(["invoke", "door.lock", "--format", "json"], stack)
        assert build.call_args.kwargs["enable_fallback"] is True

    def test_vin_reaches_settings(self) -> None:
        stack = _stack(outcome=Success(value="ok"))
        _, build = _run(
            ["invoke", "door.lock", "--vin", "5YJ3E1EA1NF000001", "--format", "json"], stack
        )
        settings = build.call_args.args[1]
        assert settings.vin == "5YJ3E1EA1NF000001"

    def test_host_and_port_reach_resolver(self) -> None:
        stack = _stack(outcome=Success(value="ok"))
        _, build = _run(
            ["--host", "10.0.0.5", "--port", "9999", "invoke", "door.lock", "--format", "json"],
            stack,
        )
        config = build.call_args.args[0].resolve()
        assert config.host == "10.0.0.5"
        assert config.port == 9999

    def test_wake_required_exit_code(self) -> None:
        cmd = Command(method="door.lock")
        stack = _stack(
            outcome=RequiresWakeConfirmation(
                command=cmd, current_state="asleep", message="Vehicle is asleep."
            )
        )
        result, _ = _run(["invoke", "door.lock", "--format", "json"], stack)

        assert result.exit_code == EXIT_WAKE_REQUIRED == 2
        payload = json.loads(result.output)
        assert payload["ok"] is False
        assert payload["error"]["code"] == "wake_required"
        assert payload["error"]["current_state"] == "asleep"

    def test_failure_exit_code(self) -> None:
        stack = _stack(
            outcome=Failure(kind=FailureKind.NO_NODE_CONNECTED, message="No connected node")
        )
        result, _ = _run(["invoke", "door.lock", "--format", "json"], stack)

        assert result.exit_code == EXIT_FAILURE == 1
        payload = json.loads(result.output)
        assert payload["error"] == {"code": "no_node_connected", "message": "No connected node"}

    def test_rich_output(self) -> None:
        stack = _stack(outcome=Success(value={"battery_level": 72}))
        result, _ = _run(["invoke", "battery.get", "--format", "rich"], stack)
        assert result.exit_code == 0, result.output

    def test_bad_params_is_usage_error(self) -> None:
        stack = _stack(outcome=Success(value="ok"))
        result, build = _run(["invoke", "door.lock", "--params", "[1, 2]"], stack)
        assert result.exit_code == 2
        assert "JSON object" in result.output
        build.assert_not_called()


class TestStatus:
    def test_connected_json(self) -> None:
        status = NodeStatus(connected=True, node_id="n1", platform="tesla")
        result, _ = _run(["status", "--format", "json"], _stack(status=status))

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["command"] == "status"
        assert payload["data"]["connected"] is True
        assert payload["data"]["node_id"] == "n1"

    def test_disconnected_rich_shows_hint(self) -> None:
        status = NodeStatus(connected=False, platform="tesla", fallback_available=True)
        result, _ = _run(["status", "--format", "rich"], _stack(status=status))
        assert result.exit_code == 0, result.output


class TestParseParams:
    def test_empty(self) -> None:
        assert _parse_params(None) == {}
        assert _parse_params("") == {}

    def test_object(self) -> None:
        assert _parse_params('{"temp": 21}') == {"temp": 21}

    def test_invalid_json(self) -> None:
        import click

        with pytest.raises(click.BadParameter, match="not valid JSON"):
            _parse_params("{nope")


class TestMain:
    def test_unexpected_error_reported_as_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        stack = _stack()
        stack.dispatcher.dispatch = AsyncMock(side_effect=RuntimeError("kaboom"))
        with (
            patch("openclaw_tescmd.cli.main.build_dispatcher", return_value=stack),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["invoke", "door.lock", "--format", "json"])

        assert exc_info.value.code == EXIT_FAILURE
        payload = json.loads(capsys.readouterr().out)
        assert payload["error"]["code"] == "RuntimeError"
        assert payload["error"]["message"] == "kaboom"

    def test_exit_code_propagated(self) -> None:
        stack = _stack(outcome=Failure(kind=FailureKind.TRANSPORT_ERROR, message="refused"))
        with (
            patch("openclaw_tescmd.cli.main.build_dispatcher", return_value=stack),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["invoke", "door.lock", "--format", "json"])
        assert exc_info.value.code == EXIT_FAILURE

    def test_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["--help"])
        out = capsys.readouterr().out
        assert "invoke" in out
        assert "status" in out
        assert "monitor" in out
