"""Tests for GatewayInvoker: request shape and outcome normalization."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest

from openclaw_tescmd.config import ConnectionConfig
from openclaw_tescmd.gateway.client import GatewayClient
from openclaw_tescmd.gateway.invoker import GatewayInvoker
from openclaw_tescmd.models import Command, Failure, FailureKind, Success

if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock

INVOKE_URL = "http://127.0.0.1:18789/tools/invoke"


@pytest.fixture
def client() -> GatewayClient:
    return GatewayClient(ConnectionConfig())


def _text(text: str) -> dict[str, object]:
    return {"ok": True, "result": {"content": [{"type": "text", "text": text}]}}


class TestRequest:
    @pytest.mark.asyncio
    async def test_request_body(self, httpx_mock: HTTPXMock, client: GatewayClient) -> None:
        httpx_mock.add_response(url=INVOKE_URL, method="POST", json=_text("ok"))
        cmd = Command(method="charge.set_limit", params={"percent": 80})
        await GatewayInvoker(client).invoke("node-1", cmd)

        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body["tool"] == "nodes"
        assert body["action"] == "invoke"
        args = body["args"]
        assert args["node"] == "node-1"
        assert args["invokeCommand"] == "system.run"
        assert args["timeoutMs"] == 30000
        assert json.loads(args["invokeParamsJson"]) == {
            "method": "charge.set_limit",
            "params": {"percent": 80},
        }

    @pytest.mark.asyncio
    async def test_method_forwarded_unchanged(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        httpx_mock.add_response(url=INVOKE_URL, method="POST", json=_text("ok"))
        await GatewayInvoker(client).invoke("n", Command(method="door_lock"))
        args = json.loads(httpx_mock.get_requests()[0].content)["args"]
        assert json.loads(args["invokeParamsJson"])["method"] == "door_lock"

    @pytest.mark.asyncio
    async def test_custom_action(self, httpx_mock: HTTPXMock, client: GatewayClient) -> None:
        httpx_mock.add_response(url=INVOKE_URL, method="POST", json=_text("ok"))
        await GatewayInvoker(client, action="run").invoke("n", Command(method="honk_horn"))
        assert json.loads(httpx_mock.get_requests()[0].content)["action"] == "run"


class TestNormalization:
    @pytest.mark.asyncio
    async def test_details_returned_unchanged(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        details = {"battery_level": 72, "range_miles": 218.5}
        httpx_mock.add_response(
            url=INVOKE_URL,
            method="POST",
            json={"ok": True, "result": {"content": [], "details": details}},
        )
        outcome = await GatewayInvoker(client).invoke("n", Command(method="battery.get"))
        assert isinstance(outcome, Success)
        assert outcome.value == details
        assert outcome.fallback is False

    @pytest.mark.asyncio
    async def test_json_text_parsed(self, httpx_mock: HTTPXMock, client: GatewayClient) -> None:
        httpx_mock.add_response(
            url=INVOKE_URL, method="POST", json=_text('{"result": true, "reason": "ok"}')
        )
        outcome = await GatewayInvoker(client).invoke("n", Command(method="door.lock"))
        assert isinstance(outcome, Success)
        assert outcome.value == {"result": True, "reason": "ok"}

    @pytest.mark.asyncio
    async def test_plain_text_returned(self, httpx_mock: HTTPXMock, client: GatewayClient) -> None:
        httpx_mock.add_response(url=INVOKE_URL, method="POST", json=_text("Horn honked"))
        outcome = await GatewayInvoker(client).invoke("n", Command(method="honk_horn"))
        assert isinstance(outcome, Success)
        assert outcome.value == "Horn honked"


class TestFailures:
    @pytest.mark.asyncio
    async def test_ok_false_is_command_failed(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        httpx_mock.add_response(
            url=INVOKE_URL,
            method="POST",
            json={"ok": False, "error": {"type": "ValueError", "message": "temp required"}},
        )
        outcome = await GatewayInvoker(client).invoke("n", Command(method="climate.set_temp"))
        assert outcome == Failure(kind=FailureKind.COMMAND_FAILED, message="temp required")

    @pytest.mark.asyncio
    async def test_ok_false_without_message(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        httpx_mock.add_response(url=INVOKE_URL, method="POST", json={"ok": False})
        outcome = await GatewayInvoker(client).invoke("n", Command(method="door.lock"))
        assert isinstance(outcome, Failure)
        assert outcome.kind == FailureKind.COMMAND_FAILED
        assert "door.lock" in outcome.message

    @pytest.mark.asyncio
    async def test_ok_false_structured_stale_code(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        httpx_mock.add_response(
            url=INVOKE_URL,
            method="POST",
            json={"ok": False, "error": {"type": "NODE_OFFLINE", "message": "gone"}},
        )
        outcome = await GatewayInvoker(client).invoke("n", Command(method="door.lock"))
        assert isinstance(outcome, Failure)
        assert outcome.kind == FailureKind.STALE_NODE

    @pytest.mark.asyncio
    async def test_transport_node_not_found_is_stale(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        httpx_mock.add_response(
            url=INVOKE_URL,
            method="POST",
            status_code=404,
            json={"ok": False, "error": {"type": "tool_error", "message": "Node not found: n"}},
        )
        outcome = await GatewayInvoker(client).invoke("n", Command(method="door.lock"))
        assert isinstance(outcome, Failure)
        assert outcome.kind == FailureKind.STALE_NODE

    @pytest.mark.asyncio
    async def test_connection_refused_is_transport(
        self, httpx_mock: HTTPXMock, client: GatewayClient
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=INVOKE_URL)
        outcome = await GatewayInvoker(client).invoke("n", Command(method="door.lock"))
        assert isinstance(outcome, Failure)
        assert outcome.kind == FailureKind.TRANSPORT_ERROR
