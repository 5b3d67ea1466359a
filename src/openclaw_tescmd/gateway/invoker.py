"""Primary dispatch path: invoke a command on a gateway-connected node."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from openclaw_tescmd.errors import GatewayError, StaleNodeError
from openclaw_tescmd.gateway.client import (
    DEFAULT_TIMEOUT,
    STALE_NODE_ERROR_TYPES,
    extract_error,
    normalize_result,
)
from openclaw_tescmd.models import Failure, FailureKind, Success

if TYPE_CHECKING:
    from openclaw_tescmd.gateway.client import GatewayClient
    from openclaw_tescmd.models import Command, DispatchOutcome

logger = logging.getLogger(__name__)

# Every command is routed through the node's single ``system.run`` entry point.
NODE_ENTRY_COMMAND = "system.run"


class GatewayInvoker:
    """Send one command to one node and normalize the response envelope."""

    def __init__(
        self,
        client: GatewayClient,
        *,
        action: str = "invoke",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client
        self._action = action
        self._timeout_ms = int(timeout * 1000)

    def build_args(self, node_id: str, command: Command) -> dict[str, object]:
        """Return the ``args`` object of a ``nodes`` invocation."""
        return {
            "node": node_id,
            "invokeCommand": NODE_ENTRY_COMMAND,
            "invokeParamsJson": json.dumps(
                {"method": command.method, "params": command.params}
            ),
            "timeoutMs": self._timeout_ms,
        }

    async def invoke(self, node_id: str, command: Command) -> DispatchOutcome:
        logger.debug("Invoking %s on node %s", command.method, node_id)
        try:
            envelope = await self._client.call_tool(
                "nodes", self._action, self.build_args(node_id, command)
            )
        except StaleNodeError as exc:
            logger.info("Node %s reported stale: %s", node_id, exc)
            return Failure(kind=FailureKind.STALE_NODE, message=str(exc))
        except GatewayError as exc:
            logger.warning("Gateway transport error for %s: %s", command.method, exc)
            return Failure(kind=FailureKind.TRANSPORT_ERROR, message=str(exc))

        if not envelope.get("ok", False):
            error_type, message = extract_error(envelope)
            if error_type and error_type.upper() in STALE_NODE_ERROR_TYPES:
                return Failure(
                    kind=FailureKind.STALE_NODE,
                    message=message or f"Node {node_id} is no longer connected",
                )
            return Failure(
                kind=FailureKind.COMMAND_FAILED,
                message=message or f"Command {command.method} failed",
            )

        return Success(value=normalize_result(envelope))
