"""Route a command to the best available execution path.

Order of attempts for one :meth:`Dispatcher.dispatch` call:

1. The cached (or freshly listed) gateway node.
2. On a stale-node failure: invalidate, re-list, retry exactly once.
3. The local ``tescmd`` binary, only when no node is reachable.

Failures other than "no node / stale node" are returned as-is, so a
rejected write is never replayed through a second path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from openclaw_tescmd.config import ConnectionConfigResolver, PluginSettings
from openclaw_tescmd.fallback.invoker import CliFallbackInvoker
from openclaw_tescmd.gateway.client import GatewayClient
from openclaw_tescmd.gateway.invoker import GatewayInvoker
from openclaw_tescmd.gateway.registry import NodeRegistry
from openclaw_tescmd.models import Command, Failure, FailureKind, NodeStatus

if TYPE_CHECKING:
    from openclaw_tescmd.models import DispatchOutcome

logger = logging.getLogger(__name__)


class Dispatcher:
    """Deliver commands via gateway node first, CLI fallback second.

    Parameters
    ----------
    registry:
        Node id resolver with its cache.
    gateway:
        Primary invoker.
    fallback:
        CLI invoker used when no node is available.  ``None`` disables
        the fallback path entirely.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        gateway: GatewayInvoker,
        fallback: CliFallbackInvoker | None = None,
    ) -> None:
        self._registry = registry
        self._gateway = gateway
        self._fallback = fallback

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    async def invoke(self, method: str, params: dict[str, Any] | None = None) -> DispatchOutcome:
        """Shorthand for ``dispatch(Command(method=..., params=...))``."""
        return await self.dispatch(Command(method=method, params=params or {}))

    async def dispatch(self, command: Command) -> DispatchOutcome:
        logger.debug("Dispatch: method=%s", command.method)
        node_id = await self._registry.resolve_node_id()
        if node_id is None:
            return await self._fall_back(
                command,
                Failure(
                    kind=FailureKind.NO_NODE_CONNECTED,
                    message=(
                        f"No connected {self._registry.platform} node found. "
                        "Start one with: tescmd serve <VIN> --openclaw <gateway_url>"
                    ),
                ),
            )

        outcome = await self._gateway.invoke(node_id, command)
        if not _is_stale(outcome):
            return outcome

        logger.info("Node %s is stale; re-resolving once", node_id)
        self._registry.invalidate()
        new_id = await self._registry.resolve_node_id(force_refresh=True)
        if new_id is None:
            return await self._fall_back(
                command,
                Failure(
                    kind=FailureKind.NO_NODE_CONNECTED,
                    message=f"Node {node_id} went away and no other node is connected",
                ),
            )

        retry = await self._gateway.invoke(new_id, command)
        if _is_stale(retry):
            self._registry.invalidate()
            return await self._fall_back(command, retry)
        return retry

    async def _fall_back(self, command: Command, failure: Failure) -> DispatchOutcome:
        """Try the CLI path; return *failure* if it cannot handle *command*."""
        if self._fallback is None:
            return failure
        outcome = await self._fallback.invoke(command)
        if isinstance(outcome, Failure) and outcome.kind == FailureKind.UNSUPPORTED:
            logger.debug("CLI fallback unusable for %s: %s", command.method, outcome.message)
            return failure
        logger.info("Dispatched %s via CLI fallback", command.method)
        return outcome

    async def status(self) -> NodeStatus:
        """Report whether a node is connected, refreshing the cache."""
        node_id = await self._registry.resolve_node_id(force_refresh=True)
        return NodeStatus(
            connected=node_id is not None,
            node_id=node_id,
            platform=self._registry.platform,
            fallback_available=self._fallback is not None and self._fallback.is_available(),
        )


def _is_stale(outcome: DispatchOutcome) -> bool:
    return isinstance(outcome, Failure) and outcome.kind == FailureKind.STALE_NODE


@dataclass
class DispatchStack:
    """Everything :func:`build_dispatcher` wires together."""

    dispatcher: Dispatcher
    client: GatewayClient

    async def aclose(self) -> None:
        await self.client.close()


def build_dispatcher(
    resolver: ConnectionConfigResolver | None = None,
    settings: PluginSettings | None = None,
    *,
    enable_fallback: bool = True,
) -> DispatchStack:
    """Construct the gateway client, registry, invokers, and dispatcher."""
    resolver = resolver or ConnectionConfigResolver()
    settings = settings or PluginSettings()

    client = GatewayClient(resolver.resolve())
    registry = NodeRegistry(client, platform=settings.platform)
    fallback = CliFallbackInvoker(settings.binary, vin=settings.vin) if enable_fallback else None
    dispatcher = Dispatcher(registry, GatewayInvoker(client), fallback)
    return DispatchStack(dispatcher=dispatcher, client=client)
