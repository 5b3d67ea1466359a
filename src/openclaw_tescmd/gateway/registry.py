"""Resolve which gateway node currently serves this vehicle platform."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from openclaw_tescmd.errors import GatewayError
from openclaw_tescmd.gateway.client import extract_error, normalize_result
from openclaw_tescmd.models import NodeDescriptor

if TYPE_CHECKING:
    from openclaw_tescmd.gateway.client import GatewayClient

logger = logging.getLogger(__name__)


class NodeRegistry:
    """Cache the id of the first connected node for *platform*.

    The cached id stays valid until :meth:`invalidate` is called or a
    forced refresh replaces it.  Lookups never raise: gateway failures
    are logged and reported as "no node known".
    """

    def __init__(self, client: GatewayClient, *, platform: str = "tesla") -> None:
        self._client = client
        self._platform = platform
        self._cached_id: str | None = None

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def cached_node_id(self) -> str | None:
        return self._cached_id

    def invalidate(self) -> None:
        if self._cached_id is not None:
            logger.debug("Invalidating cached node id %s", self._cached_id)
        self._cached_id = None

    async def list_nodes(self) -> list[NodeDescriptor]:
        """Return connected nodes for this platform, in gateway order.

        Raises :class:`GatewayError` if the listing cannot be fetched or
        parsed.
        """
        envelope = await self._client.call_tool("nodes", "status")
        raw_nodes = _extract_nodes(envelope)
        nodes: list[NodeDescriptor] = []
        for raw in raw_nodes:
            try:
                node = NodeDescriptor.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed node entry: %r", raw)
                continue
            if node.platform == self._platform and node.connected:
                nodes.append(node)
        return nodes

    async def resolve_node_id(self, force_refresh: bool = False) -> str | None:
        if self._cached_id is not None and not force_refresh:
            return self._cached_id

        try:
            nodes = await self.list_nodes()
        except GatewayError as exc:
            logger.warning("Failed to list gateway nodes: %s", exc)
            return None

        if not nodes:
            logger.debug("No connected %s node found", self._platform)
            return None

        # Several connected nodes of one platform: first listed wins.
        node_id = nodes[0].id
        if node_id != self._cached_id:
            logger.info("Resolved %s node: %s", self._platform, node_id)
        self._cached_id = node_id
        return node_id


def _extract_nodes(envelope: dict[str, Any]) -> list[Any]:
    """Pull the ``nodes`` list from a bare or enveloped listing response."""
    if "nodes" in envelope:
        nodes = envelope["nodes"]
    else:
        if envelope.get("ok") is False:
            _type, message = extract_error(envelope)
            raise GatewayError(message or "Node listing failed")
        payload = normalize_result(envelope)
        nodes = payload.get("nodes") if isinstance(payload, dict) else payload
    if not isinstance(nodes, list):
        raise GatewayError("Node listing response has no 'nodes' list")
    return nodes
