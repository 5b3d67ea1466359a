"""OpenClaw Gateway access: HTTP transport, node registry, and invoker."""

from __future__ import annotations

from openclaw_tescmd.gateway.client import GatewayClient
from openclaw_tescmd.gateway.invoker import GatewayInvoker
from openclaw_tescmd.gateway.registry import NodeRegistry

__all__ = [
    "GatewayClient",
    "GatewayInvoker",
    "NodeRegistry",
]
