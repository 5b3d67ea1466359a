"""Direct ``tescmd`` execution when no gateway node is connected."""

from __future__ import annotations

from openclaw_tescmd.fallback.invoker import CliFallbackInvoker

__all__ = ["CliFallbackInvoker"]
