"""Long-running background services."""

from __future__ import annotations

from openclaw_tescmd.services.trigger_monitor import TriggerMonitor

__all__ = ["TriggerMonitor"]
