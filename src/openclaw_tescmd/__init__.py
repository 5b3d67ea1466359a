"""openclaw-tescmd: deliver Tesla vehicle commands via an OpenClaw node or tescmd."""

from __future__ import annotations

from openclaw_tescmd.config import ConnectionConfig, ConnectionConfigResolver, PluginSettings
from openclaw_tescmd.dispatcher import Dispatcher, build_dispatcher
from openclaw_tescmd.models import (
    Command,
    DispatchOutcome,
    Failure,
    FailureKind,
    NodeDescriptor,
    RequiresWakeConfirmation,
    Success,
)

__version__ = "0.3.0"

__all__ = [
    "Command",
    "ConnectionConfig",
    "ConnectionConfigResolver",
    "DispatchOutcome",
    "Dispatcher",
    "Failure",
    "FailureKind",
    "NodeDescriptor",
    "PluginSettings",
    "RequiresWakeConfirmation",
    "Success",
    "__version__",
    "build_dispatcher",
]
