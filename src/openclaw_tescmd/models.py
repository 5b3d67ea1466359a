"""Pydantic v2 models for commands, nodes, and dispatch outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

_EXTRA_IGNORE = ConfigDict(extra="ignore")


class Command(BaseModel):
    """A logical vehicle command.

    ``method`` is forwarded as-is; both ``door.lock`` and ``door_lock``
    are valid and resolved by the node, not here.
    """

    method: str
    params: dict[str, Any] = Field(default_factory=dict)


class NodeDescriptor(BaseModel):
    """One entry of the gateway's node listing."""

    model_config = _EXTRA_IGNORE

    id: str = Field(validation_alias=AliasChoices("id", "nodeId"))
    platform: str = ""
    connected: bool = False


class VehicleSummary(BaseModel):
    """Vehicle entry as printed by ``tescmd vehicle list``."""

    model_config = _EXTRA_IGNORE

    vin: str | None = None
    display_name: str | None = None
    state: str = "unknown"


class FailureKind(StrEnum):
    """Failure classes surfaced by the dispatcher."""

    NO_NODE_CONNECTED = "no_node_connected"
    STALE_NODE = "stale_node"
    TRANSPORT_ERROR = "transport_error"
    COMMAND_FAILED = "command_failed"
    UNSUPPORTED = "unsupported"
    WAKE_FAILED = "wake_failed"


class Success(BaseModel):
    status: Literal["success"] = "success"
    value: Any = None
    fallback: bool = False
    """``True`` when the result came from the local ``tescmd`` binary."""
    note: str | None = None


class RequiresWakeConfirmation(BaseModel):
    """The vehicle is not online and waking it needs explicit consent.

    Not an error: re-dispatch ``command`` with ``allow_wake`` (or
    ``force_wake``) set in its params to proceed.
    """

    status: Literal["wake_required"] = "wake_required"
    command: Command
    current_state: str
    message: str


class Failure(BaseModel):
    status: Literal["failure"] = "failure"
    kind: FailureKind
    message: str


DispatchOutcome = Annotated[
    Success | RequiresWakeConfirmation | Failure,
    Field(discriminator="status"),
]


class NodeStatus(BaseModel):
    """Connection summary reported by ``Dispatcher.status()``."""

    connected: bool
    node_id: str | None = None
    platform: str
    fallback_available: bool = False
