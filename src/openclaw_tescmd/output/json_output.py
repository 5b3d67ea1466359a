"""JSON envelopes printed by the CLI when output is piped.

Success::

    {"ok": true, "command": "battery.get", "data": {...},
     "fallback": false, "note"?: "...", "timestamp": "..."}

Failure (``code`` is a :class:`~openclaw_tescmd.models.FailureKind` value,
``wake_required``, or an exception class name)::

    {"ok": false, "command": "door.lock",
     "error": {"code": "...", "message": "...", ...}, "timestamp": "..."}
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from openclaw_tescmd.models import Failure, RequiresWakeConfirmation, Success

if TYPE_CHECKING:
    from openclaw_tescmd.models import DispatchOutcome

WAKE_REQUIRED_CODE = "wake_required"


def _serialize(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", exclude_none=True)
    if isinstance(obj, list):
        return [_serialize(item) for item in obj]
    return obj


def _dumps(envelope: dict[str, Any]) -> str:
    envelope["timestamp"] = datetime.now(UTC).isoformat()
    return json.dumps(envelope, indent=2, default=str)


def format_json_response(*, data: Any, command: str, **extra: Any) -> str:
    """Return an ``ok: true`` envelope; *extra* keys sit beside ``data``."""
    return _dumps({"ok": True, "command": command, "data": _serialize(data), **extra})


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """Return an ``ok: false`` envelope; *extra* keys go inside ``error``."""
    error = {"code": code, "message": message, **extra}
    return _dumps({"ok": False, "command": command, "error": error})


def format_outcome(outcome: DispatchOutcome, *, command: str) -> str:
    """Render a dispatch outcome as its envelope."""
    if isinstance(outcome, Success):
        extra: dict[str, Any] = {"fallback": outcome.fallback}
        if outcome.note:
            extra["note"] = outcome.note
        return format_json_response(data=outcome.value, command=command, **extra)
    if isinstance(outcome, RequiresWakeConfirmation):
        return format_json_error(
            code=WAKE_REQUIRED_CODE,
            message=outcome.message,
            command=command,
            current_state=outcome.current_state,
            params=outcome.command.params,
        )
    if isinstance(outcome, Failure):
        return format_json_error(code=outcome.kind.value, message=outcome.message, command=command)
    raise TypeError(f"Unknown dispatch outcome: {type(outcome).__name__}")
