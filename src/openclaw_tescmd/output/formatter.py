from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from openclaw_tescmd.models import Failure, RequiresWakeConfirmation, Success
from openclaw_tescmd.output.json_output import (
    format_json_error,
    format_json_response,
    format_outcome,
)
from openclaw_tescmd.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase

    from openclaw_tescmd.models import DispatchOutcome


class OutputFormatter:
    """Unified output formatter that auto-detects JSON vs Rich output.

    * If *force_format* is provided, use it unconditionally.
    * Otherwise a TTY *stream* (default ``sys.stdout``) gets ``"rich"``
      and a pipe gets ``"json"``.

    ``"quiet"`` uses a Rich console on *stderr* so stdout stays empty.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        if self._format == "quiet":
            self._console = Console(stderr=True)
        else:
            self._console = Console()

        self._rich = RichOutput(self._console)

    @property
    def format(self) -> str:  # noqa: A003
        """Return the active output format (``"rich"``, ``"json"``, or ``"quiet"``)."""
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    def _emit(self, text: str) -> None:
        print(text, file=self._stream)  # noqa: T201

    def output(self, data: Any, *, command: str) -> None:
        """Emit *data* as a JSON envelope, or as plain text in Rich mode."""
        if self._format == "json":
            self._emit(format_json_response(data=data, command=command))
        else:
            self._rich.info(str(data))

    def output_error(self, *, code: str, message: str, command: str, **extra: Any) -> None:
        if self._format == "json":
            self._emit(format_json_error(code=code, message=message, command=command, **extra))
        else:
            self._rich.error(message)

    def output_outcome(self, outcome: DispatchOutcome, *, command: str) -> None:
        """Render a dispatch outcome in the active format."""
        if self._format == "json":
            self._emit(format_outcome(outcome, command=command))
        elif isinstance(outcome, Success):
            self._rich.command_value(command, outcome.value, fallback=outcome.fallback)
            if outcome.note:
                self._rich.info(f"[dim]{outcome.note}[/dim]")
        elif isinstance(outcome, RequiresWakeConfirmation):
            self._rich.wake_required(outcome)
        elif isinstance(outcome, Failure):
            self._rich.error(outcome.message)
