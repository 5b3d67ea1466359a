"""Secondary dispatch path: run the command through the local ``tescmd`` binary.

Used only when no gateway node is connected.  Talking to the vehicle
directly means it may have to be woken first, which is billable and
costs battery, so a wake only happens when the caller passes
``allow_wake`` or ``force_wake`` in the command params.  Otherwise the
invoker answers :class:`~openclaw_tescmd.models.RequiresWakeConfirmation`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from openclaw_tescmd.errors import CliError
from openclaw_tescmd.fallback.commands import (
    CLI_ACTIONS,
    DATA_QUERIES,
    is_supported,
    requires_wake,
)
from openclaw_tescmd.models import (
    Failure,
    FailureKind,
    RequiresWakeConfirmation,
    Success,
    VehicleSummary,
)

if TYPE_CHECKING:
    from openclaw_tescmd.models import Command, DispatchOutcome

logger = logging.getLogger(__name__)

# Tesla allows ~3 wakes/min; vehicles need 10-60s to come online.
WAKE_SETTLE_DELAY = 20.0

WAKE_AUTH_PARAMS = ("force_wake", "allow_wake")

_TRUE_STRINGS = frozenset({"true", "1", "yes"})

_ONLINE = "online"
_UNKNOWN = "unknown"


def _is_explicit_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def wake_authorized(params: dict[str, Any]) -> bool:
    """Return ``True`` if *params* explicitly allow waking the vehicle.

    Only ``True`` or the strings ``"true"``/``"1"``/``"yes"`` count;
    ``"false"``, numbers and other truthy values do not.
    """
    return any(_is_explicit_true(params.get(name)) for name in WAKE_AUTH_PARAMS)


def _error_message(payload: Any) -> str | None:
    """Return the message of an ``ok: false`` envelope, else ``None``."""
    if not isinstance(payload, dict) or payload.get("ok") is not False:
        return None
    error = payload.get("error")
    message = error.get("message") if isinstance(error, dict) else error
    return str(message or "tescmd reported failure")


def _unwrap_envelope(stdout: str) -> Any:
    """Decode tescmd's ``{"ok", "command", "data"|"error"}`` JSON output."""
    try:
        payload = json.loads(stdout)
    except ValueError as exc:
        raise CliError(f"tescmd produced non-JSON output: {stdout.strip()[:200]}") from exc

    message = _error_message(payload)
    if message is not None:
        raise CliError(message)
    if isinstance(payload, dict) and "ok" in payload:
        return payload.get("data")
    return payload


class CliFallbackInvoker:
    """Run node methods through ``tescmd vehicle ...`` subprocesses.

    Parameters
    ----------
    binary:
        Name or path of the ``tescmd`` executable.
    vin:
        Optional VIN passed as ``--vin``; also selects which vehicle's
        state the wake probe reads.
    wake_settle_delay:
        Seconds to wait between sending a wake and re-probing.
    """

    def __init__(
        self,
        binary: str = "tescmd",
        *,
        vin: str | None = None,
        wake_settle_delay: float = WAKE_SETTLE_DELAY,
    ) -> None:
        self._binary = binary
        self._vin = vin
        self._wake_settle_delay = wake_settle_delay
        self._available: bool | None = None

    def is_available(self) -> bool:
        """Return whether the binary is on ``PATH`` (probed once)."""
        if self._available is None:
            self._available = shutil.which(self._binary) is not None
            if not self._available:
                logger.info("CLI fallback disabled: %s not found on PATH", self._binary)
        return self._available

    def supports(self, method: str) -> bool:
        return is_supported(method)

    async def invoke(self, command: Command) -> DispatchOutcome:
        method = command.method
        if not self.supports(method):
            return Failure(
                kind=FailureKind.UNSUPPORTED,
                message=f"{method} has no {self._binary} fallback",
            )
        if not self.is_available():
            return Failure(
                kind=FailureKind.UNSUPPORTED,
                message=f"{self._binary} not found on PATH",
            )

        woke = False
        if requires_wake(method):
            state = await self.probe_state()
            if state != _ONLINE:
                if not wake_authorized(command.params):
                    logger.info("Vehicle is %s; %s needs wake confirmation", state, method)
                    return RequiresWakeConfirmation(
                        command=command,
                        current_state=state,
                        message=(
                            f"Vehicle is {state}. Running {method} directly requires "
                            "waking it, which is a billable Fleet API call and drains "
                            "battery. Re-send with allow_wake=true to proceed, or wake "
                            "the vehicle from the Tesla app for free."
                        ),
                    )
                state = await self._wake()
                if state != _ONLINE:
                    return Failure(
                        kind=FailureKind.WAKE_FAILED,
                        message=f"Vehicle did not come online after wake (state: {state})",
                    )
                woke = True

        try:
            value = await self._execute(command)
        except CliError as exc:
            logger.warning("%s fallback failed for %s: %s", self._binary, method, exc)
            return Failure(kind=FailureKind.COMMAND_FAILED, message=str(exc))

        note = f"Vehicle was woken before running {method}." if woke else None
        result: dict[str, Any] = dict(value) if isinstance(value, dict) else {"result": value}
        result["fallback"] = True
        if note:
            result["note"] = note
        return Success(value=result, fallback=True, note=note)

    # -- Vehicle state -------------------------------------------------------

    async def probe_state(self) -> str:
        """Read the vehicle state from ``vehicle list`` without waking it."""
        try:
            data = await self._run_json("list")
        except CliError as exc:
            logger.warning("Vehicle state probe failed: %s", exc)
            return _UNKNOWN

        entries = data if isinstance(data, list) else []
        vehicles: list[VehicleSummary] = []
        for raw in entries:
            try:
                vehicles.append(VehicleSummary.model_validate(raw))
            except ValidationError:
                continue
        if not vehicles:
            return _UNKNOWN
        if self._vin:
            for vehicle in vehicles:
                if vehicle.vin == self._vin:
                    return vehicle.state
            # Another car's state says nothing about this one.
            logger.warning("VIN %s not found in vehicle list", self._vin)
            return _UNKNOWN
        return vehicles[0].state

    async def _wake(self) -> str:
        """Send a wake, wait for the vehicle to settle, and re-probe."""
        logger.info("Waking vehicle via %s (billable)", self._binary)
        try:
            await self._run_json("wake")
        except CliError as exc:
            logger.warning("Wake request failed: %s", exc)
            return _UNKNOWN
        await asyncio.sleep(self._wake_settle_delay)
        return await self.probe_state()

    # -- Subprocess helpers --------------------------------------------------

    async def _execute(self, command: Command) -> Any:
        query = DATA_QUERIES.get(command.method)
        if query is not None:
            data = await self._run_json("data", "--endpoints", query.endpoint)
            return query.parse(data if isinstance(data, dict) else {})
        action = CLI_ACTIONS[command.method]
        return await self._run_json(*action.argv(command.params))

    def build_argv(self, *args: str) -> list[str]:
        argv = [self._binary, "vehicle", *args, "--format", "json"]
        if self._vin:
            argv += ["--vin", self._vin]
        return argv

    async def _run_json(self, *args: str) -> Any:
        return _unwrap_envelope(await self._run(self.build_argv(*args)))

    async def _run(self, argv: list[str]) -> str:
        """Run *argv* and return stdout; raise :class:`CliError` on failure."""
        logger.debug("Running: %s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CliError(f"Could not start {argv[0]}: {exc}") from exc
        stdout, stderr = await proc.communicate()
        out = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            # tescmd prints its JSON error envelope on stdout even on failure
            try:
                message = _error_message(json.loads(out))
            except ValueError:
                message = None
            if message is None:
                detail = stderr.decode("utf-8", errors="replace").strip() or out.strip()
                message = f"{argv[0]} exited with status {proc.returncode}: {detail[:200]}"
            raise CliError(message, returncode=proc.returncode)
        return out
