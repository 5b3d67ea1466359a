"""Static tables mapping node method names onto ``tescmd`` invocations.

Both the dotted node names (``door.lock``) and the Fleet API snake_case
names (``door_lock``) are listed so either form reaches the same
subcommand.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class CliAction:
    """A write command run as ``tescmd vehicle <subcommand> [args...]``."""

    subcommand: str
    positional: tuple[str, ...] = ()
    """Param names appended, in order, as positional arguments when present."""

    def argv(self, params: dict[str, Any]) -> list[str]:
        args = [self.subcommand]
        for name in self.positional:
            if params.get(name) is not None:
                args.append(str(params[name]))
        return args


@dataclass(frozen=True)
class DataQuery:
    """A read command answered by ``tescmd vehicle data --endpoints <endpoint>``."""

    endpoint: str
    parse: Callable[[dict[str, Any]], dict[str, Any]]


# -- Response-shape parsers --------------------------------------------------
# Each receives the full vehicle_data payload and returns the same shape the
# node's read handlers produce.


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name)
    return section if isinstance(section, dict) else {}


def _parse_location(data: dict[str, Any]) -> dict[str, Any]:
    drive = _section(data, "drive_state")
    return {
        "latitude": drive.get("latitude"),
        "longitude": drive.get("longitude"),
        "heading": drive.get("heading"),
        "speed": drive.get("speed"),
    }


def _parse_speed(data: dict[str, Any]) -> dict[str, Any]:
    return {"speed_mph": _section(data, "drive_state").get("speed")}


def _parse_battery(data: dict[str, Any]) -> dict[str, Any]:
    cs = _section(data, "charge_state")
    return {
        "battery_level": cs.get("battery_level"),
        "range_miles": cs.get("battery_range"),
    }


def _parse_charge_state(data: dict[str, Any]) -> dict[str, Any]:
    return {"charge_state": _section(data, "charge_state").get("charging_state")}


def _parse_temperature(data: dict[str, Any]) -> dict[str, Any]:
    climate = _section(data, "climate_state")
    return {
        "inside_temp_c": climate.get("inside_temp"),
        "outside_temp_c": climate.get("outside_temp"),
    }


def _parse_security(data: dict[str, Any]) -> dict[str, Any]:
    vs = _section(data, "vehicle_state")
    return {
        "locked": vs.get("locked"),
        "sentry_mode": vs.get("sentry_mode"),
    }


# -- Tables ------------------------------------------------------------------

_DOOR_LOCK = CliAction("door-lock")
_DOOR_UNLOCK = CliAction("door-unlock")
_CLIMATE_ON = CliAction("climate-on")
_CLIMATE_OFF = CliAction("climate-off")
_SET_TEMP = CliAction("set-temp", ("temp",))
_CHARGE_START = CliAction("charge-start")
_CHARGE_STOP = CliAction("charge-stop")
_CHARGE_LIMIT = CliAction("charge-limit", ("percent",))
_TRUNK_OPEN = CliAction("trunk-open")

CLI_ACTIONS: dict[str, CliAction] = {
    "door.lock": _DOOR_LOCK,
    "door_lock": _DOOR_LOCK,
    "door.unlock": _DOOR_UNLOCK,
    "door_unlock": _DOOR_UNLOCK,
    "climate.on": _CLIMATE_ON,
    "auto_conditioning_start": _CLIMATE_ON,
    "climate.off": _CLIMATE_OFF,
    "auto_conditioning_stop": _CLIMATE_OFF,
    "climate.set_temp": _SET_TEMP,
    "set_temps": _SET_TEMP,
    "charge.start": _CHARGE_START,
    "charge_start": _CHARGE_START,
    "charge.stop": _CHARGE_STOP,
    "charge_stop": _CHARGE_STOP,
    "charge.set_limit": _CHARGE_LIMIT,
    "set_charge_limit": _CHARGE_LIMIT,
    "trunk.open": _TRUNK_OPEN,
    "actuate_trunk": _TRUNK_OPEN,
    "frunk.open": CliAction("frunk-open"),
    "flash_lights": CliAction("flash-lights"),
    "honk_horn": CliAction("honk-horn"),
    "sentry.on": CliAction("sentry-on"),
    "sentry.off": CliAction("sentry-off"),
}

DATA_QUERIES: dict[str, DataQuery] = {
    "location.get": DataQuery("drive_state", _parse_location),
    "speed.get": DataQuery("drive_state", _parse_speed),
    "battery.get": DataQuery("charge_state", _parse_battery),
    "charge_state.get": DataQuery("charge_state", _parse_charge_state),
    "temperature.get": DataQuery("climate_state", _parse_temperature),
    "security.get": DataQuery("vehicle_state", _parse_security),
}

# Running any of these against a sleeping vehicle needs a (billable) wake.
WAKE_REQUIRED: frozenset[str] = frozenset(CLI_ACTIONS) | frozenset(DATA_QUERIES)


def is_supported(method: str) -> bool:
    return method in CLI_ACTIONS or method in DATA_QUERIES


def requires_wake(method: str) -> bool:
    return method in WAKE_REQUIRED
