"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from typing import TYPE_CHECKING, Any

import click

from openclaw_tescmd.cli._options import global_options
from openclaw_tescmd.config import ConnectionConfigResolver, PluginSettings
from openclaw_tescmd.dispatcher import build_dispatcher
from openclaw_tescmd.models import Command, Failure, RequiresWakeConfirmation
from openclaw_tescmd.output.formatter import OutputFormatter

if TYPE_CHECKING:
    from openclaw_tescmd.models import DispatchOutcome, NodeStatus

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_WAKE_REQUIRED = 2

_NOISY_LOGGERS = ("httpx", "httpcore")

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    host: str | None
    port: int | None
    token: str | None
    vin: str | None
    output_format: str | None
    quiet: bool
    verbose: bool
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            force = "quiet" if self.quiet else self.output_format
            self._formatter = OutputFormatter(force_format=force)
        return self._formatter

    def resolver(self) -> ConnectionConfigResolver:
        return ConnectionConfigResolver(host=self.host, port=self.port, token=self.token)

    def settings(self) -> PluginSettings:
        settings = PluginSettings()
        if self.vin:
            settings = settings.model_copy(update={"vin": self.vin})
        return settings

    def configure_logging(self) -> None:
        if not self.verbose:
            return
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s  %(levelname)-5s  [%(name)s]  %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            force=True,
        )
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.option("--host", default=None, help="Gateway host (env: OPENCLAW_GATEWAY_HOST)")
@click.option("--port", type=int, default=None, help="Gateway port (env: OPENCLAW_GATEWAY_PORT)")
@click.option("--token", default=None, help="Gateway auth token (env: OPENCLAW_GATEWAY_TOKEN)")
@click.option("--vin", default=None, help="Vehicle VIN for the CLI fallback")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "json", "quiet"]),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option("--quiet", is_flag=True, default=False, help="Suppress normal output")
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.pass_context
def cli(
    ctx: click.Context,
    host: str | None,
    port: int | None,
    token: str | None,
    vin: str | None,
    output_format: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Send Tesla vehicle commands through an OpenClaw Gateway node."""
    ctx.ensure_object(dict)
    ctx.obj = AppContext(
        host=host,
        port=port,
        token=token,
        vin=vin,
        output_format=output_format,
        quiet=quiet,
        verbose=verbose,
    )
    ctx.obj.configure_logging()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _parse_params(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        params = json.loads(raw)
    except ValueError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--params") from exc
    if not isinstance(params, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--params")
    return params


@cli.command("invoke")
@click.argument("method")
@click.option("--params", "params_json", default=None, help="Command parameters as a JSON object")
@click.option(
    "--wake", is_flag=True, default=False, help="Allow waking the vehicle (billable)"
)
@click.option(
    "--no-fallback", is_flag=True, default=False, help="Never run tescmd directly"
)
@global_options
def invoke_cmd(
    app_ctx: AppContext,
    method: str,
    params_json: str | None,
    wake: bool,
    no_fallback: bool,
) -> None:
    """Dispatch METHOD (e.g. door.lock, battery.get) to the vehicle.

    \b
    Examples:
      openclaw-tescmd invoke battery.get
      openclaw-tescmd invoke charge.set_limit --params '{"percent": 80}'
      openclaw-tescmd invoke door.lock --wake
    """
    params = _parse_params(params_json)
    if wake:
        params["allow_wake"] = True
    command = Command(method=method, params=params)

    outcome = asyncio.run(_dispatch(app_ctx, command, enable_fallback=not no_fallback))
    app_ctx.formatter.output_outcome(outcome, command=method)

    if isinstance(outcome, RequiresWakeConfirmation):
        raise SystemExit(EXIT_WAKE_REQUIRED)
    if isinstance(outcome, Failure):
        raise SystemExit(EXIT_FAILURE)


async def _dispatch(
    app_ctx: AppContext, command: Command, *, enable_fallback: bool
) -> DispatchOutcome:
    stack = build_dispatcher(
        app_ctx.resolver(), app_ctx.settings(), enable_fallback=enable_fallback
    )
    try:
        return await stack.dispatcher.dispatch(command)
    finally:
        await stack.aclose()


@cli.command("status")
@global_options
def status_cmd(app_ctx: AppContext) -> None:
    """Show gateway node connection status."""
    status = asyncio.run(_status(app_ctx))
    formatter = app_ctx.formatter
    if formatter.format == "json":
        formatter.output(status, command="status")
    else:
        formatter.rich.node_status(status)
        if not status.connected:
            formatter.rich.info("")
            formatter.rich.info("Start a node with:")
            formatter.rich.info(
                "  [cyan]tescmd serve <VIN> --openclaw <gateway_url>"
                " --openclaw-token <token>[/cyan]"
            )


async def _status(app_ctx: AppContext) -> NodeStatus:
    stack = build_dispatcher(app_ctx.resolver(), app_ctx.settings())
    try:
        return await stack.dispatcher.status()
    finally:
        await stack.aclose()


@cli.command("monitor")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between trigger polls (default: OPENCLAW_TESCMD_TRIGGER_POLL_INTERVAL_MS)",
)
@global_options
def monitor_cmd(app_ctx: AppContext, interval: float | None) -> None:
    """Poll the node for fired trigger notifications until Ctrl+C."""
    try:
        asyncio.run(_monitor(app_ctx, interval))
    except KeyboardInterrupt:
        pass


async def _monitor(app_ctx: AppContext, interval: float | None) -> None:
    from openclaw_tescmd.services.trigger_monitor import TriggerMonitor

    settings = app_ctx.settings()
    if interval is None:
        interval = settings.trigger_poll_interval_ms / 1000
    formatter = app_ctx.formatter

    async def _print(notifications: list[dict[str, Any]]) -> None:
        if formatter.format == "json":
            formatter.output(notifications, command="trigger.poll")
        else:
            for note in notifications:
                formatter.rich.info(
                    f"[bold]{note.get('field', '?')}[/bold] fired "
                    f"(trigger {note.get('trigger_id', '?')}): {note.get('value')}"
                )

    # Never wake the vehicle from a background poll.
    stack = build_dispatcher(app_ctx.resolver(), settings, enable_fallback=False)
    monitor = TriggerMonitor(
        stack.dispatcher,
        interval=interval,
        debug=settings.debug,
        on_notifications=_print,
    )
    if formatter.format != "json":
        formatter.rich.info(f"Polling triggers every {interval:.0f}s. Press Ctrl+C to stop.")
    monitor.start()
    try:
        await asyncio.Event().wait()
    finally:
        await monitor.stop()
        await stack.aclose()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler."""
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(EXIT_FAILURE) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except Exception as exc:
        app_ctx = _extract_app_ctx()
        formatter = app_ctx.formatter if app_ctx else OutputFormatter()
        formatter.output_error(
            code=type(exc).__name__,
            message=str(exc),
            command=_get_command_name(),
        )
        raise SystemExit(EXIT_FAILURE) from exc


# ---------------------------------------------------------------------------
# Helpers for error handling
# ---------------------------------------------------------------------------


def _extract_app_ctx() -> AppContext | None:
    """Try to extract AppContext from the current Click context."""
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if isinstance(ctx.obj, AppContext):
            return ctx.obj
        ctx = ctx.parent
    return None


def _get_command_name() -> str:
    """Reconstruct a dotted command name from the Click context chain."""
    ctx = click.get_current_context(silent=True)
    parts: list[str] = []
    while ctx is not None:
        if ctx.info_name and ctx.info_name != "cli":
            parts.append(ctx.info_name)
        ctx = ctx.parent
    return ".".join(reversed(parts)) or "unknown"
