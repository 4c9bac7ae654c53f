"""Typer application and CLI entry point for falconkit.

The CLI is a thin front end over the resource services: each command loads
settings, opens a :class:`~falconkit.client.FalconClient`, awaits one
service call and renders the result. A failed
:class:`~falconkit.models.RequestResult` exits with the exit code of its
captured exception (see :mod:`falconkit.exit_codes`).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import typer
from pydantic import BaseModel

from falconkit import __version__
from falconkit.client import FalconClient
from falconkit.config import load_settings
from falconkit.exceptions import FalconError
from falconkit.exit_codes import EXIT_CONNECTION_ERROR, EXIT_GENERIC_FAILURE
from falconkit.models import RequestResult
from falconkit.output import OutputFormat, OutputManager, get_output, set_output
from falconkit.services import AlertService, DeviceService, SpotlightService

app = typer.Typer(
    name="falconkit",
    help="Query the CrowdStrike Falcon API: devices, alerts and vulnerabilities.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
devices_app = typer.Typer(no_args_is_help=True)
alerts_app = typer.Typer(no_args_is_help=True)
vulns_app = typer.Typer(no_args_is_help=True)

app.add_typer(devices_app, name="devices", help="Host inventory.")
app.add_typer(alerts_app, name="alerts", help="Alerts.")
app.add_typer(vulns_app, name="vulns", help="Spotlight vulnerabilities.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"falconkit {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to a JSON settings file."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    output_file: Optional[str] = typer.Option(None, "-o", "--output", help="Output file path."),
) -> None:
    """Install the global output manager and remember shared options."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    if isinstance(data, list):
        return [_jsonable(item) for item in data]
    return data


def _execute(ctx: typer.Context, call: Callable[[FalconClient], Awaitable[Any]]) -> Any:
    """Load settings, run *call* inside a client session and return its value.

    :class:`~falconkit.exceptions.FalconError` is reported and turned into
    the matching exit code.
    """
    config_path = (ctx.obj or {}).get("config_path")
    try:
        settings = load_settings(config_path)

        async def session() -> Any:
            async with FalconClient(settings) as client:
                return await call(client)

        return asyncio.run(session())
    except FalconError as exc:
        get_output().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc


def _emit(result: RequestResult[Any]) -> Any:
    """Return the data of a successful result, or exit with its error code."""
    if not result.success:
        exc = result.exception
        get_output().error(result.error_message or "Request failed")
        raise typer.Exit(code=exc.exit_code if isinstance(exc, FalconError) else EXIT_GENERIC_FAILURE)
    if result.api_errors:
        get_output().warning(f"{len(result.api_errors)} API-level error(s) reported")
    return result.data


# ------------------------------------------------------------------ #
# devices
# ------------------------------------------------------------------ #


@devices_app.command("servers")
def devices_servers(ctx: typer.Context) -> None:
    """List every server and domain controller."""
    result = _execute(ctx, lambda client: DeviceService(client).get_all_server_devices())
    devices = _emit(result)
    rows = [
        [
            d.hostname or "",
            d.device_id,
            d.os_product_name or d.platform_name or "",
            d.product_type_desc or "",
            d.last_seen or "",
        ]
        for d in devices
    ]
    get_output().print_table(
        ["hostname", "device_id", "os", "type", "last_seen"], rows, title="Servers"
    )


@devices_app.command("find")
def devices_find(
    ctx: typer.Context,
    hostname: str = typer.Argument(..., help="Hostname to look up."),
) -> None:
    """List the device ids registered under HOSTNAME."""
    result = _execute(ctx, lambda client: DeviceService(client).get_device_ids(hostname))
    get_output().format_response(_emit(result))


@devices_app.command("show")
def devices_show(
    ctx: typer.Context,
    aid: str = typer.Argument(..., help="Device id (AID)."),
) -> None:
    """Show one device's details."""
    result = _execute(ctx, lambda client: DeviceService(client).get_device_details(aid))
    device = _emit(result)
    if device is None:
        get_output().warning(f"No details returned for device {aid}")
        return
    get_output().format_response(_jsonable(device))


# ------------------------------------------------------------------ #
# alerts
# ------------------------------------------------------------------ #


@alerts_app.command("list")
def alerts_list(
    ctx: typer.Context,
    filter: Optional[str] = typer.Option(None, "--filter", "-f", help="FQL filter."),
) -> None:
    """List alert ids."""
    result = _execute(ctx, lambda client: AlertService(client).get_alert_ids(filter))
    get_output().format_response(_emit(result))


@alerts_app.command("show")
def alerts_show(
    ctx: typer.Context,
    ids: list[str] = typer.Argument(..., help="Alert ids."),
) -> None:
    """Show the details of one or more alerts."""
    result = _execute(ctx, lambda client: AlertService(client).get_alert_details(ids))
    get_output().format_response(_jsonable(_emit(result)))


# ------------------------------------------------------------------ #
# vulns
# ------------------------------------------------------------------ #


@vulns_app.command("list")
def vulns_list(
    ctx: typer.Context,
    aid: str = typer.Argument(..., help="Device id (AID)."),
) -> None:
    """List vulnerability ids for a host."""
    result = _execute(ctx, lambda client: SpotlightService(client).get_vulnerability_ids(aid))
    get_output().format_response(_emit(result))


@vulns_app.command("show")
def vulns_show(
    ctx: typer.Context,
    aid: str = typer.Argument(..., help="Device id (AID)."),
    filter: Optional[str] = typer.Option(None, "--filter", "-f", help="FQL filter (overrides the host filter)."),
    facets: bool = typer.Option(False, "--facets", help="Include remediation and evaluation logic."),
) -> None:
    """Show full vulnerability records for a host."""
    result = _execute(
        ctx,
        lambda client: SpotlightService(client).get_vulnerability_details(
            aid, filter=filter, use_facets=facets
        ),
    )
    get_output().format_response(_jsonable(_emit(result)))


# ------------------------------------------------------------------ #
# check
# ------------------------------------------------------------------ #


@app.command("check")
def check(ctx: typer.Context) -> None:
    """Verify that credentials work and the API answers."""
    reachable = _execute(ctx, lambda client: client.is_reachable())
    if not reachable:
        raise typer.Exit(code=EXIT_CONNECTION_ERROR)
    get_output().success("Falcon API is reachable")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to the data directory and return its path."""
    from falconkit.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``falconkit`` console script."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from falconkit.output import error

        if isinstance(exc, FalconError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
