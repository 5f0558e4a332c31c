"""Command-line interface for inspecting network snapshots.

Each command loads a YAML property snapshot, replays it through a
:class:`NetworkLibrary` and renders the resulting model.

Example:
    $ netstate show snapshots/home.yaml
    $ netstate networks snapshots/home.yaml --json
    $ netstate plans snapshots/home.yaml
"""

import asyncio
import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from netstate.config import LoggingConfig, NetStateConfig
from netstate.dataplan import DataLeft
from netstate.exceptions import NetStateError
from netstate.library import NetworkLibrary
from netstate.logging_setup import LoggerManager
from netstate.network import CellularNetwork, WifiNetwork
from netstate.snapshot import load_snapshot

console = Console()

STATE_STYLES = {
    "online": "green",
    "ready": "green",
    "portal": "yellow",
    "failure": "red",
    "activation-failure": "red",
}

DATA_LEFT_STYLES = {
    DataLeft.NORMAL: "green",
    DataLeft.LOW: "yellow",
    DataLeft.VERY_LOW: "red",
    DataLeft.NONE: "bold red",
}


def run_async(coro):
    """Run async coroutine in sync context."""
    return asyncio.run(coro)


def _load_library(ctx: click.Context, snapshot_path: str) -> NetworkLibrary:
    snapshot = load_snapshot(snapshot_path)
    return run_async(snapshot.build_library(ctx.obj["config"]))


def _fail(ctx: click.Context, error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    if ctx.obj.get("verbose"):
        import traceback
        console.print(traceback.format_exc())
    sys.exit(1)


@click.group()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Log output format",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[str], log_format: Optional[str]) -> None:
    """Network entity state inspection commands.

    Replay a snapshot of stack properties and show the resulting devices,
    networks and data plans.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    try:
        config = NetStateConfig.from_yaml(config_path) if config_path else NetStateConfig.from_env()
    except (NetStateError, FileNotFoundError) as e:
        _fail(ctx, e)
        return

    logging_config = LoggingConfig(
        level="DEBUG" if verbose else config.logging.level,
        format=log_format or config.logging.format,
        output_file=config.logging.output_file,
    )
    manager = LoggerManager(logging_config)
    manager.configure()
    ctx.call_on_close(manager.shutdown)

    ctx.obj["config"] = config


@cli.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, snapshot: str, json_output: bool) -> None:
    """Show devices and the active network of each kind."""
    try:
        library = _load_library(ctx, snapshot)
    except (NetStateError, FileNotFoundError) as e:
        _fail(ctx, e)
        return

    active = {
        "ethernet": library.ethernet_network,
        "wifi": library.wifi_network,
        "cellular": library.cellular_network,
        "vpn": library.virtual_network,
    }

    if json_output:
        data = {
            "devices": [device.to_dict() for device in library.devices],
            "active": {kind: network.to_dict() if network else None for kind, network in active.items()},
            "connected": library.connected(),
            "connecting": library.connecting(),
        }
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title="Devices")
    table.add_column("Path", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Powered")
    table.add_column("Scanning")
    table.add_column("SIM")

    for device in library.devices:
        sim = ""
        if device.is_cellular:
            sim = device.sim_lock_state.value
            if device.sim_retries_known:
                sim += f" ({device.sim_retries_left} left)"
        table.add_row(
            device.device_path,
            device.type.value,
            "yes" if device.powered else "no",
            "yes" if device.scanning else "no",
            sim,
        )
    console.print(table)

    console.print("\n[bold]Active Networks:[/bold]")
    for kind, network in active.items():
        if network is None:
            console.print(f"  {kind}: [dim]none[/dim]")
            continue
        style = STATE_STYLES.get(network.state.value, "white")
        address = f" {network.ip_address}" if network.ip_address else ""
        console.print(f"  {kind}: {network.name} [{style}]{network.state.value}[/{style}]{address}")


@cli.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--remembered", "-r", is_flag=True, help="List remembered networks instead")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def networks(ctx: click.Context, snapshot: str, remembered: bool, json_output: bool) -> None:
    """List visible (or remembered) networks."""
    try:
        library = _load_library(ctx, snapshot)
    except (NetStateError, FileNotFoundError) as e:
        _fail(ctx, e)
        return

    entries = library.remembered_networks if remembered else library.networks

    if json_output:
        click.echo(json.dumps([network.to_dict() for network in entries], indent=2))
        return

    if not entries:
        console.print("[yellow]No networks found[/yellow]")
        return

    table = Table(title="Remembered Networks" if remembered else "Visible Networks")
    table.add_column("Path", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Security")
    table.add_column("Strength", justify="right")
    table.add_column("IP Address")

    for network in entries:
        style = STATE_STYLES.get(network.state.value, "white")
        security = network.get_encryption_string() if isinstance(network, WifiNetwork) else ""
        table.add_row(
            network.service_path,
            network.connection_type.value,
            network.name,
            f"[{style}]{network.state.value}[/{style}]",
            security,
            str(network.strength) if network.strength else "",
            network.ip_address,
        )

    console.print(table)
    console.print(f"\n[bold]Total: {len(entries)} network(s)[/bold]")


@cli.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def plans(ctx: click.Context, snapshot: str, json_output: bool) -> None:
    """Show cellular data plans and remaining usage."""
    try:
        library = _load_library(ctx, snapshot)
    except (NetStateError, FileNotFoundError) as e:
        _fail(ctx, e)
        return

    cellular: list[CellularNetwork] = library.cellular_networks

    if json_output:
        data = [
            {
                "service_path": network.service_path,
                "name": network.name,
                "data_left": network.data_left.value,
                "account_url": library.account_info_url(network.service_path),
                "plans": [plan.to_dict() for plan in library.get_data_plans(network.service_path)],
            }
            for network in cellular
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if not cellular:
        console.print("[yellow]No cellular networks found[/yellow]")
        return

    thresholds = ctx.obj["config"].thresholds
    for network in cellular:
        style = DATA_LEFT_STYLES.get(network.data_left, "white")
        console.print(
            f"[bold]{network.name or network.service_path}[/bold] "
            f"data left: [{style}]{network.data_left.value}[/{style}]"
        )

        table = Table()
        table.add_column("Plan", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Remaining Data", justify="right")
        table.add_column("Remaining Minutes", justify="right")
        table.add_column("Warning")

        for plan in library.get_data_plans(network.service_path):
            table.add_row(
                plan.name,
                plan.plan_type.value,
                f"{plan.remaining_data():,}",
                str(plan.remaining_minutes()),
                "[red]yes[/red]" if plan.needs_warning(thresholds) else "no",
            )
        console.print(table)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
