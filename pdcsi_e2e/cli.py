"""
pdcsi-e2e CLI:
* pdcsi-e2e acquire <type> [--hold]
* pdcsi-e2e release <name>
* pdcsi-e2e service-account <project>
* pdcsi-e2e config list|get|set
"""
import threading
from typing import Optional

import typer
from rich.console import Console

from pdcsi_e2e.config_paths import load_config_path, load_e2e_config
from pdcsi_e2e.exceptions import E2EException, FatalE2EException
from pdcsi_e2e.gcp.project import get_default_service_account
from pdcsi_e2e.leasing import DIRTY, LeaseHeartbeat, get_boskos_project
from pdcsi_e2e.prow import new_boskos_client
from pdcsi_e2e.utils import logger

console = Console()
app = typer.Typer(name="pdcsi-e2e")
config_app = typer.Typer(name="pdcsi-e2e-config")
app.add_typer(config_app, name="config")


@app.callback()
def main(verbosity: Optional[int] = typer.Option(None, "--verbosity", "-v", help="Log verbosity, 4 shows debug logs.")):
    if verbosity is None:
        verbosity = load_e2e_config().get_flag("verbosity")
    logger.set_verbosity(verbosity)


@app.command()
def acquire(
    resource_type: str = typer.Argument("gce-project", help="Boskos resource type to lease."),
    hold: bool = typer.Option(False, "--hold", help="Keep the lease alive with heartbeats until interrupted."),
):
    """Lease a free resource from Boskos and print its name."""
    config = load_e2e_config()
    client = new_boskos_client(config)
    try:
        resource = get_boskos_project(client, resource_type, config=config)
    except FatalE2EException as e:
        console.print(e.pretty_print_str())
        raise typer.Exit(code=1)
    console.print(f"[bold][green]{resource.name}[/green][/bold]")
    if not hold:
        return

    stop = threading.Event()
    with LeaseHeartbeat(client, resource.name, interval=config.heartbeat_interval):
        console.print(f"[bright_black]Holding {resource.name}, press Ctrl-C to stop[/bright_black]")
        try:
            stop.wait()
        except KeyboardInterrupt:
            pass


@app.command()
def release(
    name: str = typer.Argument(..., help="Name of the leased resource."),
    dest: str = typer.Option(DIRTY, help="State to release the resource into."),
):
    """Release a leased resource back to Boskos."""
    client = new_boskos_client()
    try:
        client.release_one(name, dest)
    except E2EException as e:
        console.print(e.pretty_print_str())
        raise typer.Exit(code=1)
    console.print(f"Released [bold]{name}[/bold] to {dest}")


@app.command("service-account")
def service_account(project: str):
    """Print the default compute service account of a project."""
    try:
        console.print(get_default_service_account(project))
    except E2EException as e:
        console.print(e.pretty_print_str())
        raise typer.Exit(code=1)


@config_app.command("list")
def list_flags():
    """List all available config keys"""
    config = load_e2e_config(env_overrides=False)
    for key in config.valid_flags():
        console.print(f"[bold][blue]{key}[/blue] = [italic][green]{config.get_flag(key)}[/green][/italic][/bold]")


@config_app.command()
def get(key: str):
    """Get a config value."""
    config = load_e2e_config(env_overrides=False)
    try:
        console.print(f"[bold][blue]{key}[/blue] = [italic][green]{config.get_flag(key)}[/green][/italic]")
    except KeyError:
        console.print(f"[red][bold]{key}[/bold] is not a valid config key[/red]")
        raise typer.Exit(code=1)


@config_app.command()
def set(key: str, value: str):
    """Set a config value."""
    config = load_e2e_config(env_overrides=False)
    try:
        old = config.get_flag(key)
        config.set_flag(key, value)
    except (KeyError, ValueError) as e:
        console.print(f"[red][bold]{key}[/bold] could not be set: {e}[/red]")
        raise typer.Exit(code=1)
    config.to_config_file(load_config_path())
    console.print(f"[bold][blue]{key}[/blue] = [italic][green]{config.get_flag(key)}[/green][/italic][/bold] [bright_black](was {old})[/bright_black]")
