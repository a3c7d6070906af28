"""CLI: iotransit config show|set|reset"""

import json

import click
from rich.console import Console
from rich.table import Table

from iotransit_cp.config import ClientConfig

console = Console()

# applet identity is always given on the command line
SETTABLE_KEYS = sorted(set(ClientConfig.model_fields) - {"applet_id"})


def _load_config() -> dict:
    from iotransit_cp.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from iotransit_cp.cli.main import _save_config
    _save_config(cfg)


@click.group()
def config():
    """Saved connection defaults (~/.iotransit/config.json)."""


@config.command("show")
def config_show():
    """Show saved defaults."""
    cfg = _load_config()
    if not cfg:
        console.print("[yellow]No saved defaults.[/yellow]")
        return
    table = Table("Key", "Value")
    for key, value in sorted(cfg.items()):
        table.add_row(key, json.dumps(value))
    console.print(table)


@config.command("set")
@click.argument("key", type=click.Choice(SETTABLE_KEYS))
@click.argument("value")
def config_set(key: str, value: str):
    """Save a default. VALUE is parsed as JSON when possible."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    _save_config({**_load_config(), key: parsed})
    console.print(f"[green]{key} = {json.dumps(parsed)}[/green]")


@config.command("reset")
def config_reset():
    """Clear saved defaults."""
    _save_config({})
    console.print("[green]Defaults cleared.[/green]")
