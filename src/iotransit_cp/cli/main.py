"""
IoTransit control plane CLI — `iotransit` command.

Commands:
  iotransit listen <applet-id>         Print received events until Ctrl+C
  iotransit send <applet-id> <type>    Send one envelope
  iotransit config <cmd>               Manage saved connection defaults
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install iotransit-cp[cli]")

from iotransit_cp import __version__
from iotransit_cp.client import AsyncIoTransit

console = Console()
CONFIG_FILE = Path.home() / ".iotransit" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client(applet_id: str, **options: Any) -> AsyncIoTransit:
    """Saved config first, then command-line options; unset options are skipped."""
    return AsyncIoTransit(_load_config(), applet_id=applet_id, **options)


def _run(coro):
    return asyncio.run(coro)


def connection_options(fn: Callable) -> Callable:
    """Options shared by every command that opens a connection."""
    fn = click.option("--host", "control_plane_host", default=None, help="Control plane host")(fn)
    fn = click.option("--port", "control_plane_port", type=int, default=None, help="Control plane port")(fn)
    fn = click.option("--user", "auth_user", default=None)(fn)
    fn = click.option("--password", "auth_pass", default=None)(fn)
    fn = click.option("--secure/--no-secure", "use_secure_transport", default=None, help="Use wss://")(fn)
    return fn


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log connection activity")
def main(verbose: bool):
    """IoTransit control plane client."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# Register subcommands from separate modules
from iotransit_cp.cli.listen import listen_cmd  # noqa: E402
from iotransit_cp.cli.send import send_cmd  # noqa: E402
from iotransit_cp.cli.config import config  # noqa: E402

main.add_command(listen_cmd)
main.add_command(send_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
