"""CLI: iotransit listen"""

import asyncio
import json
from typing import Any

import click
from rich.console import Console

from iotransit_cp.cli.main import connection_options
from iotransit_cp.connection import ConnectionState
from iotransit_cp.events import ClientEvent
from iotransit_cp.models.envelope import Envelope

console = Console()

STATUS_STYLES = {
    ClientEvent.CONNECTION_ESTABLISHED: "green",
    ClientEvent.CONNECTION_CLOSED: "yellow",
    ClientEvent.CONNECTION_FAILED: "red",
    ClientEvent.CONNECTION_ERROR: "red",
    ClientEvent.SEND_ERROR: "red",
}


def _get_client(applet_id: str, **options: Any):
    from iotransit_cp.cli.main import _get_client
    return _get_client(applet_id, **options)


def _run(coro):
    from iotransit_cp.cli.main import _run
    return _run(coro)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Envelope):
        return value.to_wire()
    if isinstance(value, BaseException):
        return str(value)
    return value


@click.command("listen")
@click.argument("applet_id")
@click.option("-a", "--accept", "accepts", multiple=True, help="Tag to accept (repeatable, default: applet id)")
@click.option("--raw", is_flag=True, help="Surface evt envelopes verbatim as rawEnvelope")
@click.option("--json-output", "--json", is_flag=True)
@click.option("--no-reconnect", is_flag=True, help="Exit when the connection ends instead of reconnecting")
@connection_options
def listen_cmd(
    applet_id: str, accepts: tuple[str, ...], raw: bool, json_output: bool, no_reconnect: bool, **conn: Any,
):
    """Connect and print received events until Ctrl+C (or the connection ends, with --no-reconnect)."""

    def show(name: str, value: Any) -> None:
        if json_output:
            click.echo(json.dumps({"event": name, "value": to_jsonable(value)}, default=str))
        elif name in STATUS_STYLES:
            console.print(f"[{STATUS_STYLES[name]}]{name}:[/{STATUS_STYLES[name]}] {value}")
        elif name == ClientEvent.RAW_ENVELOPE:
            console.print(f"[cyan]{value.type}[/cyan] {json.dumps(value.payload, default=str)}")
        else:
            console.print(f"[magenta]{name}[/magenta] {json.dumps(value, default=str)}")

    async def _listen():
        client = _get_client(
            applet_id,
            accepts=list(accepts) or None,
            emit_raw_envelopes=raw or None,
            auto_reconnect=False if no_reconnect else None,
            **conn,
        )
        client.on_any(show)
        finished = asyncio.Event()

        def check_finished(_value: Any) -> None:
            if client.connection_state is ConnectionState.DISCONNECTED:
                finished.set()

        client.on(ClientEvent.CONNECTION_CLOSED, check_finished)
        client.on(ClientEvent.CONNECTION_FAILED, check_finished)
        if not json_output:
            console.print(f"[dim]Listening as {client.applet_id} on {client.config.url} "
                          f"(tags: {', '.join(client.config.accept_tags)}); Ctrl+C to exit[/dim]")
        client.connect()
        try:
            await finished.wait()
        finally:
            client.disconnect()

    try:
        _run(_listen())
    except KeyboardInterrupt:
        pass
