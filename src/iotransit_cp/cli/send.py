"""CLI: iotransit send"""

import asyncio
import json
from typing import Any

import click
from rich.console import Console

from iotransit_cp.cli.main import connection_options
from iotransit_cp.events import ClientEvent
from iotransit_cp.transport.envelope import build_envelope

console = Console()


def _get_client(applet_id: str, **options: Any):
    from iotransit_cp.cli.main import _get_client
    return _get_client(applet_id, **options)


def _run(coro):
    from iotransit_cp.cli.main import _run
    return _run(coro)


@click.command("send")
@click.argument("applet_id")
@click.argument("envelope_type")
@click.option("-p", "--payload", default="{}", help="Payload as a JSON object")
@connection_options
def send_cmd(applet_id: str, envelope_type: str, payload: str, **conn: Any):
    """Send a single envelope to the control plane."""
    try:
        body = json.loads(payload)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--payload")
    if not isinstance(body, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--payload")

    async def _send() -> bool:
        client = _get_client(applet_id, auto_reconnect=False, **conn)
        closed = asyncio.Event()
        outcome = asyncio.get_running_loop().create_future()

        def settle(failure: Any) -> None:
            if not outcome.done():
                outcome.set_result(failure)

        client.on(ClientEvent.CONNECTION_CLOSED, lambda _value: closed.set())
        client.on(ClientEvent.SEND_ERROR, lambda err: console.print(f"[red]Send failed: {err}[/red]"))
        client.once(ClientEvent.CONNECTION_ESTABLISHED, lambda _value: settle(None))
        client.once(ClientEvent.CONNECTION_FAILED, settle)
        client.connect()
        try:
            with console.status(f"Connecting to {client.config.url}..."):
                failure = await asyncio.wait_for(outcome, timeout=client.config.open_timeout_s)
        except asyncio.TimeoutError:
            failure = "timed out"
        if failure is not None:
            client.disconnect()
            console.print(f"[red]Could not connect to {client.config.url}: {failure}[/red]")
            return False
        sent = client.send(build_envelope(envelope_type, body))
        # let the queued frame reach the socket before closing it
        await asyncio.sleep(0)
        client.disconnect()
        await asyncio.wait_for(closed.wait(), timeout=client.config.open_timeout_s)
        return sent

    if not _run(_send()):
        raise SystemExit(1)
    console.print(f"[green]Sent {envelope_type} envelope.[/green]")
