"""
Integration tests against a running IoTransit control plane.

Requires environment variables:
  IOTRANSIT_HOST       — (optional) defaults to 127.0.0.1
  IOTRANSIT_PORT       — (optional) defaults to 10022
  IOTRANSIT_APPLET_ID  — (optional) defaults to pytest-applet

Run: IOTRANSIT_INTEGRATION=1 pytest tests/integration/ -v
"""

import asyncio
import os

import pytest

from iotransit_cp import AsyncIoTransit, ClientEvent, ConnectionState

SKIP = not os.environ.get("IOTRANSIT_INTEGRATION")
HOST = os.environ.get("IOTRANSIT_HOST", "127.0.0.1")
PORT = int(os.environ.get("IOTRANSIT_PORT", "10022"))
APPLET_ID = os.environ.get("IOTRANSIT_APPLET_ID", "pytest-applet")

pytestmark = pytest.mark.skipif(SKIP, reason="IOTRANSIT_INTEGRATION not set")


def make_client(**options) -> AsyncIoTransit:
    return AsyncIoTransit(APPLET_ID, control_plane_host=HOST, control_plane_port=PORT, **options)


class TestConnectionLifecycle:
    @pytest.mark.asyncio
    async def test_connects_and_disconnects(self):
        client = make_client(auto_reconnect=False)
        closed = asyncio.Event()
        client.on(ClientEvent.CONNECTION_CLOSED, lambda _v: closed.set())
        client.connect()
        await client.wait_connected(timeout=10)
        assert client.connected
        client.disconnect()
        await asyncio.wait_for(closed.wait(), timeout=10)
        assert client.connection_state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_unreachable_port_reports_failure(self):
        client = AsyncIoTransit(APPLET_ID, control_plane_host=HOST, control_plane_port=1, auto_reconnect=False)
        failed = asyncio.Event()
        client.on(ClientEvent.CONNECTION_FAILED, lambda _err: failed.set())
        client.connect()
        await asyncio.wait_for(failed.wait(), timeout=15)
        assert client.connection_state is ConnectionState.DISCONNECTED


class TestMessaging:
    @pytest.mark.asyncio
    async def test_self_addressed_envelope_round_trip(self):
        client = make_client(auto_reconnect=False)
        received = asyncio.Event()
        client.on(ClientEvent.RAW_ENVELOPE, lambda env: env.payload.get("cmd") == "ping" and received.set())
        async with client:
            client.send({"t": APPLET_ID, "p": {"cmd": "ping"}})
            await asyncio.wait_for(received.wait(), timeout=10)
