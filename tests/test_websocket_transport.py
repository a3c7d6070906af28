"""WebSocketTransport against a local websockets server."""

import asyncio
import json
import socket

import pytest
import websockets

from iotransit_cp import AsyncIoTransit, ClientEvent, ConnectionState


def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.mark.asyncio
async def test_handshake_auth_and_frames():
    seen = {}

    async def handler(ws):
        seen["subprotocol"] = ws.subprotocol
        seen["origin"] = ws.request.headers.get("Origin")
        seen["auth"] = json.loads(await ws.recv())
        await ws.send(b"\x00\x01\x02\x03")
        await ws.send(json.dumps({"t": "evt", "p": {"cmd": "hello", "args": [1], "dto": {"a": 2}}}))
        seen["from_client"] = json.loads(await ws.recv())
        await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0, subprotocols=["cp.iotransit.net"]) as server:
        port = server.sockets[0].getsockname()[1]
        client = AsyncIoTransit("A", control_plane_port=port, auto_reconnect=False)
        hello = asyncio.get_running_loop().create_future()
        closed = asyncio.Event()
        client.on("hello", hello.set_result)
        client.on(ClientEvent.CONNECTION_CLOSED, lambda _v: closed.set())

        client.connect()
        await client.wait_connected(timeout=5)
        assert await asyncio.wait_for(hello, timeout=5) == {"args": [1], "dto": {"a": 2}}
        assert client.router.binary_frames == 1
        assert client.router.binary_bytes == 4

        assert client.send({"t": "A", "p": {"cmd": "ping"}}) is True
        client.disconnect()
        await asyncio.wait_for(closed.wait(), timeout=5)

    assert seen["subprotocol"] == "cp.iotransit.net"
    assert seen["origin"] == "control"
    assert seen["auth"] == {"t": "authapp", "p": {"user": "ext", "pass": "external", "accept": ["A"]}}
    assert seen["from_client"] == {"t": "A", "p": {"cmd": "ping"}}
    assert client.connection_state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_unreachable_endpoint_reports_failure():
    client = AsyncIoTransit("A", control_plane_port=free_port(), auto_reconnect=False)
    failed = asyncio.get_running_loop().create_future()
    client.on(ClientEvent.CONNECTION_FAILED, failed.set_result)
    client.connect()
    err = await asyncio.wait_for(failed, timeout=5)
    assert err.code == "connection_failed"
    assert client.connection_state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_server_close_triggers_reconnect():
    connections = 0

    async def handler(ws):
        nonlocal connections
        connections += 1
        await ws.recv()
        if connections == 1:
            await ws.close()
        else:
            await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0, subprotocols=["cp.iotransit.net"]) as server:
        port = server.sockets[0].getsockname()[1]
        client = AsyncIoTransit("A", control_plane_port=port, reconnect_delay_ms=20)
        established = []
        client.on(ClientEvent.CONNECTION_ESTABLISHED, established.append)
        client.connect()
        for _ in range(100):
            if len(established) == 2:
                break
            await asyncio.sleep(0.02)
        assert len(established) == 2
        assert connections == 2
        client.disconnect()
        await asyncio.sleep(0.1)
    assert client.connection_state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_from_failed_handler_retries():
    client = AsyncIoTransit("A", control_plane_port=free_port(), auto_reconnect=False)
    failures = []

    def retry_once(err):
        failures.append(err)
        if len(failures) == 1:
            client.connect()

    client.on(ClientEvent.CONNECTION_FAILED, retry_once)
    client.connect()
    for _ in range(100):
        if len(failures) == 2:
            break
        await asyncio.sleep(0.02)
    assert len(failures) == 2
    assert client.connection_state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_from_closed_handler_reopens():
    connections = 0

    async def handler(ws):
        nonlocal connections
        connections += 1
        await ws.recv()
        if connections == 1:
            await ws.close()
        else:
            await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0, subprotocols=["cp.iotransit.net"]) as server:
        port = server.sockets[0].getsockname()[1]
        client = AsyncIoTransit("A", control_plane_port=port, auto_reconnect=False)
        established = []
        client.on(ClientEvent.CONNECTION_ESTABLISHED, established.append)
        client.once(ClientEvent.CONNECTION_CLOSED, lambda _v: client.connect())
        client.connect()
        for _ in range(100):
            if len(established) == 2:
                break
            await asyncio.sleep(0.02)
        assert len(established) == 2
        assert client.connection_state is ConnectionState.CONNECTED
        client.disconnect()
        await asyncio.sleep(0.1)
    assert client.connection_state is ConnectionState.DISCONNECTED
