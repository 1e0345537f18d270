"""Test TelnetServer negotiation over TCP."""
# std imports
import asyncio

# 3rd party
import pytest

# local
from telnetneg.events import EventBus
from telnetneg.handlers import OptionHandler
from telnetneg.metadata import MetadataStore
from telnetneg.server import TelnetServer, Connections, create_server
from telnetneg.service import NegotiationConfig
from telnetneg.telopt import (IAC, DO, DONT, WILL, SB, SE, IS, SEND, REQUEST,
                              ACCEPTED, TTYPE, CHARSET, ECHO)
from telnetneg.tests.accessories import (
    bind_host, unused_tcp_port, asyncio_connection, make_service)


def wait_event(events, name):
    """Return future resolved with payload of next event ``name``."""
    fut = asyncio.get_running_loop().create_future()

    def callback(_name, payload):
        if not fut.done():
            fut.set_result(payload)

    events.subscribe(name, callback)
    return fut


@pytest.mark.asyncio
async def test_server_ttype_and_charset(bind_host, unused_tcp_port):
    """A cooperating client negotiates terminal type and charset."""
    metadata, events = MetadataStore(), EventBus()
    ttype_set = wait_event(events, 'telnet.ttype.set')
    charset_set = wait_event(events, 'telnet.charset.set')
    server = await create_server(
        host=bind_host, port=unused_tcp_port, metadata=metadata,
        events=events, config=NegotiationConfig(ttype=True, charset='UTF-8'))
    try:
        async with asyncio_connection(bind_host, unused_tcp_port) as (reader, writer):
            val = await asyncio.wait_for(reader.readexactly(6), 0.5)
            assert val == IAC + DO + TTYPE + IAC + WILL + CHARSET

            writer.write(IAC + WILL + TTYPE)
            val = await asyncio.wait_for(reader.readexactly(6), 0.5)
            assert val == IAC + SB + TTYPE + SEND + IAC + SE

            writer.write(IAC + SB + TTYPE + IS + b'xterm-256color' + IAC + SE)
            payload = await asyncio.wait_for(ttype_set, 0.5)
            assert payload['ttype'] == 'xterm-256color'

            writer.write(IAC + DO + CHARSET)
            expected = IAC + SB + CHARSET + REQUEST + b' UTF-8' + IAC + SE
            val = await asyncio.wait_for(reader.readexactly(len(expected)), 0.5)
            assert val == expected

            writer.write(IAC + SB + CHARSET + ACCEPTED + b'UTF-8' + IAC + SE)
            payload = await asyncio.wait_for(charset_set, 0.5)
            conn_id = payload['id']
            assert payload['charset'] == 'UTF-8'
            assert metadata.get_metadata(conn_id, 'ttype') == 'xterm-256color'
            assert metadata.get_metadata(conn_id, 'ttypeEnabled') is True
            assert metadata.get_metadata(conn_id, 'charset') == 'UTF-8'
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_server_ttype_disabled(bind_host, unused_tcp_port):
    """With ttype and charset disabled only DONT TTYPE is sent."""
    server = await create_server(
        host=bind_host, port=unused_tcp_port,
        config=NegotiationConfig(ttype=False, charset=False))
    try:
        async with asyncio_connection(bind_host, unused_tcp_port) as (reader, writer):
            val = await asyncio.wait_for(reader.readexactly(3), 0.5)
            assert val == IAC + DONT + TTYPE
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(reader.read(1), 0.1)
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_server_inband_data_and_extra_handler(bind_host, unused_tcp_port):
    """Text reaches on_inband(); additional handlers are dispatched."""
    _inband = asyncio.Queue()
    _handled = asyncio.Future()

    class ServerTestInband(TelnetServer):
        def on_inband(self, data):
            super().on_inband(data)
            _inband.put_nowait(data)

    class EchoWatcher(OptionHandler):
        name = 'echo-watcher'

        def match(self, frame):
            return frame == IAC + WILL + ECHO

        async def handle(self, conn_id, context, frame):
            _handled.set_result(await context.get_metadata(conn_id, 'echoEnabled'))

    server = await create_server(
        host=bind_host, port=unused_tcp_port,
        protocol_factory=ServerTestInband, handlers=[EchoWatcher])
    try:
        async with asyncio_connection(bind_host, unused_tcp_port) as (reader, writer):
            await asyncio.wait_for(reader.readexactly(6), 0.5)
            writer.write(b'hello\r\n')
            assert await asyncio.wait_for(_inband.get(), 0.5) == b'hello\r\n'

            writer.write(IAC + WILL + ECHO)
            # built-in will-echo handler is registered, and runs, first.
            assert await asyncio.wait_for(_handled, 0.5) is True
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_server_connection_lost_cleanup(bind_host, unused_tcp_port):
    metadata, events = MetadataStore(), EventBus()
    enabled = wait_event(events, 'telnet.echo.enabled')
    server = await create_server(
        host=bind_host, port=unused_tcp_port, metadata=metadata, events=events)
    try:
        async with asyncio_connection(bind_host, unused_tcp_port) as (reader, writer):
            await asyncio.wait_for(reader.readexactly(6), 0.5)
            writer.write(IAC + WILL + ECHO)
            conn_id = (await asyncio.wait_for(enabled, 0.5))['id']
            assert conn_id in metadata

        for _ in range(50):
            if conn_id not in metadata:
                break
            await asyncio.sleep(0.01)
        assert conn_id not in metadata
    finally:
        server.close()
        await server.wait_closed()


class FakeTransport:
    def __init__(self, closing=False):
        self.closing = closing
        self.writes = []
        self.reading = []

    def get_extra_info(self, name, default=None):
        return default

    def pause_reading(self):
        self.reading.append(False)

    def resume_reading(self):
        self.reading.append(True)

    def close(self):
        self.closing = True

    def is_closing(self):
        return self.closing

    def write(self, data):
        self.writes.append(data)


def test_connections_socket_write():
    connections = Connections(c1=FakeTransport(), c2=FakeTransport(closing=True))
    connections.socket_write('c1', IAC + DO + TTYPE)
    assert connections['c1'].writes == [IAC + DO + TTYPE]
    with pytest.raises(ConnectionError):
        connections.socket_write('c2', IAC + DO + TTYPE)
    with pytest.raises(ConnectionError):
        connections.socket_write('c3', IAC + DO + TTYPE)


@pytest.mark.asyncio
async def test_server_pauses_reading_until_queue_drains():
    """Reading stops at the high-water mark and resumes at the low one."""
    service, recorder = make_service()
    transport = FakeTransport()
    protocol = TelnetServer(service=service, connections=Connections())
    protocol.high_water, protocol.low_water = 4, 1
    protocol.connection_made(transport)
    for _ in range(4):
        protocol.data_received(b'text')
    assert transport.reading == [False]

    for _ in range(20):
        if transport.reading == [False, True]:
            break
        await asyncio.sleep(0)
    assert transport.reading == [False, True]
    assert recorder.written(protocol.conn_id) == (
        IAC + DO + TTYPE + IAC + WILL + CHARSET)
    protocol.connection_lost(None)
    assert transport.closing is True
