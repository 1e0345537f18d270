"""Test accessories for telnetneg project."""
# std imports
import contextlib
import asyncio
import socket

# 3rd-party
import pytest

# local
from telnetneg.service import (NegotiationConfig, TelnetNegotiationService)


@pytest.fixture(scope="module", params=['127.0.0.1'])
def bind_host(request):
    """ Localhost bind address. """
    return request.param


@pytest.fixture
def unused_tcp_port():
    """ An unused TCP port on localhost. """
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


class Recorder:
    """Collaborators of TelnetNegotiationService that record each call."""

    def __init__(self):
        self.writes = []
        self.metadata = {}
        self.events = []
        self.closed = set()

    def socket_write(self, conn_id, data):
        if conn_id in self.closed:
            raise ConnectionError("connection {0} is closed".format(conn_id))
        self.writes.append((conn_id, bytes(data)))

    async def set_metadata(self, conn_id, key, value):
        self.metadata.setdefault(conn_id, {})[key] = value

    def get_metadata(self, conn_id, key):
        return self.metadata.get(conn_id, {}).get(key)

    def emit_event(self, name, payload):
        self.events.append((name, payload))

    def written(self, conn_id):
        return b''.join(data for _id, data in self.writes if _id == conn_id)

    def event_names(self):
        return [name for name, _ in self.events]


def make_service(ttype=True, charset="UTF-8", handlers=None):
    """Return started service and its recording collaborators."""
    recorder = Recorder()
    service = TelnetNegotiationService(
        socket_write=recorder.socket_write,
        set_metadata=recorder.set_metadata,
        get_metadata=recorder.get_metadata,
        emit_event=recorder.emit_event,
        config=NegotiationConfig(ttype=ttype, charset=charset),
    )
    if handlers is None:
        service.start()
    else:
        service.start(handlers)
    return service, recorder


@contextlib.asynccontextmanager
async def asyncio_connection(host, port):
    """Open raw asyncio connection, closing the writer on exit."""
    reader, writer = await asyncio.open_connection(host=host, port=port)
    try:
        yield reader, writer
    finally:
        writer.close()
        with contextlib.suppress(Exception):
            await writer.wait_closed()


__all__ = ('bind_host', 'unused_tcp_port', 'Recorder', 'make_service',
           'asyncio_connection')
