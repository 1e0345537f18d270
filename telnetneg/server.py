"""
The ``main`` function here is wired to the command line tool by name
telnetneg-server.  If this server's PID receives the SIGTERM signal, it
attempts to shutdown gracefully.

The :class:`TelnetServer` protocol connects asyncio transports to a shared
:class:`~.TelnetNegotiationService`: each accepted connection is given an
id, negotiation is opened, and every chunk of bytes received is offered to
the service in the order received.
"""

# std imports
import collections
import argparse
import asyncio
import logging
import signal
import uuid
import os

# local
from . import accessories
from .events import EventBus
from .metadata import MetadataStore
from .service import NegotiationConfig, TelnetNegotiationService

__all__ = ("TelnetServer", "Connections", "create_server", "run_server",
           "parse_server_args")

CONFIG = collections.namedtuple(
    "CONFIG",
    [
        "host",
        "port",
        "loglevel",
        "logfile",
        "logfmt",
        "ttype",
        "charset",
        "handlers",
    ],
)(
    host="localhost",
    port=int(os.environ.get("TELNETNEG_PORT", 2323)),
    loglevel="info",
    logfile=None,
    logfmt=accessories._DEFAULT_LOGFMT,
    ttype=True,
    charset="UTF-8",
    handlers=(),
)
logger = logging.getLogger("telnetneg.server")


class Connections(dict):
    """Mapping of connection id to transport, providing ``socket_write``."""

    def socket_write(self, conn_id, data):
        """
        Write ``data`` to transport of connection ``conn_id``.

        :raises ConnectionError: connection is unknown or closing.
        """
        transport = self.get(conn_id)
        if transport is None or transport.is_closing():
            raise ConnectionError(
                "connection {0} is closed".format(conn_id))
        transport.write(data)


class TelnetServer(asyncio.Protocol):
    """Telnet Server protocol performing option negotiation."""

    _transport = None
    _closing = False
    _paused = False

    #: Reading from the transport is paused while this many received chunks
    #: await processing, and resumed once no more than :attr:`low_water`
    #: remain.
    high_water = 64
    low_water = 16

    def __init__(self, service, connections, metadata=None):
        """Class initializer."""
        super().__init__()
        self.service = service
        self.conn_id = uuid.uuid4().hex
        self._connections = connections
        self._metadata = metadata
        self._queue = asyncio.Queue()
        self._task = None

    def __repr__(self):
        hostport = self.get_extra_info("peername", ["-", "closing"])[:2]
        return "<Peer {0} {1} {2}>".format(self.conn_id, *hostport)

    def get_extra_info(self, name, default=None):
        """Get optional transport information."""
        if self._transport:
            return self._transport.get_extra_info(name, default)
        return default

    # Base protocol methods

    def connection_made(self, transport):
        self._transport = transport
        self._connections[self.conn_id] = transport
        logger.info("Connection from %s", self)
        self._task = asyncio.ensure_future(self._process())
        self._task.add_done_callback(self._process_done)

    def data_received(self, data):
        self._queue.put_nowait(data)
        if not self._paused and self._queue.qsize() >= self.high_water:
            logger.debug("Pause reading for %s", self)
            self._paused = True
            self._transport.pause_reading()

    def eof_received(self):
        logger.debug("EOF from client, closing.")
        self.connection_lost(None)

    def connection_lost(self, exc):
        if self._closing:
            return
        self._closing = True

        if exc is None:
            logger.info("Connection closed for %s", self)
        else:
            logger.info("Connection lost for %s: %s", self, exc)

        if self._task is not None:
            self._task.cancel()
        self._connections.pop(self.conn_id, None)
        self.service.on_disconnect(self.conn_id)
        if self._metadata is not None:
            self._metadata.discard(self.conn_id)
        if self._transport is not None:
            self._transport.close()
        self._transport = None

    # new methods

    def on_inband(self, data):
        """
        Callback receives bytes that are not telnet commands.

        The default implementation logs and discards them.
        """
        logger.debug("connection: {0} {1} bytes in-band".format(
            self.conn_id, len(data)))

    async def _process(self):
        await self.service.on_connection(self.conn_id)
        while True:
            data = await self._queue.get()
            if self._paused and self._queue.qsize() <= self.low_water:
                logger.debug("Resume reading for %s", self)
                self._paused = False
                if self._transport is not None:
                    self._transport.resume_reading()
            if not await self.service.on_data(self.conn_id, data):
                self.on_inband(data)

    def _process_done(self, task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Negotiation failed for %s: %r", self, exc)
            accessories.log_exception(
                logger.warning, type(exc), exc, exc.__traceback__)


async def create_server(host=None, port=23, protocol_factory=TelnetServer,
                        config=None, handlers=(), metadata=None, events=None):
    """
    Create a TCP Telnet server negotiating options with each client.

    :param str host: bind address, or sequence of addresses.
    :param int port: listen port for TCP Server.
    :param TelnetServer protocol_factory: An alternate protocol factory for
        the server, when unspecified, :class:`TelnetServer` is used.
    :param NegotiationConfig config: negotiation settings, by default
        TTYPE and CHARSET ``UTF-8`` negotiation are enabled.
    :param handlers: option handlers registered after the built-in ones.
        A handler of the same name as a built-in one replaces it.
    :param MetadataStore metadata: connection metadata store, a new
        :class:`~.MetadataStore` when unspecified.
    :param EventBus events: event publisher, a new :class:`~.EventBus`
        when unspecified.

    :return asyncio.Server: The return value is the same as
        :meth:`asyncio.loop.create_server`.
    """
    config = config or NegotiationConfig(ttype=CONFIG.ttype,
                                         charset=CONFIG.charset)
    metadata = metadata if metadata is not None else MetadataStore()
    events = events if events is not None else EventBus()
    connections = Connections()

    service = TelnetNegotiationService(
        socket_write=connections.socket_write,
        set_metadata=metadata.set_metadata,
        get_metadata=metadata.get_metadata,
        emit_event=events.emit,
        config=config,
    )
    service.start()
    for handler in handlers:
        service.register_handler(handler)

    loop = asyncio.get_event_loop()
    return await loop.create_server(
        lambda: protocol_factory(
            service=service, connections=connections, metadata=metadata),
        host, port)


async def _sigterm_handler(server, log):
    logger.info("SIGTERM received, closing server.")

    # This signals the completion of the server.wait_closed() Future,
    # allowing the main() function to complete.
    server.close()


def parse_server_args(args=None):
    parser = argparse.ArgumentParser(
        description="Telnet option negotiation server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("host", nargs="?", default=CONFIG.host, help="bind address")
    parser.add_argument(
        "port", nargs="?", type=int, default=CONFIG.port, help="bind port"
    )
    parser.add_argument("--loglevel", default=CONFIG.loglevel, help="level name")
    parser.add_argument("--logfile", default=CONFIG.logfile, help="filepath")
    parser.add_argument("--logfmt", default=CONFIG.logfmt, help="log format")
    parser.add_argument(
        "--no-ttype",
        dest="ttype",
        action="store_false",
        default=CONFIG.ttype,
        help="refuse terminal type negotiation",
    )
    charset = parser.add_mutually_exclusive_group()
    charset.add_argument(
        "--charset", default=CONFIG.charset, help="charset offered to clients"
    )
    charset.add_argument(
        "--no-charset",
        dest="charset",
        action="store_const",
        const=False,
        default=CONFIG.charset,
        help="disable charset negotiation",
    )
    parser.add_argument(
        "--handler",
        dest="handlers",
        action="append",
        type=accessories.function_lookup,
        default=list(CONFIG.handlers),
        help="module.ClassName of additional option handler",
    )
    return vars(parser.parse_args(args))


async def run_server(
    host=CONFIG.host,
    port=CONFIG.port,
    loglevel=CONFIG.loglevel,
    logfile=CONFIG.logfile,
    logfmt=CONFIG.logfmt,
    ttype=CONFIG.ttype,
    charset=CONFIG.charset,
    handlers=CONFIG.handlers,
):
    """
    Program entry point for server daemon.

    This function configures a logger and creates a telnet server for the
    given keyword arguments, serving forever, completing only upon receipt of
    SIGTERM.
    """
    log = accessories.make_logger(
        name="telnetneg.server", loglevel=loglevel, logfile=logfile, logfmt=logfmt
    )

    # log all function arguments.
    _locals = locals()
    _cfg_mapping = ", ".join(
        ("{0}={{{0}}}".format(field) for field in CONFIG._fields)
    ).format(**_locals)
    logger.debug("Server configuration: {}".format(_cfg_mapping))

    loop = asyncio.get_event_loop()

    # bind
    server = await create_server(
        host,
        port,
        config=NegotiationConfig(ttype=ttype, charset=charset),
        handlers=handlers,
    )

    # SIGTERM cases server to gracefully stop
    loop.add_signal_handler(
        signal.SIGTERM, asyncio.ensure_future, _sigterm_handler(server, log)
    )

    logger.info("Server ready on {0}:{1}".format(host, port))

    # await completion of server stop
    try:
        await server.wait_closed()
    finally:
        # remove signal handler on stop
        loop.remove_signal_handler(signal.SIGTERM)

    logger.info("Server stop.")


def main():
    asyncio.run(run_server(**parse_server_args()))


if __name__ == "__main__":
    main()
