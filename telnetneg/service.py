"""
Module provides :class:`TelnetNegotiationService`.

The service owns the handler registry and drives negotiation for any
number of connections, identified by an opaque connection id.  It does not
own sockets, connection lifecycle, metadata storage or event delivery;
these are given as callables:

- ``socket_write(conn_id, data)``: write bytes to the connection.
- ``set_metadata(conn_id, key, value)``: store connection metadata.
- ``get_metadata(conn_id, key)``: return connection metadata.
- ``emit_event(name, payload)``: publish an event, without waiting
  for its delivery.

Any of them may be a coroutine function.
"""

# std imports
import collections
import logging
import sys

# local
from .accessories import maybe_await, repr_mapping, log_exception
from .encoder import (do_sequence, dont_sequence, will_sequence,
                      wont_sequence)
from .frames import extract_commands
from .handlers import DEFAULT_HANDLERS, DEFAULT_CHARSET
from .registry import HandlerRegistry
from .telopt import CHARSET, TTYPE, name_commands

__all__ = (
    "NegotiationConfig",
    "NegotiationContext",
    "TelnetNegotiationService",
    "DEFAULT_CONFIG",
    "DEFAULT_METADATA",
)

logger = logging.getLogger("telnetneg.service")

#: Negotiation settings.  ``ttype`` enables terminal type negotiation;
#: ``charset`` is the character set name offered to the client, or
#: ``False`` to leave connections at ``'ascii'``.
NegotiationConfig = collections.namedtuple(
    "NegotiationConfig", ["ttype", "charset"])

DEFAULT_CONFIG = NegotiationConfig(ttype=True, charset="UTF-8")

#: Metadata given to each connection as it is accepted.
DEFAULT_METADATA = (
    ("charset", DEFAULT_CHARSET),
    ("ttype", "unknown"),
    ("ttypeEnabled", False),
    ("echoEnabled", False),
)


class NegotiationContext:
    """
    Configuration and collaborators given to each option handler call.

    :param NegotiationConfig config: negotiation settings.
    """

    def __init__(self, config, socket_write, set_metadata, get_metadata,
                 emit_event):
        self.config = config
        self._socket_write = socket_write
        self._set_metadata = set_metadata
        self._get_metadata = get_metadata
        self._emit_event = emit_event

    def __repr__(self):
        return "<NegotiationContext {0}>".format(
            repr_mapping(self.config._asdict()))

    async def send(self, conn_id, sequence):
        """Write raw command ``sequence`` to connection ``conn_id``."""
        data = bytes(sequence)
        logger.debug("connection: {0} send {1}".format(
            conn_id, name_commands(data)))
        await maybe_await(self._socket_write(conn_id, data))

    async def set_metadata(self, conn_id, key, value):
        await maybe_await(self._set_metadata(conn_id, key, value))

    async def get_metadata(self, conn_id, key, default=None):
        value = await maybe_await(self._get_metadata(conn_id, key))
        return default if value is None else value

    async def emit(self, name, payload):
        """
        Publish event ``name``.

        Publishing is fire-and-forget: a failure of the publisher is logged
        and not raised to the handler.
        """
        try:
            await maybe_await(self._emit_event(name, payload))
        except Exception:
            logger.warning("failed to publish {0}".format(name))
            log_exception(logger.warning, *sys.exc_info())


class TelnetNegotiationService:
    """
    Telnet option negotiation for many connections.

    Call :meth:`start` once, then :meth:`on_connection` when a connection
    is accepted, :meth:`on_data` for each chunk of bytes received, and
    :meth:`on_disconnect` when it is closed.
    """

    def __init__(self, socket_write, set_metadata, get_metadata, emit_event,
                 config=DEFAULT_CONFIG, registry=None):
        self.config = config
        self.registry = registry if registry is not None else HandlerRegistry()
        self.context = NegotiationContext(
            config=config,
            socket_write=socket_write,
            set_metadata=set_metadata,
            get_metadata=get_metadata,
            emit_event=emit_event,
        )
        self._negotiated = set()

    def start(self, handlers=DEFAULT_HANDLERS):
        """Register ``handlers``, the built-in option handlers by default."""
        for handler in handlers:
            self.registry.register(handler)
        logger.info("telnet settings: {0}".format(
            repr_mapping(self.config._asdict())))

    def register_handler(self, handler):
        """Register ``handler``, see :meth:`.HandlerRegistry.register`."""
        return self.registry.register(handler)

    async def on_connection(self, conn_id):
        """Seed metadata of new connection ``conn_id``, then negotiate."""
        for key, value in DEFAULT_METADATA:
            await self.context.set_metadata(conn_id, key, value)
        await self.negotiate(conn_id)

    def on_disconnect(self, conn_id):
        self._negotiated.discard(conn_id)

    async def negotiate(self, conn_id):
        """
        Send opening negotiation requests to connection ``conn_id``.

        Sends ``DO TTYPE`` or ``DONT TTYPE`` by ``config.ttype``, followed
        by ``WILL CHARSET`` when ``config.charset`` is set.  Only the first
        call for a connection has any effect.
        """
        if conn_id in self._negotiated:
            logger.warning("connection: {0} already negotiated".format(
                conn_id))
            return
        self._negotiated.add(conn_id)

        logger.debug("connection: {0} negotiating telnet options".format(
            conn_id))
        if self.config.ttype:
            logger.debug("connection: {0} asking to enable ttype".format(
                conn_id))
            await self.send_do(conn_id, TTYPE)
        else:
            logger.debug("connection: {0} asking to disable ttype".format(
                conn_id))
            await self.send_dont(conn_id, TTYPE)

        if self.config.charset:
            logger.debug("connection: {0} asking to enable charset".format(
                conn_id))
            await self.send_will(conn_id, CHARSET)

    async def on_data(self, conn_id, data):
        """
        Process bytes received from connection ``conn_id``.

        :rtype: bool
        :returns: ``True`` when ``data`` was consumed as telnet commands,
            ``False`` when it does not begin with ``IAC`` and should be
            given to other consumers.

        Commands are dispatched in the order received.  A command whose
        handler fails is logged, and processing continues with the next.
        """
        commands = extract_commands(data)
        if not commands:
            return False

        logger.debug("connection: {0} received {1} telnet command(s)".format(
            conn_id, len(commands)))
        for frame in commands:
            try:
                await self.handle_command(conn_id, frame)
            except Exception:
                logger.warning("connection: {0} failed to handle {1}".format(
                    conn_id, name_commands(frame)))
                log_exception(logger.warning, *sys.exc_info())
        return True

    async def handle_command(self, conn_id, frame):
        """Dispatch command ``frame`` to all matching handlers."""
        return await self.registry.dispatch(conn_id, self.context, frame)

    async def send_sequence(self, conn_id, sequence):
        """Write raw command ``sequence`` to connection ``conn_id``."""
        await self.context.send(conn_id, sequence)

    async def send_do(self, conn_id, option):
        await self.send_sequence(conn_id, do_sequence(option))

    async def send_dont(self, conn_id, option):
        await self.send_sequence(conn_id, dont_sequence(option))

    async def send_will(self, conn_id, option):
        await self.send_sequence(conn_id, will_sequence(option))

    async def send_wont(self, conn_id, option):
        await self.send_sequence(conn_id, wont_sequence(option))
