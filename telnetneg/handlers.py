"""
Telnet option handlers.

An option handler is any object providing a ``name`` string, a ``match``
predicate receiving one command frame (:class:`bytes`), and a ``handle``
coroutine function receiving ``(conn_id, context, frame)``.  The
:class:`OptionHandler` base class provides a default name and may be
derived to build new handlers::

    class WillNawsHandler(OptionHandler):
        def match(self, frame):
            return frame[:3] == IAC + WILL + NAWS

        async def handle(self, conn_id, context, frame):
            await context.set_metadata(conn_id, "nawsEnabled", True)

The ``context`` argument is a :class:`~.service.NegotiationContext`; it
carries configuration, the metadata store, the event publisher and the
socket-write primitive.  Handlers hold no state of their own.
"""

# std imports
import logging

# local
from .telopt import (ACCEPTED, CHARSET, DO, DONT, ECHO, IAC, REJECTED,
                     REQUEST, SB, SEND, SPACE, TTYPE, WILL, WONT)
from .encoder import sb_sequence, wont_sequence

__all__ = (
    "OptionHandler",
    "SbTTypeHandler",
    "WillTTypeHandler",
    "WontTTypeHandler",
    "WillEchoHandler",
    "WontEchoHandler",
    "DoCharsetHandler",
    "DontCharsetHandler",
    "AcceptedCharsetHandler",
    "RejectedCharsetHandler",
    "DEFAULT_HANDLERS",
)

logger = logging.getLogger("telnetneg.handlers")

#: Value of metadata key ``charset`` until negotiated.
DEFAULT_CHARSET = "ascii"


class OptionHandler:
    """Base class for telnet option handlers."""

    #: Registry key.  Registering another handler of the same name replaces
    #: this one.  Defaults to the class name.
    name = None

    def __init__(self):
        if self.name is None:
            self.name = type(self).__name__

    def __repr__(self):
        return "<{0} name={1!r}>".format(type(self).__name__, self.name)

    def match(self, frame):
        """Return whether this handler acts on command ``frame``."""
        return False

    async def handle(self, conn_id, context, frame):
        """Act on command ``frame`` received from connection ``conn_id``."""


class SbTTypeHandler(OptionHandler):
    """Store terminal type answered by ``IAC SB TTYPE IS <ttype> IAC SE``."""

    name = "sb-ttype"

    def match(self, frame):
        return frame[:3] == IAC + SB + TTYPE

    async def handle(self, conn_id, context, frame):
        # payload is everything between the option byte and IAC SE; its
        # first byte is the IS argument.
        payload = frame[3:-2].decode("ascii", errors="replace")
        ttype = payload[1:].strip()
        logger.debug("connection: {0} ttype is {1!r}".format(conn_id, ttype))
        await context.set_metadata(conn_id, "ttype", ttype)
        await context.emit("telnet.ttype.set", {"id": conn_id, "ttype": ttype})


class WillTTypeHandler(OptionHandler):
    """Request terminal type after ``IAC WILL TTYPE``."""

    name = "will-ttype"

    def match(self, frame):
        return frame[:3] == IAC + WILL + TTYPE

    async def handle(self, conn_id, context, frame):
        await context.set_metadata(conn_id, "ttypeEnabled", True)
        await context.emit("telnet.ttype.enabled", {"id": conn_id})
        await context.send(conn_id, sb_sequence(TTYPE, SEND))


class WontTTypeHandler(OptionHandler):
    """Record refusal of ``IAC WONT TTYPE``."""

    name = "wont-ttype"

    def match(self, frame):
        return frame[:3] == IAC + WONT + TTYPE

    async def handle(self, conn_id, context, frame):
        await context.set_metadata(conn_id, "ttypeEnabled", False)
        await context.emit("telnet.ttype.disabled", {"id": conn_id})


class WillEchoHandler(OptionHandler):
    name = "will-echo"

    def match(self, frame):
        return frame[:3] == IAC + WILL + ECHO

    async def handle(self, conn_id, context, frame):
        await context.set_metadata(conn_id, "echoEnabled", True)
        await context.emit("telnet.echo.enabled", {"id": conn_id})


class WontEchoHandler(OptionHandler):
    name = "wont-echo"

    def match(self, frame):
        return frame[:3] == IAC + WONT + ECHO

    async def handle(self, conn_id, context, frame):
        await context.set_metadata(conn_id, "echoEnabled", False)
        await context.emit("telnet.echo.disabled", {"id": conn_id})


class DoCharsetHandler(OptionHandler):
    """
    Offer the configured charset after ``IAC DO CHARSET``, :rfc:`2066`.

    Replies ``IAC SB CHARSET REQUEST SPACE <charset> IAC SE``, or
    ``IAC WONT CHARSET`` when charset negotiation is not configured.
    """

    name = "do-charset"

    def match(self, frame):
        return frame[:3] == IAC + DO + CHARSET

    async def handle(self, conn_id, context, frame):
        charset = context.config.charset
        if not charset:
            logger.debug("connection: {0} charset negotiation disabled, "
                         "refusing DO CHARSET".format(conn_id))
            await context.send(conn_id, wont_sequence(CHARSET))
            return
        await context.send(
            conn_id,
            sb_sequence(CHARSET, REQUEST, SPACE, charset.encode("utf-8")))


class DontCharsetHandler(OptionHandler):
    name = "dont-charset"

    def match(self, frame):
        return frame[:3] == IAC + DONT + CHARSET

    async def handle(self, conn_id, context, frame):
        await _set_charset(conn_id, context, DEFAULT_CHARSET)


class AcceptedCharsetHandler(OptionHandler):
    """Use configured charset after ``IAC SB CHARSET ACCEPTED ...``."""

    name = "sb-charset-accepted"

    def match(self, frame):
        return frame[:4] == IAC + SB + CHARSET + ACCEPTED

    async def handle(self, conn_id, context, frame):
        await _set_charset(conn_id, context,
                           context.config.charset or DEFAULT_CHARSET)


class RejectedCharsetHandler(OptionHandler):
    """
    Fall back to ``ascii`` when the client rejects the charset request.

    Both ``IAC SB REJECTED CHARSET`` and the :rfc:`2066` ordering,
    ``IAC SB CHARSET REJECTED``, are matched.
    """

    name = "sb-charset-rejected"

    def match(self, frame):
        return frame[:4] in (IAC + SB + REJECTED + CHARSET,
                             IAC + SB + CHARSET + REJECTED)

    async def handle(self, conn_id, context, frame):
        await _set_charset(conn_id, context, DEFAULT_CHARSET)


async def _set_charset(conn_id, context, charset):
    logger.debug("connection: {0} charset is {1}".format(conn_id, charset))
    await context.set_metadata(conn_id, "charset", charset)
    await context.emit("telnet.charset.set",
                       {"id": conn_id, "charset": charset})


#: Built-in handlers, in the order they are registered on service start.
DEFAULT_HANDLERS = (
    SbTTypeHandler,
    WillTTypeHandler,
    WontTTypeHandler,
    WillEchoHandler,
    WontEchoHandler,
    DoCharsetHandler,
    DontCharsetHandler,
    AcceptedCharsetHandler,
    RejectedCharsetHandler,
)
