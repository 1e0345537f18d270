"""Module provides :class:`HandlerRegistry`."""

# std imports
import collections
import logging
import inspect

# local
from .accessories import maybe_await
from .telopt import name_commands

__all__ = ("HandlerRegistry", "InvalidHandlerError")

logger = logging.getLogger("telnetneg.registry")


class InvalidHandlerError(TypeError):
    """A registered object does not provide ``name``, ``match`` and ``handle``."""


class HandlerRegistry:
    """
    Ordered collection of telnet option handlers, keyed by name.

    Registration order is dispatch order.  Replacing a handler by name keeps
    the position of the handler it replaces.
    """

    def __init__(self, handlers=()):
        self._handlers = collections.OrderedDict()
        for handler in handlers:
            self.register(handler)

    def __repr__(self):
        return "<HandlerRegistry {0}>".format(", ".join(self._handlers))

    def __len__(self):
        return len(self._handlers)

    def __iter__(self):
        return iter(list(self._handlers.values()))

    def __contains__(self, name):
        return name in self._handlers

    def __getitem__(self, name):
        return self._handlers[name]

    @property
    def names(self):
        """Handler names in dispatch order."""
        return list(self._handlers)

    def register(self, handler):
        """
        Register ``handler``, replacing any handler of the same name.

        :param handler: an option handler instance, or a class which is
            instantiated without arguments.
        :raises InvalidHandlerError: ``handler`` does not provide a string
            ``name``, a callable ``match`` and a callable ``handle``.
        :returns: the registered handler instance.
        """
        if inspect.isclass(handler):
            try:
                handler = handler()
            except TypeError as err:
                raise InvalidHandlerError(
                    "handler class {0!r} could not be instantiated: {1}"
                    .format(handler, err)) from err
        self._validate(handler)

        if handler.name in self._handlers:
            logger.debug("replacing telnet option handler: {0!r}"
                         .format(self._handlers[handler.name]))
        self._handlers[handler.name] = handler
        logger.info("registered telnet option handler: {0}"
                    .format(handler.name))
        return handler

    def unregister(self, name):
        """Remove and return handler registered as ``name``."""
        handler = self._handlers.pop(name)
        logger.info("unregistered telnet option handler: {0}".format(name))
        return handler

    def matching(self, frame):
        """Return list of handlers matching ``frame``, in dispatch order."""
        return [handler for handler in self if handler.match(frame)]

    async def dispatch(self, conn_id, context, frame):
        """
        Call ``handle`` of every handler matching ``frame``.

        Handlers are awaited one at a time in registration order.  An
        exception raised by a handler propagates, and handlers following
        it are not called for this frame.

        :returns: number of handlers called.
        """
        handlers = self.matching(frame)
        if not handlers:
            logger.debug("connection: {0} no handler for {1}".format(
                conn_id, name_commands(frame)))
        for handler in handlers:
            logger.debug("connection: {0} {1} handles {2}".format(
                conn_id, handler.name, name_commands(frame)))
            await maybe_await(handler.handle(conn_id, context, frame))
        return len(handlers)

    @staticmethod
    def _validate(handler):
        name = getattr(handler, "name", None)
        if not isinstance(name, str) or not name:
            raise InvalidHandlerError(
                "handler must have a non-empty string name, got {0!r}"
                .format(handler))
        for attr in ("match", "handle"):
            if not callable(getattr(handler, attr, None)):
                raise InvalidHandlerError(
                    "handler {0!r} must provide callable {1}()"
                    .format(name, attr))
