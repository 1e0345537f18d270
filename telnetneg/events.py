"""
Fire-and-forget event publishing.

:meth:`EventBus.emit` never waits for subscribers and never raises on
their behalf: each subscriber is scheduled with ``loop.call_soon`` and a
failing subscriber is logged.  Coroutine function subscribers are run as
tasks; when no event loop is running they are not run, and a warning is
logged.
"""

# std imports
import collections
import logging
import asyncio
import sys

# local
from .accessories import log_exception

__all__ = ("EventBus", "ANY_EVENT")

logger = logging.getLogger("telnetneg.events")

#: Subscribe with this name to receive every event.
ANY_EVENT = "*"


class EventBus:
    """Publish named events with a mapping payload to subscribers."""

    def __init__(self):
        self._subscribers = collections.defaultdict(list)
        self._tasks = set()

    def subscribe(self, name, callback):
        """Call ``callback(name, payload)`` for each event ``name`` emitted."""
        self._subscribers[name].append(callback)

    def unsubscribe(self, name, callback):
        self._subscribers[name].remove(callback)

    def emit(self, name, payload):
        """Schedule delivery of event ``name`` to its subscribers."""
        logger.debug("emit {0} {1!r}".format(name, payload))
        callbacks = self._subscribers.get(name, []) + \
            self._subscribers.get(ANY_EVENT, [])
        if not callbacks:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no event loop: deliver in place.
            for callback in callbacks:
                self._deliver(callback, name, payload)
            return
        for callback in callbacks:
            loop.call_soon(self._deliver, callback, name, payload)

    def _deliver(self, callback, name, payload):
        try:
            result = callback(name, payload)
            if asyncio.iscoroutine(result):
                try:
                    loop = asyncio.get_running_loop()
                except RuntimeError:
                    result.close()
                    logger.warning("subscriber {0!r} not run for event {1}: "
                                   "no running event loop".format(callback, name))
                    return
                task = loop.create_task(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)
        except Exception:
            logger.warning("subscriber {0!r} failed for event {1}"
                           .format(callback, name))
            log_exception(logger.warning, *sys.exc_info())

    def _task_done(self, task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("subscriber task failed: {0!r}".format(exc))
            log_exception(logger.warning, type(exc), exc, exc.__traceback__)
