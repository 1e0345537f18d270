"""In-memory per-connection metadata store."""

# std imports
import collections
import logging

__all__ = ("MetadataStore",)

logger = logging.getLogger("telnetneg.metadata")


class MetadataStore:
    """
    Key/value metadata, kept separately for each connection id.

    Methods :meth:`set_metadata` and :meth:`get_metadata` match the
    collaborator signatures expected by :class:`~.TelnetNegotiationService`.
    """

    def __init__(self):
        self._data = collections.defaultdict(dict)

    def __contains__(self, conn_id):
        return conn_id in self._data

    def set_metadata(self, conn_id, key, value):
        logger.debug("connection: {0} {1}={2!r}".format(conn_id, key, value))
        self._data[conn_id][key] = value

    def get_metadata(self, conn_id, key, default=None):
        return self._data.get(conn_id, {}).get(key, default)

    def mapping(self, conn_id):
        """Return copy of all metadata of ``conn_id``."""
        return dict(self._data.get(conn_id, {}))

    def discard(self, conn_id):
        """Forget all metadata of ``conn_id``."""
        self._data.pop(conn_id, None)
