#!/usr/bin/env python
"""
Telnet server demonstrating a custom option handler.

The server registers a handler for NAWS (window size), in addition to the
built-in TTYPE, CHARSET and ECHO handlers, and prints every negotiation
event published for connected clients.
"""

# std imports
import asyncio
import struct

# local
import telnetneg
from telnetneg.telopt import IAC, WILL, SB, NAWS


class WillNawsHandler(telnetneg.OptionHandler):
    name = "will-naws"

    def match(self, frame):
        return frame[:3] == IAC + WILL + NAWS

    async def handle(self, conn_id, context, frame):
        await context.set_metadata(conn_id, "nawsEnabled", True)


class SbNawsHandler(telnetneg.OptionHandler):
    name = "sb-naws"

    def match(self, frame):
        return frame[:3] == IAC + SB + NAWS and len(frame) == 9

    async def handle(self, conn_id, context, frame):
        cols, rows = struct.unpack("!HH", frame[3:7])
        await context.set_metadata(conn_id, "cols", cols)
        await context.set_metadata(conn_id, "rows", rows)
        await context.emit("telnet.naws.set", {"id": conn_id, "cols": cols, "rows": rows})


def show_event(name, payload):
    print(name, payload)


async def main():
    """Start the telnet server."""
    events = telnetneg.EventBus()
    events.subscribe(telnetneg.ANY_EVENT, show_event)
    server = await telnetneg.create_server(
        host="127.0.0.1", port=6023, events=events,
        handlers=[WillNawsHandler, SbNawsHandler])
    print("NAWS demo server running on localhost:6023")
    await server.wait_closed()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nServer stopped")
