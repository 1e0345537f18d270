"""
Segmentation of received bytes into telnet command frames.

A frame is one complete command, either a 3-byte negotiation command
(``IAC WILL TTYPE``) or a subnegotiation block delimited by ``IAC SB`` and
``IAC SE``.
"""

# local
from .telopt import IAC, SB, SE

__all__ = ("extract_commands",)

_IAC, _SB, _SE = ord(IAC), ord(SB), ord(SE)


def extract_commands(data):
    """
    Split ``data`` into an ordered list of command frames.

    :param bytes data: bytes received from a connection.
    :rtype: list
    :returns: list of :class:`bytes`, one per command.  Empty when the first
        byte of ``data`` is not ``IAC``: such a chunk is not a command stream
        and is left for other consumers.

    When the final byte of ``data`` is ``IAC`` or ``SB``, the unfinished
    command it belongs to is discarded.  Doubled ``IAC`` bytes within a
    subnegotiation payload are kept as-is, and a payload byte of value 240
    (``SE``) ends the frame early.

    Example::

        >>> extract_commands(b'\\xff\\xfd\\x18\\xff\\xfb\\x18')
        [b'\\xff\\xfd\\x18', b'\\xff\\xfb\\x18']
    """
    if not data or data[0] != _IAC:
        return []

    commands = []
    in_subnegotiation = False
    frame = bytearray()
    last = len(data) - 1

    for idx, byte in enumerate(data):
        if byte == _IAC:
            if frame and not in_subnegotiation:
                commands.append(bytes(frame))
                frame = bytearray([byte])
            else:
                frame.append(byte)
        elif byte == _SB:
            frame.append(byte)
            in_subnegotiation = True
        elif byte == _SE:
            frame.append(byte)
            in_subnegotiation = False
            commands.append(bytes(frame))
            frame = bytearray()
        else:
            frame.append(byte)
            if idx == last:
                commands.append(bytes(frame))

    return commands
