"""
Builders of outgoing telnet command sequences.

Each function returns :class:`bytes` ready for the socket-write primitive
of a connection.  None of them escape ``IAC`` bytes found in their
arguments.
"""

# local
from .telopt import DO, DONT, WILL, WONT, IAC, SB, SE

__all__ = (
    "do_sequence",
    "dont_sequence",
    "will_sequence",
    "wont_sequence",
    "sb_sequence",
    "iac_sequence",
)


def _as_byte(option):
    # accept option codes as int (42) or as 1-byte bytes (b'*').
    if isinstance(option, int):
        return bytes([option])
    option = bytes(option)
    if len(option) != 1:
        raise ValueError(
            "option must be a single byte, got {0!r}.".format(option)
        )
    return option


def iac_sequence(cmd, option):
    """
    Return 3-byte negotiation command ``IAC cmd option``.

    :raises ValueError: when ``cmd`` is not one of DO, DONT, WILL, WONT.
    """
    if cmd not in (DO, DONT, WILL, WONT):
        raise ValueError(
            "Expected DO, DONT, WILL, WONT, got {0!r}.".format(cmd)
        )
    return IAC + cmd + _as_byte(option)


def do_sequence(option):
    """Return ``IAC DO option``."""
    return iac_sequence(DO, option)


def dont_sequence(option):
    """Return ``IAC DONT option``."""
    return iac_sequence(DONT, option)


def will_sequence(option):
    """Return ``IAC WILL option``."""
    return iac_sequence(WILL, option)


def wont_sequence(option):
    """Return ``IAC WONT option``."""
    return iac_sequence(WONT, option)


def sb_sequence(option, *payload):
    """
    Return subnegotiation block ``IAC SB option payload... IAC SE``.

    Example::

        >>> sb_sequence(TTYPE, SEND)
        b'\\xff\\xfa\\x18\\x01\\xff\\xf0'
    """
    return IAC + SB + _as_byte(option) + b"".join(payload) + IAC + SE
