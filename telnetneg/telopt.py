"""Telnet command and option byte values, :rfc:`854`."""

# commands
IAC = b"\xff"
DONT = b"\xfe"
DO = b"\xfd"
WONT = b"\xfc"
WILL = b"\xfb"
SB = b"\xfa"
AYT = b"\xf6"
NOP = b"\xf1"
SE = b"\xf0"

# options
ECHO = b"\x01"
SUPPRESS_GO_AHEAD = SGA = b"\x03"
TTYPE = b"\x18"
NAWS = b"\x1f"
CHARSET = b"*"

# subnegotiation arguments
(IS, SEND, INFO) = (bytes([const]) for const in range(3))
(REQUEST, ACCEPTED, REJECTED) = (bytes([const]) for const in range(1, 4))
SPACE = b" "

__all__ = (
    "ACCEPTED",
    "AYT",
    "CHARSET",
    "DO",
    "DONT",
    "ECHO",
    "IAC",
    "INFO",
    "IS",
    "NAWS",
    "NOP",
    "REJECTED",
    "REQUEST",
    "SB",
    "SE",
    "SEND",
    "SGA",
    "SPACE",
    "SUPPRESS_GO_AHEAD",
    "TTYPE",
    "WILL",
    "WONT",
    "name_command",
    "name_commands",
)

#: Map of byte value to name, used only for logging.  Subnegotiation
#: arguments share values with options and are not included.
_DEBUG_OPTS = dict(
    [
        (value, key)
        for key, value in globals().items()
        if key
        in (
            "IAC",
            "DONT",
            "DO",
            "WONT",
            "WILL",
            "SB",
            "AYT",
            "NOP",
            "SE",
            "ECHO",
            "SGA",
            "TTYPE",
            "NAWS",
            "CHARSET",
        )
    ]
)


def name_command(byte):
    """Return string description for (maybe) telnet command byte."""
    return _DEBUG_OPTS.get(byte, repr(byte))


def name_commands(cmds, sep=" "):
    """Return string description for array of (maybe) telnet command bytes."""
    return sep.join([name_command(bytes([byte])) for byte in cmds])
