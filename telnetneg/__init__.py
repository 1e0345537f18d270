"""telnetneg: asyncio Telnet option negotiation implemented in python."""
# pylint: disable=wildcard-import,undefined-variable
from .telopt import *           # noqa
from .encoder import *          # noqa
from .frames import *           # noqa
from .handlers import *         # noqa
from .registry import *         # noqa
from .service import *          # noqa
from .metadata import *         # noqa
from .events import *           # noqa
from .server import *           # noqa

__all__ = (
    telopt.__all__ +
    encoder.__all__ +
    frames.__all__ +
    handlers.__all__ +
    registry.__all__ +
    service.__all__ +
    metadata.__all__ +
    events.__all__ +
    server.__all__
)  # noqa

__license__ = 'ISC'
