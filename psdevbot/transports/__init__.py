"""Chat server transport."""

from psdevbot.transports.base import Connection
from psdevbot.transports.handshake import Authenticator
from psdevbot.transports.showdown import ShowdownConnection, parse_frame

__all__ = [
    "Connection",
    "Authenticator",
    "ShowdownConnection",
    "parse_frame",
]
