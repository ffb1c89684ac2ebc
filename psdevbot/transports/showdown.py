"""Pokémon Showdown websocket transport using aiohttp."""

from __future__ import annotations

import aiohttp

from psdevbot.errors import TransportError
from psdevbot.models import Challenge, InboundMessage, ServerMessage, UpdateUser
from psdevbot.transports.base import Connection
from psdevbot.utils.logging import get_logger

log = get_logger(__name__)


def parse_frame(frame: str) -> list[InboundMessage]:
    """Split a websocket frame into protocol messages.

    A frame optionally starts with ``>roomid``; every following line is either
    ``|kind|arg|arg...`` or plain room log text.
    """
    lines = frame.split("\n")
    room = ""
    if lines and lines[0].startswith(">"):
        room = lines.pop(0)[1:]

    messages: list[InboundMessage] = []
    for line in lines:
        if not line:
            continue
        if not line.startswith("|"):
            messages.append(ServerMessage(room=room, kind="", args=(line,)))
            continue
        kind, _, rest = line[1:].partition("|")
        if kind == "challstr":
            messages.append(Challenge(challstr=rest))
        elif kind == "updateuser":
            args = rest.split("|")
            # Usernames carry a leading rank/status character
            username = args[0][1:] if args[0][:1] in (" ", "+", "%", "@", "#", "&", "~") else args[0]
            named = len(args) > 1 and args[1] == "1"
            messages.append(UpdateUser(username=username.strip(), named=named))
        else:
            args = tuple(rest.split("|")) if rest else ()
            messages.append(ServerMessage(room=room, kind=kind, args=args))
    return messages


class ShowdownConnection(Connection):
    """The single websocket to the chat server."""

    def __init__(self, websocket: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = websocket

    @classmethod
    async def connect(cls, session: aiohttp.ClientSession, url: str) -> ShowdownConnection:
        try:
            websocket = await session.ws_connect(url, heartbeat=30)
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"Unable to connect to {url}: {e}") from e
        log.info("showdown_connected", url=url)
        return cls(websocket)

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def receive(self) -> str:
        """Wait for the next text frame; raise TransportError once closed."""
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type == aiohttp.WSMsgType.BINARY:
                return msg.data.decode("utf-8", errors="replace")
            if msg.type == aiohttp.WSMsgType.ERROR:
                raise TransportError(f"Websocket error: {self._ws.exception()}")
            if msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
            ):
                raise TransportError(f"Connection closed (code {self._ws.close_code})")

    async def send(self, frame: str) -> None:
        if self._ws.closed:
            raise TransportError("Connection closed")
        try:
            await self._ws.send_str(frame)
        except (aiohttp.ClientError, ConnectionError) as e:
            raise TransportError(f"Send failed: {e}") from e

    async def close(self) -> None:
        await self._ws.close()
        log.info("showdown_disconnected")
