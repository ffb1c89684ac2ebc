"""Abstract chat server connection."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Connection(ABC):
    """A framed, bidirectional text channel to the chat server.

    Both methods raise :class:`~psdevbot.errors.TransportError` once the
    underlying channel is gone.
    """

    @abstractmethod
    async def receive(self) -> str: ...

    @abstractmethod
    async def send(self, frame: str) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...
