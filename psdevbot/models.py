"""Typed messages exchanged with the chat server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MessageKind(str, Enum):
    GLOBAL_COMMAND = "global_command"
    ROOM_COMMAND = "room_command"
    CHAT = "chat"


@dataclass(frozen=True)
class OutboundMessage:
    kind: MessageKind
    text: str
    room: str | None = None

    @classmethod
    def global_command(cls, command: str) -> OutboundMessage:
        return cls(MessageKind.GLOBAL_COMMAND, command)

    @classmethod
    def room_command(cls, room: str, command: str) -> OutboundMessage:
        return cls(MessageKind.ROOM_COMMAND, command, room)

    @classmethod
    def chat(cls, room: str, text: str) -> OutboundMessage:
        return cls(MessageKind.CHAT, text, room)

    def to_frame(self) -> str:
        """Render as a Showdown protocol frame: ``<room>|<text>``."""
        if self.kind is MessageKind.GLOBAL_COMMAND:
            return f"|/{self.text}"
        if self.kind is MessageKind.ROOM_COMMAND:
            return f"{self.room}|/{self.text}"
        return f"{self.room}|{self.text}"


@dataclass(frozen=True)
class Challenge:
    """``|challstr|`` line: signing material for the login server."""

    challstr: str


@dataclass(frozen=True)
class UpdateUser:
    username: str
    named: bool


@dataclass(frozen=True)
class ServerMessage:
    """Any protocol line psdevbot does not interpret."""

    room: str
    kind: str
    args: tuple[str, ...] = ()


InboundMessage = Challenge | UpdateUser | ServerMessage
