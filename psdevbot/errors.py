"""Exception hierarchy shared by the relay components."""

from __future__ import annotations


class PsdevbotError(Exception):
    """Base class for psdevbot errors."""


class AuthenticationError(PsdevbotError):
    """The chat server handshake failed; the connection attempt is abandoned."""


class TransportError(PsdevbotError):
    """Sending to or receiving from the chat server connection failed."""


class QueueClosed(PsdevbotError):
    """A message was enqueued after the delivery worker stopped."""


class RejectionError(PsdevbotError):
    """A webhook delivery was refused. Carries the HTTP status to answer with."""

    status = 400

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class MissingEventType(RejectionError):
    pass


class InvalidPayload(RejectionError):
    pass


class MissingSignature(RejectionError):
    status = 401


class MalformedSignature(RejectionError):
    status = 401


class InvalidSignatureEncoding(RejectionError):
    status = 401


class SignatureMismatch(RejectionError):
    status = 401
