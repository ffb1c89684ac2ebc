"""Webhook signature validation and event dispatch."""

from __future__ import annotations

import hashlib
import hmac
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from psdevbot.config import RoomRoute, Settings
from psdevbot.core.dedup import PullRequestDedup
from psdevbot.core.outbound import OutboundQueue
from psdevbot.errors import (
    InvalidPayload,
    InvalidSignatureEncoding,
    MalformedSignature,
    MissingSignature,
    QueueClosed,
    SignatureMismatch,
)
from psdevbot.webhooks.formatting import MessageFormatter, html_command
from psdevbot.webhooks.models import InitialPayload, PullRequestEvent, PushEvent
from psdevbot.utils.logging import get_logger

log = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

SIGNATURE_PREFIX = "sha256="
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")

IGNORED_PULL_REQUEST_ACTIONS = frozenset({
    "ready_for_review",
    "labeled",
    "unlabeled",
    "converted_to_draft",
})


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

def verify_signature(secret: str, signature: str | None, body: bytes) -> None:
    """Check an ``X-Hub-Signature-256`` header against the raw body.

    Nothing is checked when ``secret`` is empty. Raises a RejectionError
    subclass describing the first problem found.
    """
    if not secret:
        return
    if signature is None:
        raise MissingSignature("Missing signature")
    if not signature.startswith(SIGNATURE_PREFIX):
        raise MalformedSignature(f"Signature doesn't start with {SIGNATURE_PREFIX}")
    encoded = signature[len(SIGNATURE_PREFIX):]
    # bytes.fromhex alone would accept whitespace between pairs
    if not _HEX_RE.fullmatch(encoded):
        raise InvalidSignatureEncoding("Signature is not valid hex")
    digest = bytes.fromhex(encoded)
    expected = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    if not hmac.compare_digest(expected, digest):
        raise SignatureMismatch("Signature mismatch")


def parse_payload(model: type[ModelT], body: bytes) -> ModelT:
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise InvalidPayload(f"Invalid {model.__name__} payload: {e.error_count()} error(s)") from e


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class WebhookProcessor:
    """Turns verified GitHub deliveries into messages on the outbound queue."""

    def __init__(
        self,
        settings: Settings,
        dedup: PullRequestDedup,
        formatter: MessageFormatter,
    ) -> None:
        self._settings = settings
        self._dedup = dedup
        self._formatter = formatter

    def route(self, signature: str | None, body: bytes) -> RoomRoute:
        payload = parse_payload(InitialPayload, body)
        route = self._settings.route_for(payload.repository.full_name)
        verify_signature(route.secret, signature, body)
        return route

    async def process(
        self,
        event_type: str,
        signature: str | None,
        body: bytes,
        queue: OutboundQueue,
    ) -> None:
        route = self.route(signature, body)
        if event_type == "push":
            await self.handle_push(parse_payload(PushEvent, body), route, queue)
        elif event_type == "pull_request":
            self.handle_pull_request(parse_payload(PullRequestEvent, body), route, queue)
        else:
            log.debug("webhook_event_ignored", event_type=event_type)

    async def handle_push(self, event: PushEvent, route: RoomRoute, queue: OutboundQueue) -> None:
        if event.branch != event.repository.default_branch:
            log.debug(
                "push_skipped",
                repository=event.repository.full_name,
                branch=event.branch,
            )
            return
        if route.rooms:
            message = await self._formatter.push(event)
            for room in route.rooms:
                queue.enqueue(html_command(room, message))
        if route.simple_rooms:
            message = await self._formatter.push(event, simple=True)
            for room in route.simple_rooms:
                queue.enqueue(html_command(room, message))

    def handle_pull_request(
        self, event: PullRequestEvent, route: RoomRoute, queue: OutboundQueue
    ) -> None:
        if event.action in IGNORED_PULL_REQUEST_ACTIONS:
            return
        if not self._dedup.try_insert(event.pull_request.number):
            return
        message = f"addhtmlbox {self._formatter.pull_request(event)}"
        try:
            for room in dict.fromkeys((*route.rooms, *route.simple_rooms)):
                queue.enqueue(html_command(room, message))
        except QueueClosed:
            # Nothing was delivered, so a redelivery must not be suppressed
            self._dedup.discard(event.pull_request.number)
            raise
