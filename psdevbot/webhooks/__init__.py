"""GitHub webhook ingestion."""

from psdevbot.webhooks.formatting import MessageFormatter
from psdevbot.webhooks.handlers import WebhookProcessor, verify_signature
from psdevbot.webhooks.server import WebhookServer

__all__ = [
    "MessageFormatter",
    "WebhookProcessor",
    "WebhookServer",
    "verify_signature",
]
