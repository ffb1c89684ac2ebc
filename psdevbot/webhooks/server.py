"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

from aiohttp import web

from psdevbot.config import Settings
from psdevbot.core.outbound import OutboundQueue
from psdevbot.errors import MissingEventType, QueueClosed, RejectionError
from psdevbot.utils.logging import get_logger
from psdevbot.webhooks.handlers import WebhookProcessor

log = get_logger(__name__)

CALLBACK_PATH = "/github/callback"


class WebhookServer:
    """Receives GitHub webhooks and feeds the outbound queue of one session."""

    def __init__(
        self,
        settings: Settings,
        processor: WebhookProcessor,
        queue: OutboundQueue,
    ) -> None:
        self._settings = settings
        self._processor = processor
        self._queue = queue
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if not self._settings.secret:
            log.warning(
                "webhook_no_default_secret",
                msg="Repositories without their own secret accept unsigned deliveries.",
            )
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._settings.bind, self._settings.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._settings.bind,
            port=self._settings.port,
        )

    async def stop(self) -> None:
        # cleanup() stops accepting connections and lets in-flight requests finish
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def _build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(CALLBACK_PATH, self._handle_webhook)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        event_type = request.headers.get("X-GitHub-Event")
        signature = request.headers.get("X-Hub-Signature-256")
        body = await request.read()

        try:
            if not event_type:
                raise MissingEventType("Missing X-GitHub-Event header")
            await self._processor.process(event_type, signature, body, self._queue)
        except RejectionError as e:
            log.warning("webhook_rejected", event_type=event_type, reason=e.reason)
            return web.Response(status=e.status, text=e.reason)
        except QueueClosed:
            log.warning("webhook_queue_closed", event_type=event_type)
            return web.Response(status=503, text="Chat connection unavailable")

        log.info("webhook_received", event_type=event_type)
        return web.Response(status=200)
