"""psdevbot entry point: wires everything together and runs the relay."""

from __future__ import annotations

import asyncio
import signal
import sys

import aiohttp
import click
import httpx
from pydantic import ValidationError

from psdevbot import __version__
from psdevbot.config import Settings, load_settings
from psdevbot.core.dedup import PullRequestDedup
from psdevbot.core.github_users import GitHubUserCache
from psdevbot.core.outbound import OutboundQueue
from psdevbot.errors import AuthenticationError, QueueClosed, TransportError
from psdevbot.models import OutboundMessage, UpdateUser
from psdevbot.transports.base import Connection
from psdevbot.transports.handshake import Authenticator
from psdevbot.transports.showdown import ShowdownConnection, parse_frame
from psdevbot.utils.logging import get_logger, setup_logging
from psdevbot.webhooks.formatting import MessageFormatter
from psdevbot.webhooks.handlers import WebhookProcessor
from psdevbot.webhooks.server import WebhookServer

log = get_logger(__name__)


class Relay:
    """Supervises one authenticated chat connection at a time.

    Each session runs handshake, outbound worker, webhook listener and the
    read loop. When the read loop or the worker ends, the session is torn
    down and a new one starts after ``reconnect_delay``. The dedup set and
    user cache outlive sessions.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings

        self.dedup = PullRequestDedup(settings.relay.dedup_window)
        self.users = GitHubUserCache.from_config(settings.github) if settings.github.enabled else None
        self.formatter = MessageFormatter(settings, self.users)
        self.processor = WebhookProcessor(settings, self.dedup, self.formatter)

        # A caller-supplied client stays open; the caller closes it
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.relay.auth_timeout)
        self.authenticator = Authenticator(settings, self._http)
        self._stop_event = asyncio.Event()

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        log.info("psdevbot_starting", version=__version__, server=self.settings.server)
        async with aiohttp.ClientSession() as session:
            while not self._stop_event.is_set():
                try:
                    connection = await ShowdownConnection.connect(session, self.settings.server)
                    try:
                        await self.run_session(connection)
                    finally:
                        await connection.close()
                except (AuthenticationError, TransportError) as e:
                    log.warning("relay_disconnected", error=str(e), error_type=type(e).__name__)
                except Exception:
                    log.exception("relay_session_error")

                if self._stop_event.is_set():
                    break
                delay = self.settings.relay.reconnect_delay
                log.info("relay_reconnecting", delay=delay)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        await self.close()
        log.info("psdevbot_stopped")

    async def close(self) -> None:
        self.dedup.clear()
        if self.users is not None:
            await self.users.close()
        if self._owns_http:
            await self._http.aclose()

    async def run_session(self, connection: Connection) -> None:
        """Authenticate ``connection`` and relay until it fails or stop is requested."""
        await self.authenticator.authenticate(connection)

        queue = OutboundQueue(connection, self.settings.relay.send_interval)
        queue.start()
        server = WebhookServer(self.settings, self.processor, queue)

        tasks: list[asyncio.Task[None]] = []
        try:
            await server.start()
            dispatch = asyncio.create_task(self._dispatch(connection, queue), name="showdown-reader")
            worker_closed = asyncio.create_task(queue.wait_closed(), name="outbound-closed")
            stopped = asyncio.create_task(self._stop_event.wait(), name="relay-stop")
            tasks = [dispatch, worker_closed, stopped]
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            if dispatch in done:
                dispatch.result()
            elif worker_closed in done:
                raise TransportError("Outbound worker stopped")
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await server.stop()
            await queue.close()

    async def _dispatch(self, connection: Connection, queue: OutboundQueue) -> None:
        while True:
            frame = await connection.receive()
            for message in parse_frame(frame):
                log.debug("message_received", message=message)
                if isinstance(message, UpdateUser) and message.named:
                    try:
                        self._join_rooms(queue)
                    except QueueClosed as e:
                        raise TransportError("Outbound queue closed") from e

    def _join_rooms(self, queue: OutboundQueue) -> None:
        queue.enqueue(OutboundMessage.global_command("away"))
        for room in self.settings.all_rooms():
            queue.enqueue(OutboundMessage.global_command(f"join {room}"))
        log.info("joining_rooms", rooms=self.settings.all_rooms())


async def run(settings: Settings) -> None:
    relay = Relay(settings)

    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        relay.request_stop()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await relay.run()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
def cli(config_path: str | None, log_level: str | None) -> None:
    """Relay GitHub webhooks into Pokémon Showdown rooms."""
    try:
        settings = load_settings(config_path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}") from e
    setup_logging(level=log_level or settings.log_level, json_output=settings.log_json)
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
