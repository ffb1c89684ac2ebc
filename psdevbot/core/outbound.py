"""Ordered, paced delivery of outbound messages over the single connection."""

from __future__ import annotations

import asyncio

from psdevbot.errors import QueueClosed, TransportError
from psdevbot.models import OutboundMessage
from psdevbot.transports.base import Connection
from psdevbot.utils.logging import get_logger

log = get_logger(__name__)


class OutboundQueue:
    """Unbounded FIFO drained by one worker, the only writer of the connection.

    Consecutive sends are spaced at least ``interval`` seconds apart. Idle time
    earns no burst credit: after a pause the next message goes out at once and
    the one after it waits the full interval again.

    If a send fails the worker stops for good and whatever is still queued is
    dropped.
    """

    def __init__(self, connection: Connection, interval: float = 0.7) -> None:
        self._connection = connection
        self._interval = interval
        self._queue: asyncio.Queue[OutboundMessage] = asyncio.Queue()
        self._last_sent: float | None = None
        self._closed = False
        self._worker: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._run(), name="outbound-worker")

    def enqueue(self, message: OutboundMessage) -> None:
        if self._closed:
            raise QueueClosed("Outbound queue is closed")
        self._queue.put_nowait(message)

    async def wait_closed(self) -> None:
        if self._worker is not None:
            await asyncio.wait({self._worker})

    async def close(self) -> None:
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._closed = True

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while True:
                message = await self._queue.get()
                if self._last_sent is not None:
                    delay = self._last_sent + self._interval - loop.time()
                    if delay > 0:
                        await asyncio.sleep(delay)
                try:
                    await self._connection.send(message.to_frame())
                except TransportError as e:
                    log.warning("outbound_send_failed", error=str(e), room=message.room)
                    return
                self._last_sent = loop.time()
                log.info("message_sent", kind=message.kind.value, room=message.room)
        finally:
            self._closed = True
            dropped = self._queue.qsize()
            if dropped:
                log.warning("outbound_messages_dropped", count=dropped)
