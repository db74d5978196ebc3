"""In-memory subtitle bus fanning events out to connected viewers.

The registry is owned by the bus and only touched from the event loop.
``publish`` has no suspension point, so each fan-out iterates a consistent
snapshot. Every channel drains its own FIFO queue from a dedicated sender
task: events keep their publish order per viewer, and a slow or broken
viewer never holds up the others.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass

from shared import protocol

log = logging.getLogger(__name__)

# Close code sent to viewers dropped for not keeping up (RFC 6455 "try again later")
_OVERFLOW_CLOSE_CODE = 1013


class EventKind(enum.Enum):
    TRANSLATION = protocol.TRANSLATION
    FINAL = protocol.FINAL
    SOURCE_PARTIAL = protocol.SOURCE


@dataclass(frozen=True)
class SubtitleEvent:
    kind: EventKind
    text: str

    def encode(self) -> str:
        return protocol.make_subtitle(self.kind.value, self.text)


class ViewerChannel:
    """One viewer connection: a socket, an outgoing queue and its sender task."""

    def __init__(self, ws, bus: "SubtitleBus", queue_size: int = 64):
        self._ws = ws
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, queue_size))
        self._sender_task: asyncio.Task | None = None
        self._close_task: asyncio.Task | None = None
        self._closed = False
        self.client = getattr(ws, "client", None)

    @property
    def is_open(self) -> bool:
        return not self._closed

    def offer(self, frame: str) -> bool:
        """Queue a frame without waiting. False if closed or the queue is full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            return False
        return True

    def start(self) -> asyncio.Task:
        """Start draining queued frames to the socket."""
        if self._sender_task is None:
            self._sender_task = asyncio.create_task(self._send_loop())
        return self._sender_task

    async def _send_loop(self) -> None:
        try:
            while True:
                frame = await self._queue.get()
                await self._ws.send_text(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.info("Send to viewer %s failed: %s", self.client, e)
            self._bus.disconnect(self)

    def close(self) -> None:
        """Stop delivery. Frames still queued are dropped."""
        if self._closed:
            return
        self._closed = True
        task = self._sender_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def abort(self) -> None:
        """Close the channel and the underlying socket."""
        self.close()
        self._close_task = asyncio.create_task(self._close_socket())

    async def _close_socket(self) -> None:
        try:
            await self._ws.close(code=_OVERFLOW_CLOSE_CODE)
        except Exception as e:
            log.debug("Closing viewer socket %s failed: %s", self.client, e)


class SubtitleBus:
    """Registry of viewer channels with best-effort broadcast."""

    def __init__(self, queue_size: int = 64):
        self._queue_size = queue_size
        self._channels: set[ViewerChannel] = set()

    @property
    def viewer_count(self) -> int:
        return len(self._channels)

    def connect(self, ws) -> ViewerChannel:
        """Register a new viewer. Nothing published earlier is replayed."""
        channel = ViewerChannel(ws, self, queue_size=self._queue_size)
        self._channels.add(channel)
        log.info("Viewer connected: %s (%d total)", channel.client, len(self._channels))
        return channel

    def disconnect(self, channel: ViewerChannel) -> None:
        """Remove a viewer. Safe to call more than once."""
        if channel in self._channels:
            self._channels.discard(channel)
            log.info("Viewer disconnected: %s (%d total)", channel.client, len(self._channels))
        channel.close()

    def publish(self, event: SubtitleEvent) -> int:
        """Send an event to every open viewer. Returns the number reached."""
        return self._fan_out(event.encode())

    def relay(self, frame: str, exclude: ViewerChannel | None = None) -> int:
        """Forward an already-encoded publisher frame to everyone but the sender."""
        return self._fan_out(frame, exclude=exclude)

    def close(self) -> None:
        for channel in list(self._channels):
            self.disconnect(channel)

    def _fan_out(self, frame: str, exclude: ViewerChannel | None = None) -> int:
        delivered = 0
        for channel in list(self._channels):
            if channel is exclude:
                continue
            if not channel.is_open:
                self.disconnect(channel)
                continue
            if channel.offer(frame):
                delivered += 1
            else:
                log.warning("Viewer %s is not keeping up, dropping it", channel.client)
                self.disconnect(channel)
                channel.abort()
        return delivered
