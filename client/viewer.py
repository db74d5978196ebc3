"""Terminal subtitle viewer with auto-reconnect and exponential backoff."""

import asyncio
import logging
import sys

import websockets
import websockets.exceptions

from shared import protocol

log = logging.getLogger(__name__)

_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"


class SubtitleRenderer:
    """Turns bus frames into terminal lines.

    Provisional text (``translation``, ``source``, relayed ``partial``) is
    shown dimmed; ``final`` settles the line.
    """

    def __init__(self, out=None, color: bool = True):
        self._out = out or sys.stdout
        self._color = color
        self.provisional: str | None = None
        self.settled: list[str] = []

    def format(self, msg: dict) -> str | None:
        msg_type = msg.get("type")
        text = msg.get("text")
        if not isinstance(text, str) or not text:
            return None

        if msg_type == protocol.FINAL:
            return f"{_BOLD}{text}{_RESET}" if self._color else text
        if msg_type == protocol.SOURCE:
            line = f"[de] {text}"
        elif msg_type in (protocol.TRANSLATION, protocol.PARTIAL):
            line = f"... {text}"
        else:
            return None
        return f"{_DIM}{line}{_RESET}" if self._color else line

    def handle_frame(self, frame: str) -> None:
        try:
            msg = protocol.decode_json(frame)
        except ValueError:
            log.warning("Ignoring non-JSON frame")
            return
        if not isinstance(msg, dict):
            return

        line = self.format(msg)
        if line is None:
            log.debug("Ignoring frame of type %s", msg.get("type"))
            return

        if msg["type"] == protocol.FINAL:
            self.provisional = None
            self.settled.append(msg["text"])
        else:
            self.provisional = msg["text"]
        self._out.write(line + "\n")
        self._out.flush()


class SubtitleViewer:
    """Connects to the subtitle bus and renders everything it receives."""

    def __init__(
        self,
        server_url: str,
        renderer: SubtitleRenderer | None = None,
        reconnect_min_s: float = 1.0,
        reconnect_max_s: float = 30.0,
    ):
        self._server_url = server_url
        self._renderer = renderer or SubtitleRenderer()
        self._reconnect_min_s = reconnect_min_s
        self._reconnect_max_s = reconnect_max_s
        self._running = False

    def next_backoff(self, backoff: float) -> float:
        return min(backoff * 2, self._reconnect_max_s)

    def stop(self) -> None:
        self._running = False

    async def run(self) -> None:
        """Connect with exponential backoff, reconnect on failure."""
        self._running = True
        backoff = self._reconnect_min_s

        while self._running:
            try:
                log.info("Connecting to %s ...", self._server_url)
                async with websockets.connect(self._server_url) as ws:
                    backoff = self._reconnect_min_s
                    log.info("Connected, waiting for subtitles")
                    async for message in ws:
                        if isinstance(message, str):
                            self._renderer.handle_frame(message)

            except (
                websockets.exceptions.ConnectionClosed,
                websockets.exceptions.InvalidURI,
                OSError,
            ) as e:
                if not self._running:
                    break
                log.warning("Connection lost (%s), reconnecting in %.1fs...", e, backoff)
                await asyncio.sleep(backoff)
                backoff = self.next_backoff(backoff)

            except Exception as e:
                if not self._running:
                    break
                log.error("Unexpected connection error: %s, reconnecting in %.1fs...", e, backoff)
                await asyncio.sleep(backoff)
                backoff = self.next_backoff(backoff)
