"""Per-connection task for subtitle viewers and publishers.

The handler registers its channel with the bus when it starts and
deregisters in ``finally``, so the channel leaves the registry exactly once
however the connection ends.
"""

import logging

from fastapi import WebSocket

from shared import protocol
from server.bus import SubtitleBus

log = logging.getLogger(__name__)


class ViewerHandler:
    """Manages one WebSocket connection on the subtitle bus."""

    def __init__(self, ws: WebSocket, bus: SubtitleBus, allow_relay: bool = True):
        self._ws = ws
        self._bus = bus
        self._allow_relay = allow_relay

    async def handle(self) -> None:
        """Register, accept, then receive until the peer goes away."""
        # Register before the handshake completes so no publish after it is missed
        channel = self._bus.connect(self._ws)
        try:
            await self._ws.accept()
            channel.start()
            while True:
                msg = await self._ws.receive()

                if msg["type"] == "websocket.disconnect":
                    break

                if msg["type"] == "websocket.receive" and msg.get("text") is not None:
                    self._handle_text(msg["text"], channel)
        except Exception as e:
            log.warning("Viewer connection error: %s", e)
        finally:
            self._bus.disconnect(channel)

    def _handle_text(self, text: str, channel) -> None:
        """Relay a publisher frame to every other viewer."""
        if not self._allow_relay:
            log.debug("Relay disabled, ignoring frame from %s", channel.client)
            return

        msg = protocol.parse_relay_frame(text)
        if msg is None:
            log.warning("Ignoring malformed frame from %s", channel.client)
            return

        self._bus.relay(text, exclude=channel)
