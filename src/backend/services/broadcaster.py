"""
Live results broadcaster.

Pushes updated tallies to connected dashboards. Delivery is best-effort and
at-most-once: publish() never blocks or raises into the caller, and a
listener that falls behind loses events rather than slowing the poll down.
"""

import asyncio
import json
from typing import Any, Optional, Protocol, runtime_checkable

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from core.config import settings

logger = structlog.get_logger(__name__)

POLL_RESULTS_EVENT = "pollResults"


@runtime_checkable
class ResultsBroadcaster(Protocol):
    """Publish-only interface used by the vote ledger and archive engine."""

    def publish(self, event: dict[str, Any]) -> None: ...


class NullBroadcaster:
    """Broadcaster that discards every event (scripts, tests)."""

    def publish(self, event: dict[str, Any]) -> None:
        return None


class WebSocketBroadcaster:
    """
    Fans events out to WebSocket listeners.

    Each listener gets a bounded queue drained by its own sender loop, so a
    slow socket only affects itself.
    """

    def __init__(self, queue_size: int | None = None):
        self.queue_size = queue_size or settings.BROADCAST_QUEUE_SIZE
        self._listeners: set[asyncio.Queue] = set()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._listeners.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._listeners.discard(queue)

    def publish(self, event: dict[str, Any]) -> None:
        """Queue an event for every listener without waiting."""
        message = {"type": POLL_RESULTS_EVENT, **event}
        dropped = 0
        for queue in list(self._listeners):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                dropped += 1
        if dropped:
            logger.warning("broadcast_dropped_for_slow_listeners", dropped=dropped)

    async def serve(self, websocket: WebSocket, initial: Optional[dict[str, Any]] = None) -> None:
        """
        Stream events to an accepted WebSocket until it disconnects.

        Args:
            websocket: An already-accepted connection
            initial: Optional snapshot sent before any queued events
        """
        queue = self.subscribe()
        if initial is not None:
            queue.put_nowait({"type": POLL_RESULTS_EVENT, **initial})
        logger.info("results_listener_connected", listeners=self.listener_count)

        sender = asyncio.create_task(self._send_loop(websocket, queue))
        try:
            # Listeners never send anything meaningful; reading only detects disconnects
            while True:
                await websocket.receive_text()
        except (WebSocketDisconnect, RuntimeError):
            pass
        finally:
            sender.cancel()
            self.unsubscribe(queue)
            logger.info("results_listener_disconnected", listeners=self.listener_count)

    async def _send_loop(self, websocket: WebSocket, queue: asyncio.Queue) -> None:
        try:
            while True:
                message = await queue.get()
                await websocket.send_text(json.dumps(message, default=str))
        except (WebSocketDisconnect, RuntimeError):
            pass


_broadcaster: WebSocketBroadcaster | None = None


def get_broadcaster() -> WebSocketBroadcaster:
    """Get the process-wide broadcaster instance."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = WebSocketBroadcaster()
    return _broadcaster


def safe_publish(broadcaster: ResultsBroadcaster, event: dict[str, Any]) -> None:
    """Publish an event, logging instead of raising on failure."""
    try:
        broadcaster.publish(event)
    except Exception as e:
        logger.warning("broadcast_failed", error=str(e), error_type=type(e).__name__)
