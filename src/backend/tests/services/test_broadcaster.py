"""
Tests for the live results broadcaster.
"""

import pytest

from services.broadcaster import POLL_RESULTS_EVENT, NullBroadcaster, WebSocketBroadcaster, safe_publish
from tests.fakes import ExplodingBroadcaster


@pytest.mark.unit
class TestWebSocketBroadcaster:
    def test_publish_fans_out(self) -> None:
        broadcaster = WebSocketBroadcaster(queue_size=4)
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        broadcaster.publish({"totalVotes": 1})

        assert first.get_nowait() == {"type": POLL_RESULTS_EVENT, "totalVotes": 1}
        assert second.get_nowait() == {"type": POLL_RESULTS_EVENT, "totalVotes": 1}

    def test_publish_with_no_listeners(self) -> None:
        WebSocketBroadcaster(queue_size=4).publish({"totalVotes": 1})

    def test_slow_listener_drops_events_without_blocking(self) -> None:
        broadcaster = WebSocketBroadcaster(queue_size=2)
        slow = broadcaster.subscribe()
        fast = broadcaster.subscribe()

        for n in range(5):
            broadcaster.publish({"totalVotes": n})
            fast.get_nowait()

        assert slow.qsize() == 2
        assert slow.get_nowait()["totalVotes"] == 0

    def test_unsubscribe(self) -> None:
        broadcaster = WebSocketBroadcaster(queue_size=2)
        queue = broadcaster.subscribe()
        broadcaster.unsubscribe(queue)

        broadcaster.publish({"totalVotes": 1})

        assert broadcaster.listener_count == 0
        assert queue.empty()


@pytest.mark.unit
class TestSafePublish:
    def test_swallows_listener_errors(self) -> None:
        safe_publish(ExplodingBroadcaster(), {"totalVotes": 1})

    def test_null_broadcaster(self) -> None:
        assert NullBroadcaster().publish({"totalVotes": 1}) is None
