"""Tests for stream status fan-out."""

from unittest.mock import AsyncMock, MagicMock, patch

import orjson

from app.domain.notifications.fanout import FanoutGroup, LocalBroadcaster, RedisStatusPublisher
from app.domain.notifications.notification_models import StreamStatusEvent
from app.schemas import LiveStatus


def live_event() -> StreamStatusEvent:
    return StreamStatusEvent(session_id="s1", status=LiveStatus.LIVE, stream_key="abc123", timestamp=1700000000000)


class TestStreamStatusEvent:
    def test_payload_uses_camel_case(self):
        assert live_event().to_payload() == {
            "event": "stream_status",
            "sessionId": "s1",
            "status": "LIVE",
            "streamKey": "abc123",
            "timestamp": 1700000000000,
        }

    def test_timestamp_defaults_to_epoch_ms(self):
        event = StreamStatusEvent(session_id="s1", status=LiveStatus.ENDED, stream_key="k")

        assert event.timestamp > 1_600_000_000_000


class TestLocalBroadcaster:
    async def test_every_subscriber_receives(self):
        broadcaster = LocalBroadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        await broadcaster.notify(live_event())

        assert first.get_nowait()["sessionId"] == "s1"
        assert second.get_nowait()["sessionId"] == "s1"

    async def test_unsubscribed_queue_receives_nothing(self):
        broadcaster = LocalBroadcaster()
        queue = broadcaster.subscribe()
        broadcaster.unsubscribe(queue)

        await broadcaster.notify(live_event())

        assert queue.empty()
        assert broadcaster.subscriber_count == 0

    async def test_full_queue_drops_event(self):
        broadcaster = LocalBroadcaster(max_queue_size=1)
        queue = broadcaster.subscribe()

        await broadcaster.notify(live_event())
        await broadcaster.notify(live_event())

        assert queue.qsize() == 1


class TestRedisStatusPublisher:
    async def test_publishes_json_on_channel(self):
        client = MagicMock()
        client.publish = AsyncMock(return_value=1)
        manager = MagicMock()
        manager.get_client.return_value = client

        with patch("app.domain.notifications.fanout.get_redis_manager", return_value=manager):
            await RedisStatusPublisher("livevideo:stream_status").notify(live_event())

        channel, data = client.publish.await_args.args
        assert channel == "livevideo:stream_status"
        assert orjson.loads(data)["status"] == "LIVE"


class TestFanoutGroup:
    async def test_isolates_member_failures(self):
        failing = AsyncMock()
        failing.notify.side_effect = RuntimeError("down")
        healthy = AsyncMock()

        await FanoutGroup([failing, healthy]).notify(live_event())

        healthy.notify.assert_awaited_once()
