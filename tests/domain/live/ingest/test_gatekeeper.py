"""Tests for SessionGatekeeper publish hooks."""

from unittest.mock import AsyncMock

import pytest

from app.domain.live.ingest.gatekeeper import MAX_REJECTED_CONNECTIONS, SessionGatekeeper, extract_stream_key
from app.domain.live.ingest.ingest_models import PublishAttemptState
from app.domain.notifications.fanout import FanoutGroup, LocalBroadcaster
from app.schemas import LiveStatus


class TestExtractStreamKey:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/live/abc123", "abc123"),
            ("live/abc123", "abc123"),
            ("/live/abc123?token=x", "abc123"),
            ("/live/", None),
            ("", None),
            (None, None),
        ],
    )
    def test_final_segment(self, path, expected):
        assert extract_stream_key(path) == expected


class TestPrePublish:
    async def test_valid_key_accepted(self, gatekeeper: SessionGatekeeper):
        decision = await gatekeeper.on_pre_publish("c1", "/live/abc123")

        assert decision.accepted
        assert decision.session_id == "s1"
        assert gatekeeper.get_attempt("abc123").state == PublishAttemptState.AUTHORIZING

    async def test_invalid_key_rejected(self, gatekeeper: SessionGatekeeper, session_store):
        """Test an unknown key is refused and no session changes."""
        transport = AsyncMock()
        gatekeeper.transport = transport

        decision = await gatekeeper.on_pre_publish("c1", "/live/wrong")

        assert not decision.accepted
        assert gatekeeper.get_attempt("wrong") is None
        assert gatekeeper.was_rejected("c1", "wrong")
        transport.reject.assert_awaited_once_with("c1")
        assert session_store.status_updates == []

    async def test_empty_key_rejected_without_mutation(self, gatekeeper: SessionGatekeeper, session_store, broadcaster):
        """Test `/live/` (empty final segment) is rejected with no session mutation."""
        queue = broadcaster.subscribe()

        decision = await gatekeeper.on_pre_publish("c1", "/live/")

        assert not decision.accepted
        assert decision.reason == "empty stream key"
        assert session_store.status_updates == []
        assert session_store.sessions["s1"].status == LiveStatus.DRAFT
        assert queue.empty()

    async def test_rejected_keys_are_not_retained(self, gatekeeper: SessionGatekeeper):
        """Test repeated bogus keys leave no attempts behind."""
        for i in range(1000):
            await gatekeeper.on_pre_publish(f"c{i}", f"/live/bogus{i}")

        assert gatekeeper.attempt_count() == 0

    async def test_rejected_connections_are_bounded(self, gatekeeper: SessionGatekeeper):
        for i in range(MAX_REJECTED_CONNECTIONS + 10):
            await gatekeeper.on_pre_publish(f"c{i}", f"/live/bogus{i}")

        assert not gatekeeper.was_rejected("c0", "bogus0")
        last = MAX_REJECTED_CONNECTIONS + 9
        assert gatekeeper.was_rejected(f"c{last}", f"bogus{last}")

    async def test_publish_ended_forgets_rejection(self, gatekeeper: SessionGatekeeper):
        await gatekeeper.on_pre_publish("c1", "/live/wrong")

        decision = await gatekeeper.on_publish_ended("c1", "/live/wrong")

        assert not decision.accepted
        assert not gatekeeper.was_rejected("c1", "wrong")


class TestPublishStarted:
    async def test_goes_live_and_notifies(self, gatekeeper: SessionGatekeeper, session_store, broadcaster):
        """Test key abc123 for session s1 moves s1 to LIVE and emits the status event."""
        queue = broadcaster.subscribe()

        await gatekeeper.on_pre_publish("c1", "/live/abc123")
        decision = await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert decision.accepted
        assert decision.status == LiveStatus.LIVE
        session = session_store.sessions["s1"]
        assert session.status == LiveStatus.LIVE
        assert session.started_at is not None

        event = queue.get_nowait()
        assert event["event"] == "stream_status"
        assert event["sessionId"] == "s1"
        assert event["status"] == "LIVE"
        assert event["streamKey"] == "abc123"
        assert isinstance(event["timestamp"], int)
        assert gatekeeper.get_attempt("abc123").state == PublishAttemptState.LIVE

    async def test_status_written_before_notify(self, validator, session_store):
        """Test the fan-out sees the session already LIVE."""
        seen: list[LiveStatus] = []

        class RecordingFanout:
            async def notify(self, event):
                seen.append(session_store.sessions[event.session_id].status)

        gatekeeper = SessionGatekeeper(validator, session_store, RecordingFanout())

        await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert seen == [LiveStatus.LIVE]

    async def test_notification_failure_does_not_block_status(self, validator, session_store):
        failing = AsyncMock()
        failing.notify.side_effect = RuntimeError("subscriber gone")
        gatekeeper = SessionGatekeeper(validator, session_store, failing)

        decision = await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert decision.accepted
        assert session_store.sessions["s1"].status == LiveStatus.LIVE

    async def test_storage_failure_is_swallowed(self, gatekeeper: SessionGatekeeper, session_store):
        session_store.fail_updates = True

        decision = await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert decision.accepted
        assert session_store.sessions["s1"].status == LiveStatus.DRAFT

    async def test_revalidation_failure_disconnects(self, gatekeeper: SessionGatekeeper, key_store, session_store):
        """Test a key disabled between pre-publish and start is dropped without going LIVE."""
        transport = AsyncMock()
        gatekeeper.transport = transport

        await gatekeeper.on_pre_publish("c1", "/live/abc123")
        key_store.records["abc123"].is_active = False
        decision = await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert not decision.accepted
        assert session_store.sessions["s1"].status == LiveStatus.DRAFT
        assert gatekeeper.get_attempt("abc123") is None
        assert gatekeeper.was_rejected("c1", "abc123")
        transport.disconnect.assert_awaited_once_with("c1")

    async def test_revalidation_failure_without_disconnect(self, validator, session_store, key_store):
        transport = AsyncMock()
        gatekeeper = SessionGatekeeper(
            validator,
            session_store,
            LocalBroadcaster(),
            transport=transport,
            disconnect_on_revalidation_failure=False,
        )
        key_store.records["abc123"].is_active = False

        await gatekeeper.on_publish_started("c1", "/live/abc123")

        transport.disconnect.assert_not_awaited()
        transport.reject.assert_awaited_once_with("c1")

    async def test_rejected_attempt_ignores_later_events(self, gatekeeper: SessionGatekeeper, key_store, session_store):
        """Test no further events are processed for a rejected attempt."""
        key_store.records["abc123"].is_active = False
        await gatekeeper.on_pre_publish("c1", "/live/abc123")
        key_store.records["abc123"].is_active = True

        decision = await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert not decision.accepted
        assert session_store.status_updates == []

    async def test_on_live_callback_invoked(self, validator, session_store):
        on_live = AsyncMock()
        gatekeeper = SessionGatekeeper(validator, session_store, LocalBroadcaster(), on_live=on_live)

        await gatekeeper.on_publish_started("c1", "/live/abc123")

        on_live.assert_awaited_once()
        assert on_live.await_args.args[0].session_id == "s1"

    async def test_on_live_failure_is_logged(self, validator, session_store):
        on_live = AsyncMock(side_effect=RuntimeError("no profiles"))
        gatekeeper = SessionGatekeeper(validator, session_store, LocalBroadcaster(), on_live=on_live)

        decision = await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert decision.accepted
        assert session_store.sessions["s1"].status == LiveStatus.LIVE


class TestPublishEnded:
    async def test_live_session_ends_and_notifies(self, gatekeeper: SessionGatekeeper, session_store, broadcaster):
        await gatekeeper.on_publish_started("c1", "/live/abc123")
        queue = broadcaster.subscribe()

        decision = await gatekeeper.on_publish_ended("c1", "/live/abc123")

        assert decision.accepted
        assert decision.status == LiveStatus.ENDED
        session = session_store.sessions["s1"]
        assert session.status == LiveStatus.ENDED
        assert session.ended_at is not None
        event = queue.get_nowait()
        assert event["status"] == "ENDED"
        assert gatekeeper.get_attempt("abc123") is None

    async def test_end_without_live_is_skipped(self, gatekeeper: SessionGatekeeper, session_store, broadcaster):
        """Test publish_ended on a DRAFT session changes nothing and sends no event."""
        queue = broadcaster.subscribe()

        await gatekeeper.on_publish_ended("c1", "/live/abc123")

        assert session_store.status_updates == []
        assert queue.empty()

    async def test_new_attempt_after_end_goes_live_again(self, gatekeeper: SessionGatekeeper, session_store):
        await gatekeeper.on_publish_started("c1", "/live/abc123")
        await gatekeeper.on_publish_ended("c1", "/live/abc123")

        decision = await gatekeeper.on_publish_started("c2", "/live/abc123")

        assert decision.accepted
        session = session_store.sessions["s1"]
        assert session.status == LiveStatus.LIVE
        assert session.ended_at is None
        assert session_store.status_updates == [
            ("s1", LiveStatus.LIVE),
            ("s1", LiveStatus.ENDED),
            ("s1", LiveStatus.LIVE),
        ]


class TestFanoutGroupIntegration:
    async def test_failing_member_does_not_stop_others(self, validator, session_store):
        failing = AsyncMock()
        failing.notify.side_effect = ConnectionError("redis down")
        local = LocalBroadcaster()
        queue = local.subscribe()
        gatekeeper = SessionGatekeeper(validator, session_store, FanoutGroup([failing, local]))

        await gatekeeper.on_publish_started("c1", "/live/abc123")

        assert queue.get_nowait()["status"] == "LIVE"
