"""Session gatekeeper: authorizes RTMP publishes and drives the live status."""

from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Protocol

from loguru import logger

from app.domain.notifications.fanout import StatusFanout
from app.domain.notifications.notification_models import StreamStatusEvent
from app.domain.utils.timeutil import utc_now
from app.schemas import LiveStatus

from ..stores import LiveSessionStore
from .ingest_models import PublishAttempt, PublishAttemptState, PublishDecision, SessionAuthorization
from .key_validator import KeyValidator
from .session_state_machine import LiveSessionStateMachine

OnLiveCallback = Callable[[SessionAuthorization], Awaitable[None]]

# Rejected connections remembered so their later hooks are ignored
MAX_REJECTED_CONNECTIONS = 1024


class PublishHooks(Protocol):
    """Hook points invoked by the ingest transport integration."""

    async def on_pre_publish(self, connection_id: str, path: str) -> PublishDecision: ...

    async def on_publish_started(self, connection_id: str, path: str) -> PublishDecision: ...

    async def on_publish_ended(self, connection_id: str, path: str) -> PublishDecision: ...


class IngestTransport(Protocol):
    """Connection control offered by the RTMP server."""

    async def reject(self, connection_id: str) -> None: ...

    async def disconnect(self, connection_id: str) -> None: ...


def extract_stream_key(path: str | None) -> str | None:
    """Return the final segment of an ingest path (`/<app>/<key>`), or None if empty."""
    if not path:
        return None
    path = path.split("?", 1)[0]
    key = path.split("/")[-1].strip()
    return key or None


class SessionGatekeeper:
    """Implements the publish hooks.

    Each publish attempt is tracked by stream key:
    AWAITING_PUBLISH -> AUTHORIZING -> REJECTED | LIVE -> ENDED

    The key is re-validated at every hook point. Status writes go first and
    notifications after, so a failing subscriber never blocks a status change.

    Rejected attempts are dropped from the attempt map at once; only the
    (connection, key) pair is kept, in a bounded LRU, to ignore later hooks.
    """

    def __init__(
        self,
        validator: KeyValidator,
        sessions: LiveSessionStore,
        fanout: StatusFanout,
        transport: IngestTransport | None = None,
        on_live: OnLiveCallback | None = None,
        disconnect_on_revalidation_failure: bool = True,
    ):
        self.validator = validator
        self.sessions = sessions
        self.fanout = fanout
        self.transport = transport
        self.on_live = on_live
        self.disconnect_on_revalidation_failure = disconnect_on_revalidation_failure
        self._attempts: dict[str, PublishAttempt] = {}
        # connection_id -> rejected stream key
        self._rejected: OrderedDict[str, str] = OrderedDict()

    def get_attempt(self, stream_key: str) -> PublishAttempt | None:
        return self._attempts.get(stream_key)

    def attempt_count(self) -> int:
        return len(self._attempts)

    def was_rejected(self, connection_id: str, stream_key: str) -> bool:
        return self._rejected.get(connection_id) == stream_key

    def _attempt_for(self, stream_key: str, connection_id: str) -> PublishAttempt:
        attempt = self._attempts.get(stream_key)
        if attempt is None or attempt.connection_id != connection_id:
            attempt = PublishAttempt(stream_key=stream_key, connection_id=connection_id)
            self._attempts[stream_key] = attempt
        return attempt

    def _remember_rejection(self, attempt: PublishAttempt) -> None:
        if self._attempts.get(attempt.stream_key) is attempt:
            del self._attempts[attempt.stream_key]
        self._rejected[attempt.connection_id] = attempt.stream_key
        self._rejected.move_to_end(attempt.connection_id)
        while len(self._rejected) > MAX_REJECTED_CONNECTIONS:
            self._rejected.popitem(last=False)

    async def _refuse(self, connection_id: str, *, disconnect: bool = False) -> None:
        if self.transport is None:
            return
        try:
            if disconnect:
                await self.transport.disconnect(connection_id)
            else:
                await self.transport.reject(connection_id)
        except Exception:
            logger.exception(f"Transport failed to drop connection {connection_id}")

    def _reject(self, attempt: PublishAttempt | None, stream_key: str | None, reason: str) -> PublishDecision:
        if attempt is not None:
            attempt.state = PublishAttemptState.REJECTED
            attempt.reason = reason
            self._remember_rejection(attempt)
        logger.warning(f"🚫 Publish rejected for stream key {stream_key!r}: {reason}")
        return PublishDecision(accepted=False, stream_key=stream_key, reason=reason)

    async def on_pre_publish(self, connection_id: str, path: str) -> PublishDecision:
        stream_key = extract_stream_key(path)
        if stream_key is None:
            await self._refuse(connection_id)
            return self._reject(None, None, "empty stream key")

        self._rejected.pop(connection_id, None)
        attempt = self._attempt_for(stream_key, connection_id)
        attempt.state = PublishAttemptState.AUTHORIZING

        auth = await self.validator.validate(stream_key)
        if auth is None:
            await self._refuse(connection_id)
            return self._reject(attempt, stream_key, "invalid stream key")

        attempt.session_id = auth.session_id
        logger.info(f"🔑 Publish authorized: key={stream_key} session={auth.session_id}")
        return PublishDecision(
            accepted=True,
            stream_key=stream_key,
            session_id=auth.session_id,
            status=auth.current_status,
        )

    async def on_publish_started(self, connection_id: str, path: str) -> PublishDecision:
        stream_key = extract_stream_key(path)
        if stream_key is None:
            await self._refuse(connection_id)
            return self._reject(None, None, "empty stream key")
        if self.was_rejected(connection_id, stream_key):
            return PublishDecision(accepted=False, stream_key=stream_key, reason="attempt already rejected")

        attempt = self._attempt_for(stream_key, connection_id)
        if attempt.state == PublishAttemptState.AWAITING_PUBLISH:
            # Transports without a pre-publish callback start here
            attempt.state = PublishAttemptState.AUTHORIZING

        auth = await self.validator.validate(stream_key)
        if auth is None:
            await self._refuse(connection_id, disconnect=self.disconnect_on_revalidation_failure)
            return self._reject(attempt, stream_key, "stream key failed re-validation")

        attempt.session_id = auth.session_id
        attempt.state = PublishAttemptState.LIVE

        changed = await self._update_status(auth, LiveStatus.LIVE)
        if changed:
            await self._notify(auth, LiveStatus.LIVE)
            await self._fire_on_live(auth)

        logger.info(f"🔴 Stream started: key={stream_key} session={auth.session_id}")
        return PublishDecision(
            accepted=True,
            stream_key=stream_key,
            session_id=auth.session_id,
            status=LiveStatus.LIVE,
        )

    async def on_publish_ended(self, connection_id: str, path: str) -> PublishDecision:
        stream_key = extract_stream_key(path)
        if stream_key is None:
            return self._reject(None, None, "empty stream key")
        if self.was_rejected(connection_id, stream_key):
            del self._rejected[connection_id]
            return PublishDecision(accepted=False, stream_key=stream_key, reason="attempt already rejected")

        auth = await self.validator.validate(stream_key)
        if auth is None:
            self._attempts.pop(stream_key, None)
            return self._reject(None, stream_key, "stream key failed re-validation")

        changed = await self._update_status(auth, LiveStatus.ENDED)
        if changed:
            await self._notify(auth, LiveStatus.ENDED)

        attempt = self._attempts.pop(stream_key, None)
        if attempt is not None:
            attempt.state = PublishAttemptState.ENDED

        logger.info(f"⏹️ Stream ended: key={stream_key} session={auth.session_id}")
        return PublishDecision(
            accepted=True,
            stream_key=stream_key,
            session_id=auth.session_id,
            status=LiveStatus.ENDED if changed else auth.current_status,
        )

    async def _update_status(self, auth: SessionAuthorization, new_status: LiveStatus) -> bool:
        """
        Move the session to a new status and stamp its lifecycle timestamps.

        Returns:
            True if the transition was valid and applied (or attempted), False if it
            was a no-op or an invalid transition. Storage errors are logged and
            do not change the result.
        """
        current = auth.current_status
        if current == new_status:
            logger.info(f"Session {auth.session_id} already in status {new_status}, skipping")
            return False

        if not LiveSessionStateMachine.can_transition(current, new_status):
            logger.warning(f"Invalid status transition for session {auth.session_id}: {current} -> {new_status}")
            return False

        now = utc_now()
        try:
            if new_status == LiveStatus.LIVE:
                await self.sessions.update_status(
                    auth.session_id, new_status, started_at=now, clear_ended_at=True
                )
            else:
                await self.sessions.update_status(auth.session_id, new_status, ended_at=now)
        except Exception:
            logger.exception(f"Failed to update session {auth.session_id} status to {new_status}")
            return True

        logger.info(f"Session {auth.session_id} status updated: {current} -> {new_status}")
        return True

    async def _notify(self, auth: SessionAuthorization, status: LiveStatus) -> None:
        event = StreamStatusEvent(session_id=auth.session_id, status=status, stream_key=auth.stream_key)
        try:
            await self.fanout.notify(event)
        except Exception:
            logger.exception(f"Status notification failed for session {auth.session_id}")

    async def _fire_on_live(self, auth: SessionAuthorization) -> None:
        if self.on_live is None:
            return
        try:
            await self.on_live(auth)
        except Exception:
            logger.exception(f"On-live handler failed for session {auth.session_id}")
