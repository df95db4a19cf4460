"""Stream key validation for publish authorization."""

from loguru import logger

from ..stores import LiveSessionStore, StreamKeyStore
from .ingest_models import KeyCheck, SessionAuthorization


class KeyValidator:
    """Resolves a stream key to the session it may publish into.

    Read-only: never mutates keys or sessions.
    """

    def __init__(self, keys: StreamKeyStore, sessions: LiveSessionStore):
        self.keys = keys
        self.sessions = sessions

    async def validate(self, stream_key: str | None) -> SessionAuthorization | None:
        """
        Validate a stream key.

        Args:
            stream_key: Key extracted from the ingest path

        Returns:
            SessionAuthorization when the key is known, active, bound to an existing
            session and the session's status is permitted by the key; None otherwise.
            Storage errors are treated as "not found".
        """
        return (await self.check(stream_key)).authorization

    async def check(self, stream_key: str | None) -> KeyCheck:
        """Validate a stream key and say why it was refused."""
        if not stream_key:
            return KeyCheck(reason="stream key is required")

        try:
            record = await self.keys.get_by_key(stream_key)
            if record is None:
                logger.debug(f"Stream key not found: {stream_key}")
                return KeyCheck(reason="invalid stream key")
            if not record.is_active:
                logger.debug(f"Stream key disabled: {stream_key}")
                return KeyCheck(reason="stream key is disabled")

            session = await self.sessions.get(record.session_id)
        except Exception:
            logger.exception(f"Stream key lookup failed for {stream_key}")
            return KeyCheck(reason="stream key lookup failed")

        if session is None:
            logger.debug(f"Session {record.session_id} bound to key {stream_key} does not exist")
            return KeyCheck(reason="session not found")
        if session.status not in record.permitted_statuses:
            logger.debug(
                f"Session {session.id} status {session.status} not permitted for key {stream_key}"
            )
            return KeyCheck(reason=f"session status {session.status} not permitted")

        return KeyCheck(
            authorization=SessionAuthorization(
                session_id=session.id,
                current_status=session.status,
                owner_id=record.owner_id,
                stream_key=stream_key,
            )
        )
