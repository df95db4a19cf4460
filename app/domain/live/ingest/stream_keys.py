"""Stream key issuance and publisher connection details."""

from loguru import logger

from app.app_config import get_app_environ_config
from app.domain.utils.idgen import new_session_id, new_stream_key
from app.domain.utils.timeutil import utc_now
from app.schemas import LiveStatus
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ..stores import LiveSessionStore, StreamKeyStore
from .ingest_models import IngestInfo, LiveSession, StreamKeyRecord


async def issue_stream_key(
    keys: StreamKeyStore,
    session_id: str,
    owner_id: str,
    name: str | None = None,
    permitted_statuses: list[LiveStatus] | None = None,
) -> StreamKeyRecord:
    """
    Issue a new random stream key bound to a session.

    Args:
        keys: Stream key store
        session_id: Session the key publishes into
        owner_id: Owner of the session
        name: Optional human readable label (e.g. "OBS studio")
        permitted_statuses: Session statuses in which the key authorizes; all by default

    Returns:
        The stored StreamKeyRecord
    """
    record = StreamKeyRecord(
        key=new_stream_key(),
        session_id=session_id,
        owner_id=owner_id,
        name=name,
        created_at=utc_now(),
    )
    if permitted_statuses is not None:
        record.permitted_statuses = list(permitted_statuses)

    record = await keys.create(record)
    logger.info(f"Issued stream key for session {session_id} (owner={owner_id})")
    return record


def ingest_info(stream_key: str | None = None) -> IngestInfo:
    """RTMP server URL and, given a key, the full publish URL."""
    app_config = get_app_environ_config()
    rtmp_url = f"rtmp://{app_config.RTMP_HOST}:{app_config.RTMP_PORT}/{app_config.RTMP_APP}"
    return IngestInfo(
        rtmp_url=rtmp_url,
        stream_key=stream_key,
        publish_url=f"{rtmp_url}/{stream_key}" if stream_key else None,
    )


async def create_session_with_key(
    keys: StreamKeyStore,
    sessions: LiveSessionStore,
    owner_id: str,
    title: str | None = None,
    key_name: str | None = None,
) -> tuple[LiveSession, StreamKeyRecord]:
    """Create a DRAFT live session together with the stream key that publishes into it."""
    session_id = new_session_id()
    record = await issue_stream_key(keys, session_id, owner_id, name=key_name)
    session = await sessions.create(record.key, owner_id=owner_id, title=title, session_id=session_id)
    logger.info(f"Created live session {session.id} for owner {owner_id}")
    return session, record


def _key_not_found(stream_key: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_STREAM_KEY_NOT_FOUND,
        errmesg=f"Stream key not found: {stream_key}",
        status_code=HttpStatusCode.NOT_FOUND,
    )


async def list_session_keys(keys: StreamKeyStore, session_id: str) -> list[StreamKeyRecord]:
    return await keys.list_by_session(session_id)


async def regenerate_stream_key(
    keys: StreamKeyStore,
    sessions: LiveSessionStore,
    stream_key: str,
) -> StreamKeyRecord:
    """
    Replace a key with a fresh random one, keeping its session binding and settings.

    The old key stops authorizing immediately. If the session still points at the
    old key, it is moved to the new one.

    Raises:
        AppError: E_STREAM_KEY_NOT_FOUND if the key does not exist
    """
    record = await keys.replace_key(stream_key, new_stream_key())
    if record is None:
        raise _key_not_found(stream_key)

    session = await sessions.get(record.session_id)
    if session is not None and session.stream_key == stream_key:
        await sessions.set_stream_key(session.id, record.key)

    logger.info(f"🔁 Regenerated stream key for session {record.session_id}")
    return record


async def set_stream_key_active(keys: StreamKeyStore, stream_key: str, is_active: bool) -> StreamKeyRecord:
    """Enable or disable a key. A disabled key fails validation at every hook point."""
    record = await keys.set_active(stream_key, is_active)
    if record is None:
        raise _key_not_found(stream_key)

    logger.info(f"Stream key for session {record.session_id} {'enabled' if is_active else 'disabled'}")
    return record


async def delete_stream_key(keys: StreamKeyStore, stream_key: str) -> None:
    if not await keys.delete(stream_key):
        raise _key_not_found(stream_key)
    logger.info("Deleted stream key")
