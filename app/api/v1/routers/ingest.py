from fastapi import APIRouter

from app.api.v1.dependency import Live
from app.api.v1.schemas.base import ApiOut, DeletedOut
from app.api.v1.schemas.ingest import (
    CreateSessionIn,
    CreateSessionOut,
    IssueStreamKeyIn,
    SessionOut,
    StreamKeyOut,
    ToggleStreamKeyIn,
    ValidateStreamKeyIn,
    ValidateStreamKeyOut,
)
from app.domain.live.ingest.ingest_models import IngestInfo, LiveSession, StreamKeyRecord
from app.domain.live.ingest.stream_keys import (
    create_session_with_key,
    delete_stream_key,
    ingest_info,
    issue_stream_key,
    list_session_keys,
    regenerate_stream_key,
    set_stream_key_active,
)
from app.services.live_services import LiveServices
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/ingest", tags=["Ingest"])


def _key_out(record: StreamKeyRecord) -> StreamKeyOut:
    info = ingest_info(record.key)
    return StreamKeyOut(
        session_id=record.session_id,
        stream_key=record.key,
        name=record.name,
        is_active=record.is_active,
        rtmp_url=info.rtmp_url,
        publish_url=info.publish_url or "",
    )


def _session_out(session: LiveSession) -> SessionOut:
    return SessionOut(
        session_id=session.id,
        status=session.status,
        owner_id=session.owner_id,
        title=session.title,
        created_at=session.created_at,
        started_at=session.started_at,
        ended_at=session.ended_at,
    )


async def _get_session_or_404(live: LiveServices, session_id: str) -> LiveSession:
    session = await live.sessions.get(session_id)
    if session is None:
        raise AppError(
            errcode=AppErrorCode.E_SESSION_NOT_FOUND,
            errmesg=f"Live session not found: {session_id}",
            status_code=HttpStatusCode.NOT_FOUND,
        )
    return session


@router.post("/create_session")
async def create_session(body: CreateSessionIn, live: Live) -> ApiOut[CreateSessionOut]:
    """Create a DRAFT live session and its stream key."""
    session, record = await create_session_with_key(
        live.keys,
        live.sessions,
        owner_id=body.owner_id,
        title=body.title,
        key_name=body.key_name,
    )
    return ApiOut[CreateSessionOut](
        results=CreateSessionOut(session=_session_out(session), stream_key=_key_out(record))
    )


@router.post("/issue_stream_key")
async def issue_key(body: IssueStreamKeyIn, live: Live) -> ApiOut[StreamKeyOut]:
    """Issue an additional stream key for an existing session."""
    await _get_session_or_404(live, body.session_id)
    record = await issue_stream_key(live.keys, body.session_id, body.owner_id, name=body.name)
    return ApiOut[StreamKeyOut](results=_key_out(record))


@router.get("/session/{session_id}")
async def get_session(session_id: str, live: Live) -> ApiOut[SessionOut]:
    session = await _get_session_or_404(live, session_id)
    return ApiOut[SessionOut](results=_session_out(session))


@router.get("/info")
async def get_ingest_info() -> ApiOut[IngestInfo]:
    """RTMP server details for publishers."""
    return ApiOut[IngestInfo](results=ingest_info())


@router.get("/session/{session_id}/stream_keys")
async def get_session_stream_keys(session_id: str, live: Live) -> ApiOut[list[StreamKeyOut]]:
    await _get_session_or_404(live, session_id)
    records = await list_session_keys(live.keys, session_id)
    return ApiOut[list[StreamKeyOut]](results=[_key_out(r) for r in records])


@router.post("/stream_keys/{stream_key}/regenerate")
async def regenerate_key(stream_key: str, live: Live) -> ApiOut[StreamKeyOut]:
    """Replace a stream key; the old key stops working immediately."""
    record = await regenerate_stream_key(live.keys, live.sessions, stream_key)
    return ApiOut[StreamKeyOut](results=_key_out(record))


@router.post("/stream_keys/{stream_key}/toggle")
async def toggle_key(stream_key: str, body: ToggleStreamKeyIn, live: Live) -> ApiOut[StreamKeyOut]:
    """Enable or disable a stream key."""
    record = await set_stream_key_active(live.keys, stream_key, body.is_active)
    return ApiOut[StreamKeyOut](results=_key_out(record))


@router.delete("/stream_keys/{stream_key}")
async def delete_key(stream_key: str, live: Live) -> ApiOut[DeletedOut]:
    await delete_stream_key(live.keys, stream_key)
    return ApiOut[DeletedOut](results=DeletedOut())


@router.post("/validate")
async def validate_key(body: ValidateStreamKeyIn, live: Live) -> ApiOut[ValidateStreamKeyOut]:
    """Check a stream key without touching the session."""
    check = await live.validator.check(body.stream_key)
    auth = check.authorization
    return ApiOut[ValidateStreamKeyOut](
        results=ValidateStreamKeyOut(
            valid=check.valid,
            session_id=auth.session_id if auth else None,
            status=auth.current_status if auth else None,
            reason=check.reason,
        )
    )
