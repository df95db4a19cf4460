"""Mongo-backed live session store."""

from datetime import datetime
from typing import Any

from beanie.operators import Set
from loguru import logger

from app.domain.live.ingest.ingest_models import LiveSession
from app.domain.utils.idgen import new_session_id
from app.domain.utils.timeutil import utc_now
from app.schemas import LiveStatus, LiveStream


def _to_session(doc: LiveStream) -> LiveSession:
    return LiveSession(
        id=doc.session_id,
        stream_key=doc.stream_key,
        status=doc.status,
        owner_id=doc.owner_id,
        title=doc.title,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
        started_at=doc.started_at,
        ended_at=doc.ended_at,
    )


class MongoLiveSessionStore:
    async def get(self, session_id: str) -> LiveSession | None:
        doc = await LiveStream.find_one(LiveStream.session_id == session_id)
        return _to_session(doc) if doc else None

    async def create(
        self,
        stream_key: str,
        owner_id: str | None = None,
        title: str | None = None,
        session_id: str | None = None,
    ) -> LiveSession:
        now = utc_now()
        doc = LiveStream(
            session_id=session_id or new_session_id(),
            stream_key=stream_key,
            owner_id=owner_id,
            title=title,
            status=LiveStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        await doc.insert()
        return _to_session(doc)

    async def set_stream_key(self, session_id: str, stream_key: str) -> None:
        result = await LiveStream.find_one(LiveStream.session_id == session_id).update(
            Set({LiveStream.stream_key: stream_key, LiveStream.updated_at: utc_now()})  # type: ignore[arg-type]
        )
        if result is None or result.matched_count == 0:
            logger.warning(f"Live session {session_id} not found for stream key update")

    async def update_status(
        self,
        session_id: str,
        status: LiveStatus,
        *,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        clear_ended_at: bool = False,
    ) -> None:
        update_fields: dict[Any, Any] = {
            LiveStream.status: status,
            LiveStream.updated_at: utc_now(),
        }
        if started_at is not None:
            update_fields[LiveStream.started_at] = started_at
        if ended_at is not None:
            update_fields[LiveStream.ended_at] = ended_at
        elif clear_ended_at:
            update_fields[LiveStream.ended_at] = None

        result = await LiveStream.find_one(LiveStream.session_id == session_id).update(
            Set(update_fields)  # type: ignore[arg-type]
        )
        if result is None or result.matched_count == 0:
            logger.warning(f"Live session {session_id} not found for status update to {status}")
