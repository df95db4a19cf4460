"""Mongo-backed stream key store."""

from app.domain.live.ingest.ingest_models import StreamKeyRecord
from app.domain.utils.timeutil import utc_now
from app.schemas import StreamKey


def _to_record(doc: StreamKey) -> StreamKeyRecord:
    return StreamKeyRecord(
        key=doc.stream_key,
        session_id=doc.session_id,
        owner_id=doc.owner_id,
        permitted_statuses=doc.permitted_statuses,
        is_active=doc.is_active,
        name=doc.name,
        created_at=doc.created_at,
    )


class MongoStreamKeyStore:
    async def get_by_key(self, stream_key: str) -> StreamKeyRecord | None:
        doc = await StreamKey.find_one(StreamKey.stream_key == stream_key)
        return _to_record(doc) if doc else None

    async def create(self, record: StreamKeyRecord) -> StreamKeyRecord:
        doc = StreamKey(
            stream_key=record.key,
            session_id=record.session_id,
            owner_id=record.owner_id,
            name=record.name,
            is_active=record.is_active,
            permitted_statuses=record.permitted_statuses,
            created_at=record.created_at or utc_now(),
        )
        await doc.insert()
        return _to_record(doc)

    async def list_by_session(self, session_id: str) -> list[StreamKeyRecord]:
        docs = await StreamKey.find(StreamKey.session_id == session_id).sort("created_at").to_list()
        return [_to_record(doc) for doc in docs]

    async def set_active(self, stream_key: str, is_active: bool) -> StreamKeyRecord | None:
        doc = await StreamKey.find_one(StreamKey.stream_key == stream_key)
        if doc is None:
            return None
        await doc.set({StreamKey.is_active: is_active, StreamKey.updated_at: utc_now()})
        return _to_record(doc)

    async def replace_key(self, stream_key: str, new_key: str) -> StreamKeyRecord | None:
        doc = await StreamKey.find_one(StreamKey.stream_key == stream_key)
        if doc is None:
            return None
        await doc.set({StreamKey.stream_key: new_key, StreamKey.updated_at: utc_now()})
        return _to_record(doc)

    async def delete(self, stream_key: str) -> bool:
        result = await StreamKey.find_one(StreamKey.stream_key == stream_key).delete()
        return result is not None and result.deleted_count > 0
