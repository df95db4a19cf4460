"""Storage interfaces the live domain depends on.

The domain only needs small create/read/update calls from the record store.
Mongo-backed implementations live in `app.services.stores`.
"""

from datetime import datetime
from typing import Any, Protocol

from app.schemas import JobStatus, LiveStatus

from .ingest.ingest_models import LiveSession, StreamKeyRecord
from .transcoding.transcoding_models import RenditionProfile, TranscodeJob


class StreamKeyStore(Protocol):
    async def get_by_key(self, stream_key: str) -> StreamKeyRecord | None: ...

    async def create(self, record: StreamKeyRecord) -> StreamKeyRecord: ...

    async def list_by_session(self, session_id: str) -> list[StreamKeyRecord]:
        """Keys of a session, oldest first."""
        ...

    async def set_active(self, stream_key: str, is_active: bool) -> StreamKeyRecord | None: ...

    async def replace_key(self, stream_key: str, new_key: str) -> StreamKeyRecord | None:
        """Swap the key string, keeping the binding and metadata. None if the key is unknown."""
        ...

    async def delete(self, stream_key: str) -> bool: ...


class LiveSessionStore(Protocol):
    async def get(self, session_id: str) -> LiveSession | None: ...

    async def create(
        self,
        stream_key: str,
        owner_id: str | None = None,
        title: str | None = None,
        session_id: str | None = None,
    ) -> LiveSession: ...

    async def set_stream_key(self, session_id: str, stream_key: str) -> None: ...

    async def update_status(
        self,
        session_id: str,
        status: LiveStatus,
        *,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        clear_ended_at: bool = False,
    ) -> None: ...


class ProfileStore(Protocol):
    async def list_profiles(self, default_only: bool = False) -> list[RenditionProfile]:
        """Profiles ordered by height, highest first."""
        ...

    async def get_profile(self, name: str) -> RenditionProfile | None: ...

    async def upsert_profile(self, profile: RenditionProfile) -> RenditionProfile: ...

    async def delete_profile(self, name: str) -> bool: ...


class TranscodeJobStore(Protocol):
    async def create(self, job: TranscodeJob) -> TranscodeJob: ...

    async def get(self, job_id: str) -> TranscodeJob | None: ...

    async def update(self, job_id: str, fields: dict[str, Any]) -> None: ...

    async def list_by_session(
        self,
        session_id: str,
        status: JobStatus | None = None,
    ) -> list[TranscodeJob]:
        """Jobs of a session, newest first."""
        ...
