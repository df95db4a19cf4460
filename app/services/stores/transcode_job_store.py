"""Mongo-backed transcoding job store."""

from typing import Any

from beanie.operators import Set
from pymongo import DESCENDING

from app.domain.live.transcoding.transcoding_models import RenditionProfile, TranscodeJob
from app.domain.utils.timeutil import utc_now
from app.schemas import JobStatus, ProfileSnapshot, TranscodingJob

# Domain field name -> document field name
_FIELD_MAP = {"id": "job_id"}


def _to_job(doc: TranscodingJob) -> TranscodeJob:
    return TranscodeJob(
        id=doc.job_id,
        session_id=doc.session_id,
        profile_name=doc.profile_name,
        profile=RenditionProfile(**doc.profile.model_dump()),
        input_url=doc.input_url,
        status=doc.status,
        progress=doc.progress,
        error_message=doc.error_message,
        output_playlist_path=doc.output_playlist_path,
        output_url=doc.output_url,
        created_at=doc.created_at,
        started_at=doc.started_at,
        completed_at=doc.completed_at,
    )


class MongoTranscodeJobStore:
    async def create(self, job: TranscodeJob) -> TranscodeJob:
        doc = TranscodingJob(
            job_id=job.id,
            session_id=job.session_id,
            profile_name=job.profile_name,
            profile=ProfileSnapshot(**job.profile.model_dump()),
            input_url=job.input_url,
            status=job.status,
            progress=job.progress,
            output_playlist_path=job.output_playlist_path,
            created_at=job.created_at or utc_now(),
        )
        await doc.insert()
        return _to_job(doc)

    async def get(self, job_id: str) -> TranscodeJob | None:
        doc = await TranscodingJob.find_one(TranscodingJob.job_id == job_id)
        return _to_job(doc) if doc else None

    async def update(self, job_id: str, fields: dict[str, Any]) -> None:
        update_fields = {_FIELD_MAP.get(name, name): value for name, value in fields.items()}
        await TranscodingJob.find_one(TranscodingJob.job_id == job_id).update(
            Set(update_fields)  # type: ignore[arg-type]
        )

    async def list_by_session(
        self,
        session_id: str,
        status: JobStatus | None = None,
    ) -> list[TranscodeJob]:
        conditions = [TranscodingJob.session_id == session_id]
        if status is not None:
            conditions.append(TranscodingJob.status == status)
        docs = await TranscodingJob.find(*conditions).sort([("created_at", DESCENDING)]).to_list()  # type: ignore
        return [_to_job(doc) for doc in docs]
