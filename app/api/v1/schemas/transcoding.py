from pydantic import BaseModel, Field

from app.schemas import JobStatus

from .base import UtcDatetime


class StartRunIn(BaseModel):
    session_id: str
    source_url: str | None = Field(None, description="Defaults to the session's RTMP publish URL")
    default_only: bool | None = Field(None, description="Defaults to TRANSCODE_DEFAULT_ONLY")
    duration_seconds: float | None = Field(None, gt=0)


class StartProfileJobIn(BaseModel):
    session_id: str
    profile_name: str
    source_url: str | None = None
    duration_seconds: float | None = Field(None, gt=0)


class JobOut(BaseModel):
    id: str
    session_id: str
    profile_name: str
    status: JobStatus
    progress: int
    error_message: str | None = None
    output_url: str | None = None
    created_at: UtcDatetime | None = None
    started_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None


class StopJobOut(BaseModel):
    job_id: str
    stopped: bool


class MasterPlaylistOut(BaseModel):
    session_id: str
    url: str
