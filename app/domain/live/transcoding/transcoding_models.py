"""Transcoding domain models."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas import JobStatus


class RenditionProfile(BaseModel):
    """One target encoding of the source stream."""

    name: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    video_bitrate_kbps: int = Field(gt=0)
    audio_bitrate_kbps: int = Field(default=128, gt=0)
    frame_rate: int = Field(default=30, gt=0)
    preset: str = "veryfast"
    is_default: bool = False

    @property
    def bandwidth(self) -> int:
        """Declared variant bandwidth in bits per second."""
        return self.video_bitrate_kbps * 1000

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


class TranscodeJob(BaseModel):
    """One rendition encode for a session."""

    id: str
    session_id: str
    profile_name: str
    profile: RenditionProfile
    input_url: str

    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    error_message: str | None = None
    output_playlist_path: str | None = None
    output_url: str | None = None

    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in JobStatus.terminal_states()


class JobHandle(BaseModel):
    """Returned by a run start: which job was created for which profile."""

    job_id: str
    profile_name: str
    status: JobStatus = JobStatus.PENDING


class JobStatusView(BaseModel):
    """Job fields exposed to tooling and the admin UI."""

    id: str
    session_id: str
    profile_name: str
    status: JobStatus
    progress: int
    error_message: str | None = None
    output_url: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: TranscodeJob) -> "JobStatusView":
        return cls(
            id=job.id,
            session_id=job.session_id,
            profile_name=job.profile_name,
            status=job.status,
            progress=job.progress,
            error_message=job.error_message,
            output_url=job.output_url,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )


class TranscodingStatus(BaseModel):
    active_jobs: int
    status: str = "running"
