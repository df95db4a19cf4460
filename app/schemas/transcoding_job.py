"""Transcoding job ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import BaseModel, field_validator
from pymongo import IndexModel

from .schema_utils import parse_mongo_datetime
from .stream_state import JobStatus


class ProfileSnapshot(BaseModel):
    """Copy of the rendition profile taken when the job was created."""

    name: str
    width: int
    height: int
    video_bitrate_kbps: int
    audio_bitrate_kbps: int = 128
    frame_rate: int = 30
    preset: str = "veryfast"
    is_default: bool = False


class TranscodingJob(Document):
    """Transcoding job document model, one per (session, profile) per run."""

    job_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    session_id: str
    profile_name: str
    profile: ProfileSnapshot
    input_url: str

    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    error_message: str | None = None
    output_playlist_path: str | None = None
    output_url: str | None = None

    # Timestamps
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @field_validator("created_at", "started_at", "completed_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "transcoding_job"
        indexes = [
            [("job_id", 1)],  # unique handled by Indexed
            IndexModel(
                [("session_id", 1), ("status", 1)],
                name="session_id_status",
            ),
            IndexModel(
                [("session_id", 1), ("created_at", -1)],
                name="session_id_created_at",
            ),
        ]
