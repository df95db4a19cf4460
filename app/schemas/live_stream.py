"""Live session ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from .schema_utils import parse_mongo_datetime
from .stream_state import LiveStatus


class LiveStream(Document):
    """Live session document model."""

    session_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    stream_key: Indexed(str)  # type: ignore[valid-type]
    owner_id: str | None = None
    title: str | None = None

    status: LiveStatus = LiveStatus.DRAFT

    # Timestamps
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator("created_at", "updated_at", "started_at", "ended_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "live_session"
        indexes = [
            [("session_id", 1)],  # unique handled by Indexed
            "stream_key",
        ]
