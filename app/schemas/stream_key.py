"""Stream key ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import Field, field_validator

from .schema_utils import parse_mongo_datetime
from .stream_state import LiveStatus


class StreamKey(Document):
    """Stream key document model.

    Binds an opaque publish credential to one live session. The gatekeeper only reads
    it; admins may disable, regenerate or delete it.
    """

    stream_key: Indexed(str, unique=True)  # type: ignore[valid-type]
    session_id: Indexed(str)  # type: ignore[valid-type]
    owner_id: str

    name: str | None = None
    is_active: bool = True
    permitted_statuses: list[LiveStatus] = Field(default_factory=lambda: list(LiveStatus))

    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "stream_key"
        indexes = [
            [("stream_key", 1)],  # unique handled by Indexed
            "session_id",
        ]
