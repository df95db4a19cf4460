"""Transcoding profile ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from .schema_utils import parse_mongo_datetime


class TranscodingProfile(Document):
    """One rung of the adaptive bitrate ladder."""

    name: Indexed(str, unique=True)  # type: ignore[valid-type]
    width: int
    height: Indexed(int)  # type: ignore[valid-type]
    video_bitrate_kbps: int
    audio_bitrate_kbps: int = 128
    frame_rate: int = 30
    preset: str = "veryfast"
    is_default: bool = False

    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "transcoding_profile"
        indexes = [
            [("name", 1)],  # unique handled by Indexed
            [("height", -1)],
        ]
