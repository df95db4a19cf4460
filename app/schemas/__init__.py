"""Beanie ODM schemas for MongoDB collections."""

from .init import init_beanie_odm
from .live_stream import LiveStream
from .stream_key import StreamKey
from .stream_state import JobStatus, LiveStatus
from .transcoding_job import ProfileSnapshot, TranscodingJob
from .transcoding_profile import TranscodingProfile

__all__ = [
    "JobStatus",
    "LiveStatus",
    "LiveStream",
    "ProfileSnapshot",
    "StreamKey",
    "TranscodingJob",
    "TranscodingProfile",
    "init_beanie_odm",
]
