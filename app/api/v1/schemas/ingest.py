from pydantic import BaseModel, Field

from app.schemas import LiveStatus

from .base import UtcDatetime


class CreateSessionIn(BaseModel):
    owner_id: str = Field(..., min_length=1)
    title: str | None = None
    key_name: str | None = Field(None, description="Label for the stream key, e.g. 'OBS studio'")


class IssueStreamKeyIn(BaseModel):
    session_id: str
    owner_id: str = Field(..., min_length=1)
    name: str | None = None


class StreamKeyOut(BaseModel):
    session_id: str
    stream_key: str
    name: str | None = None
    is_active: bool
    rtmp_url: str
    publish_url: str


class SessionOut(BaseModel):
    session_id: str
    status: LiveStatus
    owner_id: str | None = None
    title: str | None = None
    created_at: UtcDatetime | None = None
    started_at: UtcDatetime | None = None
    ended_at: UtcDatetime | None = None


class CreateSessionOut(BaseModel):
    session: SessionOut
    stream_key: StreamKeyOut


class ToggleStreamKeyIn(BaseModel):
    is_active: bool


class ValidateStreamKeyIn(BaseModel):
    stream_key: str = Field(..., min_length=1)


class ValidateStreamKeyOut(BaseModel):
    valid: bool
    session_id: str | None = None
    status: LiveStatus | None = None
    reason: str | None = None
