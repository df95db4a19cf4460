"""Ingest domain models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.schemas import LiveStatus


class StreamKeyRecord(BaseModel):
    """A stream key bound to one live session."""

    key: str
    session_id: str
    owner_id: str
    permitted_statuses: list[LiveStatus] = Field(default_factory=lambda: list(LiveStatus))
    is_active: bool = True
    name: str | None = None
    created_at: datetime | None = None


class LiveSession(BaseModel):
    """Live session as seen by the gatekeeper."""

    id: str
    stream_key: str
    status: LiveStatus = LiveStatus.DRAFT
    owner_id: str | None = None
    title: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None


class SessionAuthorization(BaseModel):
    """Result of a successful stream key validation."""

    session_id: str
    current_status: LiveStatus
    owner_id: str
    stream_key: str


class KeyCheck(BaseModel):
    """Outcome of a stream key check: the authorization, or why there is none."""

    authorization: SessionAuthorization | None = None
    reason: str | None = None

    @property
    def valid(self) -> bool:
        return self.authorization is not None


class PublishAttemptState(str, Enum):
    """Per-attempt gatekeeper states, keyed by stream key.

    AWAITING_PUBLISH → AUTHORIZING → REJECTED | LIVE → ENDED
    """

    AWAITING_PUBLISH = "AWAITING_PUBLISH"
    AUTHORIZING = "AUTHORIZING"
    REJECTED = "REJECTED"
    LIVE = "LIVE"
    ENDED = "ENDED"

    def __str__(self) -> str:
        return self.value


class PublishAttempt(BaseModel):
    """Bookkeeping for one publish attempt on the ingest transport."""

    stream_key: str
    connection_id: str
    state: PublishAttemptState = PublishAttemptState.AWAITING_PUBLISH
    session_id: str | None = None
    reason: str | None = None


class PublishDecision(BaseModel):
    """Outcome of a publish hook, returned to the transport integration."""

    accepted: bool
    stream_key: str | None = None
    session_id: str | None = None
    status: LiveStatus | None = None
    reason: str | None = None


class IngestInfo(BaseModel):
    """Connection details handed to publishers (OBS, vMix)."""

    rtmp_url: str
    stream_key: str | None = None
    publish_url: str | None = None
