"""Stream status event payloads."""

from pydantic import BaseModel, ConfigDict, Field

from app.domain.utils.timeutil import utc_now_ms
from app.schemas import LiveStatus


class StreamStatusEvent(BaseModel):
    """Published whenever a live session goes LIVE or ENDED.

    Serialized with camelCase keys for player/chat clients:
    {"event": "stream_status", "sessionId", "status", "streamKey", "timestamp"}
    """

    model_config = ConfigDict(populate_by_name=True)

    event: str = "stream_status"
    session_id: str = Field(alias="sessionId")
    status: LiveStatus
    stream_key: str = Field(alias="streamKey")
    # epoch milliseconds
    timestamp: int = Field(default_factory=utc_now_ms)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
