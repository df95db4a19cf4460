"""Common enums used across schemas."""

from enum import Enum


class LiveStatus(str, Enum):
    """Live session lifecycle states.

    State Transition Flow (one publish attempt):

    DRAFT → LIVE → ENDED
                     ↓
                   LIVE (new publish attempt)

    - DRAFT: Session created, nothing published yet.
    - LIVE: Publisher stream started. Set by the publish-started hook.
    - ENDED: Publisher stream stopped. Set by the publish-ended hook.
    """

    DRAFT = "DRAFT"
    LIVE = "LIVE"
    ENDED = "ENDED"

    def __str__(self) -> str:
        return self.value


class JobStatus(str, Enum):
    """Transcoding job lifecycle states.

    PENDING → PROCESSING → COMPLETED | FAILED

    COMPLETED and FAILED are terminal. A failed job is never retried; a new run
    creates new jobs instead.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def terminal_states(cls) -> list["JobStatus"]:
        return [JobStatus.COMPLETED, JobStatus.FAILED]


__all__ = ["JobStatus", "LiveStatus"]
