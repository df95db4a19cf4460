"""Transcoding job state machine."""

from app.schemas import JobStatus


class JobStateMachine:
    """State machine for transcoding job status transitions.

    State flow with triggers:
    - PENDING (job row created by a run) -> PROCESSING (encoder about to spawn) | FAILED
    - PROCESSING -> COMPLETED (encoder exited cleanly) | FAILED (encoder error or killed)
    - COMPLETED/FAILED are terminal states
    """

    TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
        # FAILED from PENDING covers an encoder that cannot be spawned at all
        JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
        JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
        JobStatus.COMPLETED: set(),
        JobStatus.FAILED: set(),
    }

    TERMINAL_STATES: set[JobStatus] = {JobStatus.COMPLETED, JobStatus.FAILED}

    @classmethod
    def can_transition(cls, current: JobStatus, new: JobStatus) -> bool:
        """Check if status transition is valid.

        Args:
            current: Current job status
            new: Target status to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, status: JobStatus) -> bool:
        """Check if a status is terminal (no further transitions allowed)."""
        return status in cls.TERMINAL_STATES
