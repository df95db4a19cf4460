"""Live session state machine for managing status transitions."""

from app.schemas import LiveStatus


class LiveSessionStateMachine:
    """State machine for live session status transitions.

    State flow with triggers:
    - DRAFT (session created) -> LIVE (publish-started hook, key re-validated)
    - LIVE -> ENDED (publish-ended hook)
    - ENDED -> LIVE (a new publish attempt with the same key)

    There is no terminal state: a session can go live again after it ended.
    """

    TRANSITIONS: dict[LiveStatus, set[LiveStatus]] = {
        LiveStatus.DRAFT: {LiveStatus.LIVE},
        LiveStatus.LIVE: {LiveStatus.ENDED},
        LiveStatus.ENDED: {LiveStatus.LIVE},
    }

    @classmethod
    def can_transition(cls, current: LiveStatus, new: LiveStatus) -> bool:
        """Check if status transition is valid.

        Args:
            current: Current session status
            new: Target status to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def get_valid_transitions(cls, status: LiveStatus) -> set[LiveStatus]:
        return cls.TRANSITIONS.get(status, set())

    @classmethod
    def get_valid_sources(cls, target: LiveStatus) -> set[LiveStatus]:
        return {status for status, targets in cls.TRANSITIONS.items() if target in targets}
