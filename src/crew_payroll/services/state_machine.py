"""Review lifecycle state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from crew_payroll.exceptions import InvalidTransitionError


class ReviewState(str, Enum):
    """Review state of a payroll entry."""

    PENDING = "pending"
    NEEDS_REVIEW = "needs_review"
    REVIEWED = "reviewed"


class ReviewStateMachine:
    """State machine for payroll entry review transitions.

    Allowed transitions:
    - pending → needs_review (promotion)
    - pending → reviewed
    - needs_review → reviewed

    reviewed is terminal for an entry instance. Only a superseding entry
    starts a new lifecycle.
    """

    VALID_TRANSITIONS: dict[ReviewState, frozenset[ReviewState]] = {
        ReviewState.PENDING: frozenset({ReviewState.NEEDS_REVIEW, ReviewState.REVIEWED}),
        ReviewState.NEEDS_REVIEW: frozenset({ReviewState.REVIEWED}),
        ReviewState.REVIEWED: frozenset(),
    }

    # States an entry may be created in
    INITIAL_STATES = frozenset({ReviewState.PENDING, ReviewState.NEEDS_REVIEW})

    # States that still show up in the review queue
    OPEN_STATES = frozenset({ReviewState.PENDING, ReviewState.NEEDS_REVIEW})

    @classmethod
    def can_transition(cls, from_state: ReviewState | str, to_state: ReviewState | str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(ReviewState(from_state), frozenset())
        return ReviewState(to_state) in allowed

    @classmethod
    def validate_transition(cls, from_state: ReviewState | str, to_state: ReviewState | str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_state, to_state):
            raise InvalidTransitionError(ReviewState(from_state).value, ReviewState(to_state).value)

    @classmethod
    def is_terminal(cls, state: ReviewState | str) -> bool:
        return not cls.VALID_TRANSITIONS[ReviewState(state)]

    @classmethod
    def is_open(cls, state: ReviewState | str) -> bool:
        """Check if an entry in this state belongs in the review queue."""
        return ReviewState(state) in cls.OPEN_STATES

    @classmethod
    def initial_state(cls, needs_review: bool) -> ReviewState:
        """State assigned at ingestion, decided once."""
        return ReviewState.NEEDS_REVIEW if needs_review else ReviewState.PENDING

    @classmethod
    def get_next_states(cls, current_state: ReviewState | str) -> list[ReviewState]:
        """Get valid next states, in declaration order."""
        allowed = cls.VALID_TRANSITIONS.get(ReviewState(current_state), frozenset())
        return [state for state in ReviewState if state in allowed]
