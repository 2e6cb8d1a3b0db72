"""Enums for claims, votes and rejections."""

from enum import IntEnum, StrEnum


class ClaimStatus(StrEnum):
    """Lifecycle status of a claim."""
    PENDING = "pending"          # Accepting votes
    STABILIZED = "stabilized"    # Passed the stabilization gate and resolved
    EXPIRED = "expired"          # Deadline elapsed without stabilization
    DELETED = "deleted"          # Withdrawn by its author

    @property
    def is_terminal(self) -> bool:
        return self is not ClaimStatus.PENDING


class Resolution(StrEnum):
    """Outcome of a resolved claim."""
    TRUE = "true"
    FALSE = "false"
    UNCERTAIN = "uncertain"


class VoteDirection(IntEnum):
    """Direction of a vote."""
    TRUE = 1
    FALSE = -1


class Rejection(StrEnum):
    """Caller-recoverable rejection codes.

    Returned through the response envelope, never raised.
    """
    DUPLICATE_IDENTITY = "duplicate_identity"
    INSUFFICIENT_TRUST = "insufficient_trust"
    DUPLICATE_VOTE = "duplicate_vote"
    SELF_VOTE = "self_vote"
    CLAIM_CLOSED = "claim_closed"
    DEADLINE_PASSED = "deadline_passed"
    CLAIM_NOT_FOUND = "claim_not_found"
    PARTICIPANT_NOT_FOUND = "participant_not_found"
    NOT_AUTHOR = "not_author"
