"""Data models for participants, claims, votes and audit records.

All models are plain dataclasses owned by the caller. The engine functions
read them and either return new records or mutate the instances they were
handed; nothing here holds process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .enums import ClaimStatus, Resolution, VoteDirection

# Sentinel claim ids for trust changes not tied to a claim resolution
SYSTEM_DECAY = "SYSTEM_DECAY"
SYSTEM_COLLUSION = "SYSTEM_COLLUSION"
SYSTEM_RECOVERY = "SYSTEM_RECOVERY"
VOTE_FEEDBACK = "VOTE_FEEDBACK"


@dataclass
class Participant:
    """A pseudonymous identity."""

    pseudonym: str
    identity_hash: str
    trust_score: float
    public_key_hex: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    last_active_at: datetime = field(default_factory=datetime.now)
    total_votes: int = 0
    correct_votes: int = 0
    incorrect_votes: int = 0
    flagged_for_collusion: bool = False
    collusion_penalty_multiplier: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        # identity_hash stays internal; hosts only ever see the pseudonym
        return {
            "pseudonym": self.pseudonym,
            "public_key_hex": self.public_key_hex,
            "trust_score": self.trust_score,
            "created_at": self.created_at.isoformat(),
            "last_active_at": self.last_active_at.isoformat(),
            "total_votes": self.total_votes,
            "correct_votes": self.correct_votes,
            "incorrect_votes": self.incorrect_votes,
            "flagged_for_collusion": self.flagged_for_collusion,
            "collusion_penalty_multiplier": self.collusion_penalty_multiplier,
        }


@dataclass
class Claim:
    """A proposition ("rumor") submitted for verification."""

    id: str
    author_pseudonym: str
    content: str
    created_at: datetime
    deadline: datetime
    category: str = "General"
    tags: list[str] = field(default_factory=list)
    status: ClaimStatus = ClaimStatus.PENDING
    credibility_score: float = 0.0
    total_votes: int = 0
    total_trust_weight: float = 0.0
    resolution: Resolution | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author_pseudonym": self.author_pseudonym,
            "content": self.content,
            "category": self.category,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
            "deadline": self.deadline.isoformat(),
            "status": self.status.value,
            "credibility_score": self.credibility_score,
            "total_votes": self.total_votes,
            "total_trust_weight": self.total_trust_weight,
            "resolution": self.resolution.value if self.resolution else None,
        }


@dataclass(frozen=True)
class Vote:
    """One participant's judgment on one claim. Immutable once recorded."""

    claim_id: str
    voter_pseudonym: str
    direction: VoteDirection
    timestamp: datetime
    voter_trust_at_time: float
    effective_weight: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "voter_pseudonym": self.voter_pseudonym,
            "direction": int(self.direction),
            "timestamp": self.timestamp.isoformat(),
            "voter_trust_at_time": self.voter_trust_at_time,
            "effective_weight": self.effective_weight,
        }


@dataclass(frozen=True)
class TrustUpdate:
    """Append-only audit record of a trust mutation."""

    pseudonym: str
    claim_id: str
    old_trust: float
    new_trust: float
    reason: str
    timestamp: datetime

    @property
    def delta(self) -> float:
        return self.new_trust - self.old_trust

    def to_dict(self) -> dict[str, Any]:
        return {
            "pseudonym": self.pseudonym,
            "claim_id": self.claim_id,
            "old_trust": self.old_trust,
            "new_trust": self.new_trust,
            "delta": self.delta,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CollusionEdge:
    """Agreement statistic for an unordered pair of participants."""

    participant_a: str
    participant_b: str
    correlation: float
    shared_claims: int
    first_interaction: datetime
    last_interaction: datetime
    flagged: bool = False

    def involves(self, pseudonym: str) -> bool:
        return pseudonym in (self.participant_a, self.participant_b)

    def to_dict(self) -> dict[str, Any]:
        return {
            "participant_a": self.participant_a,
            "participant_b": self.participant_b,
            "correlation": self.correlation,
            "shared_claims": self.shared_claims,
            "first_interaction": self.first_interaction.isoformat(),
            "last_interaction": self.last_interaction.isoformat(),
            "flagged": self.flagged,
        }


@dataclass
class PenaltyInfo:
    """Collusion penalty assigned to one participant by a detection run."""

    penalty: float
    connected_with: list[str] = field(default_factory=list)


@dataclass
class ConsensusResult:
    """Outcome of resolving a claim."""

    claim_id: str
    credibility_score: float
    resolution: Resolution
    total_votes: int
    total_trust_weight: float
    stabilized: bool
    trust_updates: list[TrustUpdate] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "credibility_score": self.credibility_score,
            "resolution": self.resolution.value,
            "total_votes": self.total_votes,
            "total_trust_weight": self.total_trust_weight,
            "stabilized": self.stabilized,
            "trust_updates": [u.to_dict() for u in self.trust_updates],
        }
