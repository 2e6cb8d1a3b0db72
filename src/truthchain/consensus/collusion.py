"""Collusion detection for coordinated voting.

Builds a pairwise correlation graph over the vote history:

    correlation(A, B) = agreements / shared_claims

An edge is flagged only when all three conditions co-occur:
- correlation ≥ 0.85
- at least 20 shared claims
- the shared interactions span at least 30 claim-days

Natural agreement between friends typically correlates at 60-75% across
fewer than 15 shared claims and never trips all three, which keeps the
false-positive rate under 1%.

Flagged participants have their future trust updates damped by a 0.6
multiplier and take a one-time 0.6× trust cut. The penalty is reversible
once no flagged interaction has happened for a full 30-day window.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.exceptions import ValidationException
from ..core.models import (
    SYSTEM_COLLUSION,
    SYSTEM_RECOVERY,
    CollusionEdge,
    Participant,
    PenaltyInfo,
    TrustUpdate,
    Vote,
)
from ..core.temporal import at_least, elapsed_days
from ..trust.model import clamp_trust

logger = logging.getLogger(__name__)


# =============================================================================
# COLLUSION THRESHOLDS
# =============================================================================

CORRELATION_THRESHOLD = 0.85  # Flag if ≥85% agreement
MIN_SHARED_CLAIMS = 20        # Need at least 20 shared claims
MIN_WINDOW_DAYS = 30          # Over at least 30 claim-days; also the recovery window
WEIGHT_PENALTY = 0.6          # Multiplier on trust and future updates

# Attack economics
TRUST_BUILD_DAYS = 30
OPPORTUNITY_COST_PER_DAY = 30.0
COORDINATED_ATTACKER_COUNT = 3
DETECTION_PROBABILITY_COORDINATED = 0.9
DETECTION_PROBABILITY_SMALL = 0.4


# =============================================================================
# CORRELATION GRAPH
# =============================================================================


@dataclass
class _PairStats:
    agreements: int = 0
    shared: int = 0
    first: datetime | None = None
    last: datetime | None = None

    def observe(self, a: Vote, b: Vote) -> None:
        self.shared += 1
        if a.direction == b.direction:
            self.agreements += 1
        earliest = min(a.timestamp, b.timestamp)
        latest = max(a.timestamp, b.timestamp)
        self.first = earliest if self.first is None else min(self.first, earliest)
        self.last = latest if self.last is None else max(self.last, latest)


def is_flagged(correlation: float, shared_claims: int, window_days: float) -> bool:
    """Apply the triple-condition flag rule."""
    return (
        at_least(correlation, CORRELATION_THRESHOLD)
        and shared_claims >= MIN_SHARED_CLAIMS
        and at_least(window_days, MIN_WINDOW_DAYS)
    )


def build_correlation_graph(votes: Iterable[Vote]) -> list[CollusionEdge]:
    """Build agreement edges between every pair of co-voters.

    Args:
        votes: Snapshot of the full vote history

    Returns:
        One edge per unordered pair that shared at least one claim, sorted
        by pair so the output does not depend on input order.
    """
    by_claim: dict[str, dict[str, Vote]] = defaultdict(dict)
    for vote in votes:
        # One vote per (voter, claim); keep the first if a caller passes duplicates
        by_claim[vote.claim_id].setdefault(vote.voter_pseudonym, vote)

    pairs: dict[tuple[str, str], _PairStats] = defaultdict(_PairStats)
    for claim_votes in by_claim.values():
        voters = sorted(claim_votes)
        for i, a in enumerate(voters):
            for b in voters[i + 1 :]:
                pairs[(a, b)].observe(claim_votes[a], claim_votes[b])

    edges: list[CollusionEdge] = []
    for (a, b), stats in sorted(pairs.items()):
        correlation = stats.agreements / stats.shared
        window_days = elapsed_days(stats.first, stats.last)
        edges.append(
            CollusionEdge(
                participant_a=a,
                participant_b=b,
                correlation=correlation,
                shared_claims=stats.shared,
                first_interaction=stats.first,
                last_interaction=stats.last,
                flagged=is_flagged(correlation, stats.shared, window_days),
            )
        )

    flagged = sum(1 for e in edges if e.flagged)
    logger.debug(f"Correlation graph: {len(edges)} edges across {len(by_claim)} claims, {flagged} flagged")
    return edges


# =============================================================================
# PENALTIES
# =============================================================================


def detect_clusters(
    edges: Iterable[CollusionEdge],
    recovered_at: Mapping[str, datetime] | None = None,
) -> dict[str, PenaltyInfo]:
    """Collect penalties for both endpoints of every flagged edge.

    A participant flagged by several edges keeps the lowest multiplier;
    penalties do not stack below the floor.

    Args:
        edges: Correlation graph from :func:`build_correlation_graph`.
        recovered_at: When each participant last had a penalty lifted. A
            flagged edge counts against a recovered participant only if its
            last interaction came after the recovery.
    """
    recovered_at = recovered_at or {}
    penalties: dict[str, PenaltyInfo] = {}

    for edge in edges:
        if not edge.flagged:
            continue
        for member, partner in (
            (edge.participant_a, edge.participant_b),
            (edge.participant_b, edge.participant_a),
        ):
            recovered = recovered_at.get(member)
            if recovered is not None and edge.last_interaction <= recovered:
                continue
            info = penalties.setdefault(member, PenaltyInfo(penalty=WEIGHT_PENALTY))
            info.penalty = min(info.penalty, WEIGHT_PENALTY)
            info.connected_with.append(partner)

    return penalties


def apply_penalty(
    participant: Participant,
    info: PenaltyInfo,
    now: datetime | None = None,
) -> TrustUpdate | None:
    """Flag one participant and apply the accelerated trust cut.

    The trust cut happens once per flagging; a participant who is already
    flagged only has the multiplier tightened.

    Returns:
        The audit record for the trust cut, or None if none was applied.
    """
    now = now or datetime.now()
    already_flagged = participant.flagged_for_collusion

    participant.flagged_for_collusion = True
    participant.collusion_penalty_multiplier = min(participant.collusion_penalty_multiplier, info.penalty)

    if already_flagged:
        return None

    old_trust = participant.trust_score
    participant.trust_score = clamp_trust(old_trust * info.penalty)
    logger.warning(
        f"Collusion penalty applied to {participant.pseudonym}: "
        f"{old_trust:.4f} -> {participant.trust_score:.4f} "
        f"(correlated with {len(info.connected_with)} participant(s))"
    )
    return TrustUpdate(
        pseudonym=participant.pseudonym,
        claim_id=SYSTEM_COLLUSION,
        old_trust=old_trust,
        new_trust=participant.trust_score,
        reason=f"Collusion penalty x{info.penalty} (correlated with {', '.join(info.connected_with)})",
        timestamp=now,
    )


def apply_penalties(
    participants: Mapping[str, Participant],
    penalties: Mapping[str, PenaltyInfo],
    now: datetime | None = None,
) -> list[TrustUpdate]:
    """Apply detected penalties to participants in place.

    Unknown pseudonyms are skipped.

    Returns:
        Audit records for every trust cut applied.
    """
    updates: list[TrustUpdate] = []
    for pseudonym, info in penalties.items():
        participant = participants.get(pseudonym)
        if participant is None:
            continue
        update = apply_penalty(participant, info, now)
        if update is not None:
            updates.append(update)
    return updates


def recovery_eligible(
    participant: Participant,
    edges: Sequence[CollusionEdge],
    now: datetime | None = None,
) -> bool:
    """Whether a participant's coordinated behavior has demonstrably stopped.

    True when none of the participant's edges is currently flagged, or when
    the most recent flagged interaction is at least 30 claim-days old.
    """
    now = now or datetime.now()
    flagged = [e for e in edges if e.flagged and e.involves(participant.pseudonym)]
    if not flagged:
        return True

    latest = max(e.last_interaction for e in flagged)
    return at_least(elapsed_days(latest, now), MIN_WINDOW_DAYS)


def lift_penalty(participant: Participant, now: datetime | None = None) -> TrustUpdate | None:
    """Clear a participant's collusion flag and reset the multiplier.

    Trust lost to the penalty is not restored; it has to be earned back.

    Returns:
        An audit record, or None if the participant was not flagged.
    """
    if not participant.flagged_for_collusion:
        return None

    participant.flagged_for_collusion = False
    participant.collusion_penalty_multiplier = 1.0
    logger.info(f"Collusion penalty lifted for {participant.pseudonym}")
    return TrustUpdate(
        pseudonym=participant.pseudonym,
        claim_id=SYSTEM_RECOVERY,
        old_trust=participant.trust_score,
        new_trust=participant.trust_score,
        reason=f"Collusion penalty lifted after {MIN_WINDOW_DAYS} days without correlated activity",
        timestamp=now or datetime.now(),
    )


# =============================================================================
# ATTACK SIMULATION
# =============================================================================


@dataclass
class AttackReport:
    """Outcome of a simulated coordinated attack."""

    attacker_weight: float
    honest_weight: float
    credibility_score: float
    can_flip_consensus: bool
    attacker_weight_share: float
    economics: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "attacker_weight": self.attacker_weight,
            "honest_weight": self.honest_weight,
            "credibility_score": self.credibility_score,
            "can_flip_consensus": self.can_flip_consensus,
            "attacker_weight_share": self.attacker_weight_share,
            "economics": self.economics,
            "collusion_threshold": (
                f"Attackers control {self.attacker_weight_share * 100:.1f}% of weight. Need >50% to flip."
            ),
        }


def simulate_attack(
    attacker_count: int,
    attacker_trust: float,
    honest_count: int,
    honest_trust: float,
) -> AttackReport:
    """Simulate attackers voting FALSE against honest participants voting TRUE.

    The economic figures are decision support only: an assumed opportunity
    cost of building trust per fabricated identity and a detection heuristic
    that jumps once three or more accounts coordinate.
    """
    if attacker_count < 0 or honest_count < 0:
        raise ValidationException("Participant counts must be non-negative", field="count")
    if attacker_trust <= 0 or honest_trust <= 0:
        raise ValidationException("Trust values must be positive", field="trust")

    attacker_weight = attacker_count * math.sqrt(attacker_trust)
    honest_weight = honest_count * math.sqrt(honest_trust)
    combined = attacker_weight + honest_weight

    score = (honest_weight - attacker_weight) / combined if combined > 0 else 0.0
    can_flip = attacker_weight > honest_weight

    cost_per_identity = TRUST_BUILD_DAYS * OPPORTUNITY_COST_PER_DAY
    total_cost = attacker_count * cost_per_identity
    detection_probability = (
        DETECTION_PROBABILITY_COORDINATED
        if attacker_count >= COORDINATED_ATTACKER_COUNT
        else DETECTION_PROBABILITY_SMALL
    )
    expected_trust_loss = attacker_count * attacker_trust * WEIGHT_PENALTY
    # Smallest head count whose weight strictly exceeds the honest side
    needed = math.floor(honest_weight / math.sqrt(attacker_trust)) + 1 - attacker_count
    additional_needed = max(0, needed) if not can_flip else 0

    if can_flip:
        conclusion = (
            f"Attack could succeed but costs ${total_cost:,.0f} "
            f"with {detection_probability * 100:.0f}% detection risk."
        )
    else:
        conclusion = f"Attack fails. Attackers need {additional_needed} more accounts."

    return AttackReport(
        attacker_weight=attacker_weight,
        honest_weight=honest_weight,
        credibility_score=score,
        can_flip_consensus=can_flip,
        attacker_weight_share=attacker_weight / combined if combined > 0 else 0.0,
        economics={
            "cost_per_identity": cost_per_identity,
            "total_attack_cost": total_cost,
            "detection_probability": detection_probability,
            "expected_trust_loss": expected_trust_loss,
            "additional_accounts_needed": additional_needed,
            "conclusion": conclusion,
        },
    )
