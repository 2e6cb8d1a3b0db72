"""Voting and consensus engine.

Trust-weighted consensus where expert opinion outweighs mob opinion:

    CS = Σ(sqrt(trust_i) × vote_i) / Σ(sqrt(trust_i))

CS ∈ [-1, 1]:
- CS ≥ 0.5  → TRUE
- CS ≤ -0.5 → FALSE
- otherwise → UNCERTAIN

A claim's outcome only feeds back into trust once it passes the
stabilization gate (10 votes, total weight 2.0, 7 claim-days). A claim
deleted or expired before that contributes nothing to anyone's trust, which
is what makes throwaway-claim trust farming pointless.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from ..core.config import MIN_VOTING_WINDOW_DAYS, get_config
from ..core.enums import ClaimStatus, Rejection, Resolution, VoteDirection
from ..core.exceptions import ValidationException
from ..core.models import VOTE_FEEDBACK, Claim, ConsensusResult, Participant, TrustUpdate, Vote
from ..core.temporal import add_days, at_least, at_most, elapsed_days, stable_sum
from ..trust.constants import FeedbackConstants, TrustConstants
from ..trust.model import clamp_trust, compute_trust_update, effective_weight, time_factor

logger = logging.getLogger(__name__)


# =============================================================================
# CONSENSUS THRESHOLDS
# =============================================================================

STABILIZATION_MIN_VOTES = 10
STABILIZATION_MIN_TRUST_WEIGHT = 2.0
STABILIZATION_WINDOW_DAYS = MIN_VOTING_WINDOW_DAYS

CONSENSUS_TRUE_THRESHOLD = 0.5
CONSENSUS_FALSE_THRESHOLD = -0.5


def coerce_direction(direction: int | VoteDirection) -> VoteDirection:
    """Convert +1/-1 into a VoteDirection, rejecting anything else."""
    try:
        return VoteDirection(direction)
    except ValueError as e:
        raise ValidationException("Vote direction must be +1 or -1", field="direction", value=direction) from e


# =============================================================================
# SCORING
# =============================================================================


def total_weight(votes: Iterable[Vote]) -> float:
    return stable_sum(v.effective_weight for v in votes)


def credibility_score(votes: Sequence[Vote]) -> float:
    """Trust-weighted credibility score of a vote set.

    Returns 0.0 for no votes or zero total weight.
    """
    if not votes:
        return 0.0

    weight_sum = total_weight(votes)
    if weight_sum == 0:
        return 0.0

    weighted = stable_sum(v.effective_weight * int(v.direction) for v in votes)
    return max(-1.0, min(1.0, weighted / weight_sum))


def classify(score: float) -> Resolution:
    """Map a credibility score onto a resolution."""
    if at_least(score, CONSENSUS_TRUE_THRESHOLD):
        return Resolution.TRUE
    if at_most(score, CONSENSUS_FALSE_THRESHOLD):
        return Resolution.FALSE
    return Resolution.UNCERTAIN


def refresh_aggregates(claim: Claim, votes: Sequence[Vote]) -> None:
    """Recompute a claim's running count, weight sum and score from its votes."""
    claim.total_votes = len(votes)
    claim.total_trust_weight = total_weight(votes)
    claim.credibility_score = credibility_score(votes)


# =============================================================================
# VOTING
# =============================================================================


def validate_vote(
    participant: Participant,
    claim: Claim,
    existing_votes: Sequence[Vote],
    now: datetime | None = None,
) -> tuple[Rejection, str] | None:
    """Check whether ``participant`` may vote on ``claim``.

    Checks run in a fixed order: trust floor, duplicate vote, self vote,
    claim status, deadline. Nothing is mutated.

    Returns:
        None if the vote is allowed, else (rejection code, message).
    """
    now = now or datetime.now()

    if participant.trust_score < TrustConstants.VOTE_THRESHOLD:
        return (
            Rejection.INSUFFICIENT_TRUST,
            f"Insufficient trust score ({participant.trust_score:.2f} < {TrustConstants.VOTE_THRESHOLD}). "
            "Build trust through consistent participation.",
        )

    if any(v.voter_pseudonym == participant.pseudonym and v.claim_id == claim.id for v in existing_votes):
        return Rejection.DUPLICATE_VOTE, "You have already voted on this claim."

    if claim.author_pseudonym == participant.pseudonym:
        return Rejection.SELF_VOTE, "Authors cannot vote on their own claims."

    if claim.status.is_terminal:
        return Rejection.CLAIM_CLOSED, f"Claim is no longer accepting votes (status: {claim.status})."

    if now > claim.deadline:
        return Rejection.DEADLINE_PASSED, "Voting window has closed for this claim."

    return None


def create_vote(
    claim_id: str,
    voter: Participant,
    direction: int | VoteDirection,
    now: datetime | None = None,
) -> Vote:
    """Record a vote, snapshotting the voter's trust and weight."""
    return Vote(
        claim_id=claim_id,
        voter_pseudonym=voter.pseudonym,
        direction=coerce_direction(direction),
        timestamp=now or datetime.now(),
        voter_trust_at_time=voter.trust_score,
        effective_weight=effective_weight(voter.trust_score),
    )


def compute_vote_feedback(
    participant: Participant,
    claim: Claim,
    direction: int | VoteDirection,
    now: datetime | None = None,
) -> TrustUpdate:
    """Immediate trust nudge for a vote that was just cast.

    ``claim`` aggregates must already include the new vote. With fewer than
    three votes there is no meaningful consensus yet, so the voter gets a
    flat participation reward. Otherwise a vote agreeing with the running
    score's sign gains ``0.03·tf·min(w, 1.5)`` and any other vote loses
    ``0.045·tf·min(w, 1.5)``. A score of exactly zero has no sign, so it
    counts as disagreement.

    This is a preview; the authoritative update happens at resolution.
    """
    now = now or datetime.now()
    direction = coerce_direction(direction)
    fc = FeedbackConstants
    old_trust = participant.trust_score

    if claim.total_votes >= fc.MIN_VOTES_FOR_ALIGNMENT:
        aligned = (claim.credibility_score > 0 and direction == VoteDirection.TRUE) or (
            claim.credibility_score < 0 and direction == VoteDirection.FALSE
        )
        tf = time_factor(elapsed_days(claim.created_at, now))
        capped = min(effective_weight(old_trust), fc.MAX_WEIGHT)
        if aligned:
            change = fc.ALIGNED_GAIN * tf * capped
            reason = f"+{change:.4f} (aligned with consensus, timeFactor={tf:.3f})"
        else:
            change = -fc.MISALIGNED_LOSS * tf * capped
            reason = f"{change:.4f} (against current consensus, timeFactor={tf:.3f})"
    else:
        change = fc.PARTICIPATION_REWARD
        reason = f"+{change} (early participation reward)"

    return TrustUpdate(
        pseudonym=participant.pseudonym,
        claim_id=VOTE_FEEDBACK,
        old_trust=old_trust,
        new_trust=clamp_trust(old_trust + change),
        reason=reason,
        timestamp=now,
    )


# =============================================================================
# STABILIZATION & RESOLUTION
# =============================================================================


def check_stabilization(claim: Claim, votes: Sequence[Vote], now: datetime | None = None) -> bool:
    """Whether a claim has passed all three stabilization gates.

    Gates:
        1. At least 10 votes
        2. Total trust weight ≥ 2.0
        3. At least 7 claim-days since creation
    """
    now = now or datetime.now()
    has_enough_votes = len(votes) >= STABILIZATION_MIN_VOTES
    has_enough_weight = at_least(total_weight(votes), STABILIZATION_MIN_TRUST_WEIGHT)
    window_complete = at_least(elapsed_days(claim.created_at, now), STABILIZATION_WINDOW_DAYS)
    return has_enough_votes and has_enough_weight and window_complete


def resolve_claim(
    claim: Claim,
    votes: Sequence[Vote],
    participants: Mapping[str, Participant],
    now: datetime | None = None,
) -> ConsensusResult:
    """Resolve a claim and compute trust updates for its voters.

    Trust updates are produced only when the claim is still pending, has
    stabilized, and resolved to TRUE or FALSE. Expired or deleted claims
    never produce updates, whatever votes they hold. Neither the claim nor
    the participants are mutated.
    """
    now = now or datetime.now()
    score = credibility_score(votes)
    resolution = classify(score)
    stabilized = claim.status == ClaimStatus.PENDING and check_stabilization(claim, votes, now)

    trust_updates: list[TrustUpdate] = []
    if stabilized and resolution != Resolution.UNCERTAIN:
        for vote in votes:
            participant = participants.get(vote.voter_pseudonym)
            if participant is None:
                logger.warning(f"Skipping vote from unknown participant {vote.voter_pseudonym} on {claim.id}")
                continue

            consensus_correct = (resolution == Resolution.TRUE and vote.direction == VoteDirection.TRUE) or (
                resolution == Resolution.FALSE and vote.direction == VoteDirection.FALSE
            )
            trust_updates.append(compute_trust_update(participant, claim, consensus_correct, now))

    return ConsensusResult(
        claim_id=claim.id,
        credibility_score=score,
        resolution=resolution,
        total_votes=len(votes),
        total_trust_weight=total_weight(votes),
        stabilized=stabilized,
        trust_updates=trust_updates,
    )


def create_claim(
    author_pseudonym: str,
    content: str,
    category: str = "General",
    tags: Iterable[str] = (),
    now: datetime | None = None,
    voting_window_days: float | None = None,
) -> Claim:
    """Create a new pending claim.

    The deadline is ``voting_window_days`` claim-days after creation
    (``voting_window_days`` from config when not given).
    """
    if not content or not content.strip():
        raise ValidationException("Claim content is required", field="content")
    now = now or datetime.now()
    if voting_window_days is None:
        voting_window_days = get_config().voting_window_days
    elif voting_window_days < STABILIZATION_WINDOW_DAYS:
        raise ValidationException(
            f"Voting window must be at least {STABILIZATION_WINDOW_DAYS:g} claim-days",
            field="voting_window_days",
            value=voting_window_days,
        )

    return Claim(
        id=uuid.uuid4().hex,
        author_pseudonym=author_pseudonym,
        content=content,
        category=category or "General",
        tags=list(tags),
        created_at=now,
        deadline=add_days(now, voting_window_days),
    )


# =============================================================================
# DEMONSTRATION
# =============================================================================


def popularity_vs_truth(
    mob_size: int = 50,
    mob_trust: float = 0.2,
    expert_count: int = 10,
    expert_trust: float = 5.0,
) -> dict[str, Any]:
    """Compare a low-trust mob voting FALSE against experts voting TRUE.

    Shows that popularity does not automatically win: with the default
    numbers the 5:1 head-count advantage only buys the mob a tie in weight.
    """
    now = datetime.now()

    def _votes(prefix: str, count: int, trust: float, direction: VoteDirection) -> list[Vote]:
        return [
            Vote(
                claim_id="demo",
                voter_pseudonym=f"{prefix}_{i}",
                direction=direction,
                timestamp=now,
                voter_trust_at_time=trust,
                effective_weight=effective_weight(trust),
            )
            for i in range(count)
        ]

    mob = _votes("mob", mob_size, mob_trust, VoteDirection.FALSE)
    experts = _votes("expert", expert_count, expert_trust, VoteDirection.TRUE)
    combined_cs = credibility_score(mob + experts)

    if combined_cs > CONSENSUS_FALSE_THRESHOLD:
        insight = (
            f"Experts prevented false consensus: popularity did NOT auto-win "
            f"despite a {mob_size}:{expert_count} voter ratio."
        )
    else:
        insight = "Even with expert votes, the mob overwhelmed; this scenario needs more expert participation."

    return {
        "scenario": (
            f"{mob_size} new users (trust {mob_trust}) vote FALSE vs "
            f"{expert_count} experts (trust {expert_trust}) vote TRUE"
        ),
        "mob_only": {"cs": credibility_score(mob), "total_weight": total_weight(mob), "votes": len(mob)},
        "expert_only": {"cs": credibility_score(experts), "total_weight": total_weight(experts), "votes": len(experts)},
        "combined": {
            "cs": combined_cs,
            "resolution": classify(combined_cs).value,
            "total_weight": total_weight(mob + experts),
            "votes": len(mob) + len(experts),
        },
        "insight": insight,
    }
