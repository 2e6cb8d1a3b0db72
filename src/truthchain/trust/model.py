"""Trust score arithmetic.

Implements behavior-based trust updates with temporal decay:

    T_new = clamp(T_old + α × (accuracy - β) × e^(-λΔt) × asymmetry × penalty)

Properties:
- Early votes on a claim are rewarded more than late ones (time decay), so
  bandwagoning after consensus is obvious earns little.
- Incorrect outcomes always lower trust and are scaled by |LOSS/α| = 1.5,
  while correct outcomes are scaled by |GAIN/α| = 1.0.
- A collusion penalty multiplier damps every future update.
- Trust never leaves [TRUST_MIN, TRUST_MAX]; TRUST_MIN > 0 means nobody is
  ever fully silenced.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime

from ..core.exceptions import ValidationException
from ..core.models import SYSTEM_DECAY, Claim, Participant, TrustUpdate
from ..core.temporal import elapsed_days
from .constants import TrustConstants

logger = logging.getLogger(__name__)


def effective_weight(trust: float) -> float:
    """Vote weight for a trust score: ``sqrt(max(trust, TRUST_MIN))``.

    Diminishing returns: doubling trust raises weight by √2, not 2×.

    Examples:
        - trust 0.2  → 0.447
        - trust 4.0  → 2.0
        - trust 10.0 → 3.162 (the ceiling)
    """
    return math.sqrt(max(trust, TrustConstants.TRUST_MIN))


def clamp_trust(trust: float) -> float:
    """Bound a trust score into [TRUST_MIN, TRUST_MAX]."""
    return max(TrustConstants.TRUST_MIN, min(TrustConstants.TRUST_MAX, trust))


def time_factor(days: float) -> float:
    """``e^(-λΔt)`` for ``days`` claim-days; negative spans count as zero."""
    return math.exp(-TrustConstants.LAMBDA * max(0.0, days))


def compute_trust_delta(
    old_trust: float,
    was_correct: bool,
    days_since_claim_created: float,
    penalty_multiplier: float = 1.0,
) -> tuple[float, float]:
    """Apply the trust update formula to a single outcome.

    Args:
        old_trust: Trust before the update
        was_correct: Whether the vote matched the resolved consensus
        days_since_claim_created: Claim-days between claim creation and now
        penalty_multiplier: Collusion penalty multiplier in (0, 1]

    Returns:
        (new_trust, delta) where delta is the change actually applied after
        clamping.
    """
    if not 0.0 < penalty_multiplier <= 1.0:
        raise ValidationException(
            "Penalty multiplier must be in (0, 1]",
            field="penalty_multiplier",
            value=penalty_multiplier,
        )

    c = TrustConstants
    accuracy = 1.0 if was_correct else 0.0
    raw = c.ALPHA * (accuracy - c.BETA) * time_factor(days_since_claim_created)
    raw *= penalty_multiplier

    if was_correct:
        scaled = raw * abs(c.TRUST_GAIN / c.ALPHA)
    else:
        scaled = -abs(raw) * abs(c.TRUST_LOSS / c.ALPHA)

    new_trust = clamp_trust(old_trust + scaled)
    return new_trust, new_trust - old_trust


def compute_trust_update(
    participant: Participant,
    claim: Claim,
    consensus_correct: bool,
    now: datetime | None = None,
) -> TrustUpdate:
    """Compute the resolution-time trust update for one voter on one claim.

    Does not mutate ``participant``; the caller applies ``new_trust``.
    """
    now = now or datetime.now()
    days = elapsed_days(claim.created_at, now)
    new_trust, delta = compute_trust_delta(
        participant.trust_score,
        consensus_correct,
        days,
        participant.collusion_penalty_multiplier,
    )

    excerpt = claim.content[:40]
    if consensus_correct:
        reason = f'Correct vote on "{excerpt}..." (+{delta:.4f})'
    else:
        reason = f'Incorrect vote on "{excerpt}..." ({delta:.4f})'
    logger.debug(f"Trust update for {participant.pseudonym} on {claim.id}: {reason}")

    return TrustUpdate(
        pseudonym=participant.pseudonym,
        claim_id=claim.id,
        old_trust=participant.trust_score,
        new_trust=new_trust,
        reason=reason,
        timestamp=now,
    )


def inactive_months(participant: Participant, now: datetime) -> int:
    """Full idle months since the participant was last active."""
    idle_days = elapsed_days(participant.last_active_at, now)
    if idle_days < TrustConstants.INACTIVITY_GRACE_DAYS:
        return 0
    return math.floor(idle_days / TrustConstants.DAYS_PER_MONTH)


def apply_inactivity_decay(
    participant: Participant,
    now: datetime | None = None,
    months_already_applied: int = 0,
) -> TrustUpdate | None:
    """Compute monthly inactivity decay for a participant.

    No decay within the first 30 idle days. After that trust is multiplied by
    (1 - 5%) per full idle month, compounded, and clamped so long-dormant
    accounts approach the floor without crossing it.

    Args:
        participant: Participant to decay (not mutated)
        now: Evaluation time
        months_already_applied: Idle months of the current inactivity
            stretch whose decay is already reflected in trust

    Returns:
        The audit record to apply, or None if the change is negligible.
    """
    now = now or datetime.now()
    c = TrustConstants
    months_inactive = inactive_months(participant, now)
    months_due = months_inactive - months_already_applied

    if months_due <= 0:
        return None

    decay_factor = (1 - c.INACTIVITY_DECAY) ** months_due
    new_trust = clamp_trust(participant.trust_score * decay_factor)

    if abs(new_trust - participant.trust_score) < c.DECAY_EPSILON:
        return None

    return TrustUpdate(
        pseudonym=participant.pseudonym,
        claim_id=SYSTEM_DECAY,
        old_trust=participant.trust_score,
        new_trust=new_trust,
        reason=(
            f"Inactivity decay: {months_inactive} month(s) inactive "
            f"(-{(1 - decay_factor) * 100:.1f}%)"
        ),
        timestamp=now,
    )


def trust_percentile(trust: float, all_trusts: Sequence[float]) -> int:
    """Percentile rank (0-100) of ``trust`` within a population.

    An empty population ranks everyone at the median (50).
    """
    if not all_trusts:
        return 50
    ordered = sorted(all_trusts)
    for rank, value in enumerate(ordered):
        if value >= trust:
            return math.floor(rank / len(ordered) * 100 + 0.5)
    return 100


def create_participant(
    pseudonym: str,
    public_key_hex: str,
    identity_hash: str,
    now: datetime | None = None,
) -> Participant:
    """Create a new participant at initial trust."""
    now = now or datetime.now()
    return Participant(
        pseudonym=pseudonym,
        identity_hash=identity_hash,
        public_key_hex=public_key_hex,
        trust_score=TrustConstants.TRUST_INITIAL,
        created_at=now,
        last_active_at=now,
    )
