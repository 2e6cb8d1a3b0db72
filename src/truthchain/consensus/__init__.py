"""Consensus and anti-manipulation engine.

Submodules:
- engine: vote validation, credibility score, stabilization, resolution
- collusion: correlation graph, penalties, recovery, attack simulation
"""

from .collusion import (
    CORRELATION_THRESHOLD,
    MIN_SHARED_CLAIMS,
    MIN_WINDOW_DAYS,
    WEIGHT_PENALTY,
    AttackReport,
    apply_penalties,
    apply_penalty,
    build_correlation_graph,
    detect_clusters,
    is_flagged,
    lift_penalty,
    recovery_eligible,
    simulate_attack,
)
from .engine import (
    CONSENSUS_FALSE_THRESHOLD,
    CONSENSUS_TRUE_THRESHOLD,
    STABILIZATION_MIN_TRUST_WEIGHT,
    STABILIZATION_MIN_VOTES,
    STABILIZATION_WINDOW_DAYS,
    check_stabilization,
    classify,
    coerce_direction,
    compute_vote_feedback,
    create_claim,
    create_vote,
    credibility_score,
    popularity_vs_truth,
    refresh_aggregates,
    resolve_claim,
    total_weight,
    validate_vote,
)

__all__ = [
    # Engine
    "CONSENSUS_FALSE_THRESHOLD",
    "CONSENSUS_TRUE_THRESHOLD",
    "STABILIZATION_MIN_TRUST_WEIGHT",
    "STABILIZATION_MIN_VOTES",
    "STABILIZATION_WINDOW_DAYS",
    "check_stabilization",
    "classify",
    "coerce_direction",
    "compute_vote_feedback",
    "create_claim",
    "create_vote",
    "credibility_score",
    "popularity_vs_truth",
    "refresh_aggregates",
    "resolve_claim",
    "total_weight",
    "validate_vote",
    # Collusion
    "CORRELATION_THRESHOLD",
    "MIN_SHARED_CLAIMS",
    "MIN_WINDOW_DAYS",
    "WEIGHT_PENALTY",
    "AttackReport",
    "apply_penalties",
    "apply_penalty",
    "build_correlation_graph",
    "detect_clusters",
    "is_flagged",
    "lift_penalty",
    "recovery_eligible",
    "simulate_attack",
]
