"""Trust model: bounds, update formula, decay and vote weight."""

from .constants import FeedbackConstants, TrustConstants
from .model import (
    apply_inactivity_decay,
    clamp_trust,
    compute_trust_delta,
    compute_trust_update,
    create_participant,
    effective_weight,
    inactive_months,
    time_factor,
    trust_percentile,
)

__all__ = [
    "FeedbackConstants",
    "TrustConstants",
    "apply_inactivity_decay",
    "clamp_trust",
    "compute_trust_delta",
    "compute_trust_update",
    "create_participant",
    "effective_weight",
    "inactive_months",
    "time_factor",
    "trust_percentile",
]
