"""Constants for the trust model.

Tuning any of these must keep ``payoffs().ratio > 1`` (see
:mod:`truthchain.incentives`), i.e. honesty strictly dominant.
"""

from __future__ import annotations


class TrustConstants:
    """Constants for trust calculations."""

    # Bounds
    TRUST_MIN = 0.1
    TRUST_MAX = 10.0
    TRUST_INITIAL = 0.2

    # Action floors
    VOTE_THRESHOLD = 0.15
    POST_THRESHOLD = 0.15

    # Update formula: T_new = T_old + α × (accuracy - β) × e^(-λΔt)
    ALPHA = 0.1     # Learning rate
    BETA = 0.05     # Decay baseline
    LAMBDA = 0.01   # Time decay constant (per claim-day)

    # Asymmetric scaling; losses are 1.5x gains
    TRUST_GAIN = 0.1
    TRUST_LOSS = -0.15

    # Inactivity
    INACTIVITY_DECAY = 0.05       # Per full month inactive, compounded
    INACTIVITY_GRACE_DAYS = 30
    DAYS_PER_MONTH = 30
    DECAY_EPSILON = 0.001


class FeedbackConstants:
    """Constants for the vote-time trust nudge."""

    MIN_VOTES_FOR_ALIGNMENT = 3
    ALIGNED_GAIN = 0.03
    MISALIGNED_LOSS = 0.045
    MAX_WEIGHT = 1.5
    PARTICIPATION_REWARD = 0.005
