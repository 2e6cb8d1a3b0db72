"""Incentive analysis - closed-form honest vs. dishonest payoff comparison.

Validates that the trust model constants make honesty the dominant strategy:

    U_honest(n)    = n × (α × p_correct - β)
    U_dishonest(n) = n × (-2α × p_incorrect - β - γ × p_detection)

With the default assumptions honesty yields +0.025 per round while lying
costs 0.31 per round, so lying costs about 12x what honesty pays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .core.exceptions import ValidationException
from .trust.constants import TrustConstants


@dataclass(frozen=True)
class BehaviorAssumptions:
    """Fixed behavioral assumptions behind the payoff comparison."""

    p_correct_honest: float = 0.75
    p_incorrect_dishonest: float = 0.70
    p_detection: float = 0.40
    gamma: float = 0.3  # Collusion detection penalty factor

    def __post_init__(self) -> None:
        for name in ("p_correct_honest", "p_incorrect_dishonest", "p_detection"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValidationException("Probability must be within [0, 1]", field=name, value=value)
        if self.gamma < 0:
            raise ValidationException("Detection penalty factor must be non-negative", field="gamma", value=self.gamma)


@dataclass
class PayoffReport:
    """Expected payoffs over a number of identical rounds."""

    rounds: int
    honest_per_round: float
    dishonest_per_round: float
    honest: float
    dishonest: float
    ratio: float
    assumptions: BehaviorAssumptions = field(default_factory=BehaviorAssumptions)

    @property
    def dominant_strategy(self) -> str:
        """Honest only when honesty pays and out-earns the dishonest loss."""
        return "honest" if self.honest > 0 and self.ratio > 1 else "none"

    @property
    def explanation(self) -> str:
        return (
            f"Honesty yields {self.honest:+.2f} over {self.rounds} rounds. "
            f"Dishonesty yields {self.dishonest:.2f}. "
            f"Lying costs {self.ratio:.1f}x more than honesty pays."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rounds": self.rounds,
            "honest": {"payoff": self.honest, "per_round": self.honest_per_round},
            "dishonest": {"payoff": self.dishonest, "per_round": self.dishonest_per_round},
            "ratio": self.ratio,
            "dominant_strategy": self.dominant_strategy,
            "explanation": self.explanation,
        }


def payoffs(rounds: int = 100, assumptions: BehaviorAssumptions | None = None) -> PayoffReport:
    """Compute expected honest and dishonest payoffs over ``rounds`` trials.

    Args:
        rounds: Number of identical rounds (must be positive)
        assumptions: Behavioral assumptions (defaults if None)

    Returns:
        PayoffReport. ``ratio`` is ``|dishonest| / honest``; it is infinite
        when honesty does not pay at all, since no finite loss ratio then
        describes the comparison.
    """
    if rounds <= 0:
        raise ValidationException("Rounds must be positive", field="rounds", value=rounds)

    a = assumptions or BehaviorAssumptions()
    alpha, beta = TrustConstants.ALPHA, TrustConstants.BETA

    honest_per_round = alpha * a.p_correct_honest - beta
    dishonest_per_round = -2 * alpha * a.p_incorrect_dishonest - beta - a.gamma * a.p_detection

    honest = rounds * honest_per_round
    dishonest = rounds * dishonest_per_round
    ratio = abs(dishonest) / honest if honest > 0 else float("inf")

    return PayoffReport(
        rounds=rounds,
        honest_per_round=honest_per_round,
        dishonest_per_round=dishonest_per_round,
        honest=honest,
        dishonest=dishonest,
        ratio=ratio,
        assumptions=a,
    )


def is_incentive_compatible(rounds: int = 100, assumptions: BehaviorAssumptions | None = None) -> bool:
    """Whether honesty strictly dominates under the current constants."""
    return payoffs(rounds, assumptions).dominant_strategy == "honest"
