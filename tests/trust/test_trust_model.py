"""Tests for trust score arithmetic.

Tests cover:
- Vote weight and trust bounds
- The update formula (asymmetry, time decay, collusion damping)
- Inactivity decay
- Percentile ranking
"""

from __future__ import annotations

import math
from datetime import timedelta

import pytest

from truthchain.core.exceptions import ValidationException
from truthchain.core.models import SYSTEM_DECAY
from truthchain.trust.constants import TrustConstants
from truthchain.trust.model import (
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

# =============================================================================
# WEIGHT & BOUNDS
# =============================================================================


class TestWeightAndBounds:
    """Tests for effective_weight and clamp_trust."""

    def test_square_root_weight(self):
        assert effective_weight(4.0) == 2.0
        assert effective_weight(TrustConstants.TRUST_MAX) == pytest.approx(3.1623, abs=1e-4)

    def test_weight_floors_at_minimum_trust(self):
        """Nobody is ever fully silenced."""
        assert effective_weight(0.0) == math.sqrt(TrustConstants.TRUST_MIN)
        assert effective_weight(-3.0) == math.sqrt(TrustConstants.TRUST_MIN)

    def test_weight_has_diminishing_returns(self):
        assert effective_weight(8.0) / effective_weight(4.0) == pytest.approx(math.sqrt(2))

    @pytest.mark.parametrize(
        "raw,expected",
        [(-1.0, 0.1), (0.05, 0.1), (0.5, 0.5), (10.0, 10.0), (42.0, 10.0)],
    )
    def test_clamp(self, raw, expected):
        assert clamp_trust(raw) == expected

    def test_time_factor(self):
        assert time_factor(0) == 1.0
        assert time_factor(-5) == 1.0
        assert time_factor(100) == pytest.approx(math.exp(-1))


# =============================================================================
# UPDATE FORMULA
# =============================================================================


class TestComputeTrustDelta:
    """Tests for the trust update formula."""

    def test_correct_vote_gains(self):
        new, delta = compute_trust_delta(1.0, True, 0)
        assert delta == pytest.approx(0.095)
        assert new == pytest.approx(1.095)

    def test_incorrect_vote_loses(self):
        new, delta = compute_trust_delta(1.0, False, 0)
        assert delta == pytest.approx(-0.0075)
        assert new == pytest.approx(0.9925)

    def test_incorrect_always_negative(self):
        """A wrong vote never earns trust, whatever the elapsed time."""
        for days in (0, 1, 7, 30, 365):
            _, delta = compute_trust_delta(2.0, False, days)
            assert delta < 0

    def test_losses_scaled_by_one_and_a_half(self):
        _, loss = compute_trust_delta(1.0, False, 0)
        raw = TrustConstants.ALPHA * (0 - TrustConstants.BETA)
        assert loss == pytest.approx(raw * 1.5)

    def test_late_votes_earn_less(self):
        _, early = compute_trust_delta(1.0, True, 0)
        _, late = compute_trust_delta(1.0, True, 10)
        assert late == pytest.approx(early * math.exp(-0.1))
        assert late < early

    def test_penalty_multiplier_damps(self):
        _, delta = compute_trust_delta(1.0, True, 0, penalty_multiplier=0.6)
        assert delta == pytest.approx(0.057)

    @pytest.mark.parametrize("multiplier", [0.0, -0.5, 1.5])
    def test_invalid_multiplier(self, multiplier):
        with pytest.raises(ValidationException):
            compute_trust_delta(1.0, True, 0, penalty_multiplier=multiplier)

    def test_clamped_at_ceiling(self):
        new, delta = compute_trust_delta(TrustConstants.TRUST_MAX, True, 0)
        assert new == TrustConstants.TRUST_MAX
        assert delta == 0.0

    def test_clamped_at_floor(self):
        new, delta = compute_trust_delta(TrustConstants.TRUST_MIN, False, 0)
        assert new == TrustConstants.TRUST_MIN
        assert delta == 0.0


class TestComputeTrustUpdate:
    """Tests for compute_trust_update."""

    def test_builds_audit_record(self, clean_env, make_participant, make_claim, start):
        participant = make_participant(trust=1.0)
        claim = make_claim()
        now = start + timedelta(days=7)

        update = compute_trust_update(participant, claim, True, now)

        assert update.pseudonym == participant.pseudonym
        assert update.claim_id == claim.id
        assert update.old_trust == 1.0
        assert update.delta == pytest.approx(0.095 * math.exp(-0.07))
        assert update.timestamp == now
        assert "Correct vote" in update.reason

    def test_does_not_mutate(self, clean_env, make_participant, make_claim, start):
        participant = make_participant(trust=1.0)
        compute_trust_update(participant, make_claim(), False, start)
        assert participant.trust_score == 1.0

    def test_uses_penalty_multiplier(self, clean_env, make_participant, make_claim, start):
        flagged = make_participant(trust=1.0, flagged_for_collusion=True, collusion_penalty_multiplier=0.6)
        update = compute_trust_update(flagged, make_claim(), True, start)
        assert update.delta == pytest.approx(0.057)


# =============================================================================
# INACTIVITY DECAY
# =============================================================================


class TestInactivityDecay:
    """Tests for inactivity decay."""

    @pytest.mark.parametrize("days,months", [(0, 0), (29, 0), (30, 1), (59, 1), (65, 2)])
    def test_inactive_months(self, clean_env, make_participant, start, days, months):
        participant = make_participant()
        assert inactive_months(participant, start + timedelta(days=days)) == months

    def test_no_decay_within_grace(self, clean_env, make_participant, start):
        participant = make_participant(trust=5.0)
        assert apply_inactivity_decay(participant, start + timedelta(days=29)) is None

    def test_compounding_decay(self, clean_env, make_participant, start):
        participant = make_participant(trust=1.0)
        update = apply_inactivity_decay(participant, start + timedelta(days=60))

        assert update is not None
        assert update.claim_id == SYSTEM_DECAY
        assert update.new_trust == pytest.approx(0.9025)
        assert "2 month(s)" in update.reason
        assert participant.trust_score == 1.0

    def test_months_already_applied(self, clean_env, make_participant, start):
        participant = make_participant(trust=1.0)
        now = start + timedelta(days=90)

        assert apply_inactivity_decay(participant, now, months_already_applied=3) is None
        update = apply_inactivity_decay(participant, now, months_already_applied=2)
        assert update.new_trust == pytest.approx(0.95)

    def test_never_below_floor(self, clean_env, make_participant, start):
        participant = make_participant(trust=0.5)
        update = apply_inactivity_decay(participant, start + timedelta(days=3650))
        assert update.new_trust == TrustConstants.TRUST_MIN

    def test_negligible_change_skipped(self, clean_env, make_participant, start):
        participant = make_participant(trust=0.1005)
        assert apply_inactivity_decay(participant, start + timedelta(days=31)) is None


# =============================================================================
# PERCENTILE & CREATION
# =============================================================================


class TestTrustPercentile:
    """Tests for trust_percentile."""

    def test_empty_population_is_median(self):
        assert trust_percentile(1.0, []) == 50

    def test_rank(self):
        population = [0.5, 1.0, 2.0, 3.0]
        assert trust_percentile(0.1, population) == 0
        assert trust_percentile(1.0, population) == 25
        assert trust_percentile(2.5, population) == 75

    def test_above_everyone(self):
        assert trust_percentile(9.0, [0.5, 1.0]) == 100


class TestCreateParticipant:
    """Tests for create_participant."""

    def test_starts_at_initial_trust(self, start):
        participant = create_participant("ABCDEF0123456789", "04ab", "digest", start)

        assert participant.trust_score == TrustConstants.TRUST_INITIAL
        assert participant.created_at == participant.last_active_at == start
        assert participant.collusion_penalty_multiplier == 1.0
        assert not participant.flagged_for_collusion
