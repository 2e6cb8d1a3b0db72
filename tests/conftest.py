"""Global test fixtures for the TruthChain test suite."""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from truthchain.core.config import clear_config_cache
from truthchain.core.enums import VoteDirection
from truthchain.core.models import Claim, Participant, Vote
from truthchain.ledger import Ledger
from truthchain.trust.model import effective_weight

START = datetime(2026, 3, 2, 9, 0, 0)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all TRUTHCHAIN_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("TRUTHCHAIN_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_config():
    """Drop the cached settings around every test."""
    clear_config_cache()
    yield
    clear_config_cache()


# ============================================================================
# Clock Fixtures
# ============================================================================


class FakeClock:
    """Manually advanced clock for deterministic ledger tests."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0.0, **kwargs) -> datetime:
        self.now += timedelta(days=days, **kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Ledger Fixtures
# ============================================================================


@pytest.fixture
def make_ledger(clean_env, clock) -> Callable[..., Ledger]:
    """Factory for ledgers driven by the shared fake clock."""

    def _make(**kwargs) -> Ledger:
        kwargs.setdefault("clock", clock)
        return Ledger(**kwargs)

    return _make


@pytest.fixture
def ledger(make_ledger) -> Ledger:
    """Ledger with the vote-time nudge enabled (the default)."""
    return make_ledger()


@pytest.fixture
def quiet_ledger(make_ledger) -> Ledger:
    """Ledger with the vote-time nudge disabled, so trust only moves at resolution."""
    return make_ledger(vote_feedback=False)


# ============================================================================
# Model Builders
# ============================================================================


def _participant(pseudonym: str = "A" * 16, trust: float = 0.2, **kwargs) -> Participant:
    kwargs.setdefault("created_at", START)
    kwargs.setdefault("last_active_at", START)
    return Participant(pseudonym=pseudonym, identity_hash=f"digest-{pseudonym}", trust_score=trust, **kwargs)


def _claim(claim_id: str = "claim-1", author: str = "AUTHOR", **kwargs) -> Claim:
    kwargs.setdefault("created_at", START)
    kwargs.setdefault("deadline", START + timedelta(days=7))
    return Claim(id=claim_id, author_pseudonym=author, content="The library is open until 2 AM", **kwargs)


def _vote(
    voter: str,
    direction: VoteDirection = VoteDirection.TRUE,
    trust: float = 1.0,
    claim_id: str = "claim-1",
    timestamp: datetime = START,
) -> Vote:
    return Vote(
        claim_id=claim_id,
        voter_pseudonym=voter,
        direction=direction,
        timestamp=timestamp,
        voter_trust_at_time=trust,
        effective_weight=effective_weight(trust),
    )


@pytest.fixture
def start() -> datetime:
    return START


@pytest.fixture
def make_participant():
    return _participant


@pytest.fixture
def make_claim():
    return _claim


@pytest.fixture
def make_vote():
    return _vote
