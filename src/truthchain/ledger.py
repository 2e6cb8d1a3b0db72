"""In-memory ledger: the host-owned state container for the engine.

The pure engine functions in :mod:`truthchain.consensus` and
:mod:`truthchain.trust` hold no state. ``Ledger`` owns participants, claims,
votes and the audit trail, and serialises access the way the engine
requires:

- one lock per claim guards its vote list and aggregates (cast, resolve, delete)
- one lock per participant guards every trust mutation
- lock order is always claim → participants (sorted), so no cycles can form
- identifier dedup is an atomic check-and-insert in :class:`IdentityRegistry`
- collusion detection works on a per-claim consistent snapshot of the votes

Every public operation returns an :class:`EngineResponse`; rejections are
reported through its ``code`` and never raised.

Usage:
    ledger = Ledger()
    alice = ledger.register("alice@campus.edu").data
    claim = ledger.submit_claim(alice.pseudonym, "Library open until 2 AM").data
    response = ledger.cast_vote(bob.pseudonym, claim.id, VoteDirection.TRUE)
    if response.rejected:
        show(response.error)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .consensus.collusion import (
    apply_penalty,
    build_correlation_graph,
    detect_clusters,
    lift_penalty,
    recovery_eligible,
    simulate_attack,
)
from .consensus.engine import (
    check_stabilization,
    coerce_direction,
    compute_vote_feedback,
    create_claim,
    create_vote,
    popularity_vs_truth,
    refresh_aggregates,
    resolve_claim,
    validate_vote,
)
from .core.config import get_config
from .core.enums import ClaimStatus, Rejection, Resolution, VoteDirection
from .core.exceptions import NotFoundError
from .core.logging import log_rejection
from .core.models import (
    Claim,
    CollusionEdge,
    ConsensusResult,
    Participant,
    PenaltyInfo,
    TrustUpdate,
    Vote,
)
from .core.response import EngineResponse, ok, reject
from .identity.hashing import derive_pseudonym, generate_keypair, hash_identifier
from .identity.registry import IdentityRegistry
from .incentives import BehaviorAssumptions, payoffs
from .trust.constants import TrustConstants
from .trust.model import apply_inactivity_decay, create_participant, inactive_months

logger = logging.getLogger(__name__)


# ============================================================================
# Result Models
# ============================================================================


@dataclass
class VoteReceipt:
    """Outcome of an accepted vote."""

    vote: Vote
    credibility_score: float
    total_votes: int
    trust_score: float
    feedback: TrustUpdate | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "vote": self.vote.to_dict(),
            "credibility_score": self.credibility_score,
            "total_votes": self.total_votes,
            "trust_score": self.trust_score,
            "feedback": self.feedback.to_dict() if self.feedback else None,
        }


@dataclass
class CollusionReport:
    """Outcome of a collusion detection run."""

    edges: list[CollusionEdge]
    penalties: dict[str, PenaltyInfo]
    trust_updates: list[TrustUpdate] = field(default_factory=list)

    @property
    def flagged_edges(self) -> list[CollusionEdge]:
        return [e for e in self.edges if e.flagged]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_edges": len(self.edges),
            "flagged_edges": len(self.flagged_edges),
            "affected_participants": len(self.penalties),
            "clusters": [
                {"pseudonym": pseudonym, "penalty": info.penalty, "connected_with": info.connected_with}
                for pseudonym, info in sorted(self.penalties.items())
            ],
        }


@dataclass
class SystemMetrics:
    """Point-in-time summary of the ledger."""

    total_participants: int
    total_claims: int
    total_votes: int
    average_trust: float
    collusion_flags_active: int
    claims_resolved_true: int
    claims_resolved_false: int
    claims_uncertain: int
    attacks_blocked: int

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


# ============================================================================
# Ledger
# ============================================================================


class Ledger:
    """Explicit in-memory state container driven by a host.

    Args:
        clock: Callable returning "now"; defaults to ``datetime.now``.
        vote_feedback: Override for ``vote_feedback_enabled`` from config.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        vote_feedback: bool | None = None,
    ) -> None:
        self._clock = clock or datetime.now
        self._vote_feedback = get_config().vote_feedback_enabled if vote_feedback is None else vote_feedback

        self._registry = IdentityRegistry()
        self._participants: dict[str, Participant] = {}
        self._claims: dict[str, Claim] = {}
        self._votes: dict[str, list[Vote]] = {}
        self._results: dict[str, ConsensusResult] = {}
        self._history: list[TrustUpdate] = []
        self._edges: list[CollusionEdge] = []
        # pseudonym -> (last_active_at, idle months already decayed)
        self._decay_applied: dict[str, tuple[datetime, int]] = {}
        # pseudonym -> when its collusion penalty was last lifted
        self._recovered_at: dict[str, datetime] = {}
        self._attacks_blocked = 0

        self._guard = threading.Lock()
        self._claim_locks: dict[str, threading.Lock] = {}
        self._participant_locks: dict[str, threading.Lock] = {}

    # ------------------------------------------------------------------
    # Locking helpers
    # ------------------------------------------------------------------

    def _claim_lock(self, claim_id: str) -> threading.Lock:
        with self._guard:
            return self._claim_locks.setdefault(claim_id, threading.Lock())

    def _participant_lock(self, pseudonym: str) -> threading.Lock:
        with self._guard:
            return self._participant_locks.setdefault(pseudonym, threading.Lock())

    @contextmanager
    def _holding_participants(self, pseudonyms: Iterable[str]) -> Iterator[None]:
        with ExitStack() as stack:
            for pseudonym in sorted(set(pseudonyms)):
                stack.enter_context(self._participant_lock(pseudonym))
            yield

    def _record(self, updates: Iterable[TrustUpdate]) -> None:
        with self._guard:
            self._history.extend(updates)

    def _reject(
        self,
        operation: str,
        code: Rejection,
        message: str,
        *,
        blocked: bool = False,
        level: int = logging.INFO,
        **context: str,
    ) -> EngineResponse:
        log_rejection(logger, operation, code, message, level=level, **context)
        if blocked:
            with self._guard:
                self._attacks_blocked += 1
        return reject(code, message)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_participant(self, pseudonym: str) -> Participant | None:
        with self._guard:
            return self._participants.get(pseudonym)

    def get_claim(self, claim_id: str) -> Claim | None:
        with self._guard:
            return self._claims.get(claim_id)

    def require_participant(self, pseudonym: str) -> Participant:
        """Like :meth:`get_participant`, but raises NotFoundError when absent."""
        participant = self.get_participant(pseudonym)
        if participant is None:
            raise NotFoundError("Participant", pseudonym)
        return participant

    def require_claim(self, claim_id: str) -> Claim:
        claim = self.get_claim(claim_id)
        if claim is None:
            raise NotFoundError("Claim", claim_id)
        return claim

    def participants(self) -> list[Participant]:
        with self._guard:
            return list(self._participants.values())

    def claims(self) -> list[Claim]:
        with self._guard:
            return list(self._claims.values())

    def votes_for(self, claim_id: str) -> list[Vote]:
        with self._claim_lock(claim_id):
            return list(self._votes.get(claim_id, ()))

    def trust_history(self, pseudonym: str | None = None) -> list[TrustUpdate]:
        with self._guard:
            if pseudonym is None:
                return list(self._history)
            return [u for u in self._history if u.pseudonym == pseudonym]

    @property
    def attacks_blocked(self) -> int:
        with self._guard:
            return self._attacks_blocked

    @property
    def collusion_edges(self) -> list[CollusionEdge]:
        with self._guard:
            return list(self._edges)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, identifier: str, public_key_hex: str | None = None) -> EngineResponse:
        """Register a new participant for a real-world identifier.

        Args:
            identifier: Raw identifier (e.g. campus email); only its digest is kept.
            public_key_hex: Client-generated public key. A fresh Ed25519 key
                is generated when omitted.

        Returns:
            ok(Participant), or DUPLICATE_IDENTITY.
        """
        digest = hash_identifier(identifier)
        if not self._registry.claim(digest):
            return self._reject(
                "register",
                Rejection.DUPLICATE_IDENTITY,
                "Identifier already registered. One account per identifier.",
                blocked=True,
                level=logging.WARNING,
            )

        if public_key_hex is None:
            public_key_hex = generate_keypair().public_key_hex
        pseudonym = derive_pseudonym(public_key_hex)

        participant = create_participant(pseudonym, public_key_hex, digest, self._clock())
        with self._guard:
            if pseudonym in self._participants:
                collision = True
            else:
                collision = False
                self._participants[pseudonym] = participant

        if collision:
            self._registry.release(digest)
            return self._reject(
                "register",
                Rejection.DUPLICATE_IDENTITY,
                "Public key already registered.",
                blocked=True,
                level=logging.WARNING,
                pseudonym=pseudonym,
            )

        logger.info(f"Registered participant {pseudonym}")
        return ok(participant)

    def simulate_sybil_attack(self, identifiers: Iterable[str]) -> EngineResponse:
        """Attempt a registration for every identifier and tally the outcome.

        Successful registrations are real; this is a drill against the live
        registry, not a dry run.
        """
        attempted = blocked = 0
        for identifier in identifiers:
            attempted += 1
            if self.register(identifier).rejected:
                blocked += 1

        return ok(
            {
                "attempted": attempted,
                "blocked": blocked,
                "succeeded": attempted - blocked,
                "block_rate": blocked / attempted if attempted else 0.0,
            }
        )

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def submit_claim(
        self,
        author: str,
        content: str,
        category: str = "General",
        tags: Iterable[str] = (),
    ) -> EngineResponse:
        """Submit a new pending claim.

        Returns:
            ok(Claim), PARTICIPANT_NOT_FOUND, or INSUFFICIENT_TRUST.
        """
        participant = self.get_participant(author)
        if participant is None:
            return self._reject("submit_claim", Rejection.PARTICIPANT_NOT_FOUND, f"Participant not found: {author}")

        with self._participant_lock(author):
            if participant.trust_score < TrustConstants.POST_THRESHOLD:
                return self._reject(
                    "submit_claim",
                    Rejection.INSUFFICIENT_TRUST,
                    f"Insufficient trust to submit claims ({participant.trust_score:.2f} "
                    f"< {TrustConstants.POST_THRESHOLD}).",
                    pseudonym=author,
                )
            now = self._clock()
            claim = create_claim(author, content, category, tags, now)
            participant.last_active_at = now

        with self._guard:
            self._claims[claim.id] = claim
            self._votes[claim.id] = []

        logger.info(f"Claim {claim.id} submitted by {author}")
        return ok(claim)

    def delete_claim(self, claim_id: str, requester: str) -> EngineResponse:
        """Withdraw a pending claim. Only its author may do so.

        A deleted claim is terminal and never produces trust updates.
        """
        claim = self.get_claim(claim_id)
        if claim is None:
            return self._reject("delete_claim", Rejection.CLAIM_NOT_FOUND, f"Claim not found: {claim_id}")

        with self._claim_lock(claim_id):
            if claim.author_pseudonym != requester:
                return self._reject(
                    "delete_claim",
                    Rejection.NOT_AUTHOR,
                    "Only the author can delete a claim.",
                    claim_id=claim_id,
                    pseudonym=requester,
                )
            if claim.status.is_terminal:
                return self._reject(
                    "delete_claim", Rejection.CLAIM_CLOSED, f"Claim is already {claim.status}.", claim_id=claim_id
                )
            claim.status = ClaimStatus.DELETED

        logger.info(f"Claim {claim_id} deleted by its author")
        return ok(claim)

    def expire_claims(self) -> EngineResponse:
        """Expire every pending claim whose deadline passed without stabilizing.

        Returns:
            ok(list of expired claim ids)
        """
        now = self._clock()
        expired: list[str] = []
        for claim in self.claims():
            with self._claim_lock(claim.id):
                if claim.status.is_terminal or now <= claim.deadline:
                    continue
                if check_stabilization(claim, self._votes[claim.id], now):
                    continue
                claim.status = ClaimStatus.EXPIRED
                expired.append(claim.id)

        if expired:
            logger.info(f"Expired {len(expired)} claim(s)")
        return ok(expired)

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def cast_vote(self, voter: str, claim_id: str, direction: int | VoteDirection) -> EngineResponse:
        """Cast a vote and refresh the claim's aggregates.

        Not safe to retry blindly: a retried success would be a second vote
        attempt. Hosts should treat DUPLICATE_VOTE as success-equivalent.

        Returns:
            ok(VoteReceipt), or a not-found / validation rejection.
        """
        direction = coerce_direction(direction)

        participant = self.get_participant(voter)
        if participant is None:
            return self._reject("cast_vote", Rejection.PARTICIPANT_NOT_FOUND, f"Participant not found: {voter}")
        claim = self.get_claim(claim_id)
        if claim is None:
            return self._reject("cast_vote", Rejection.CLAIM_NOT_FOUND, f"Claim not found: {claim_id}")

        with self._claim_lock(claim_id), self._participant_lock(voter):
            now = self._clock()
            votes = self._votes[claim_id]

            rejection = validate_vote(participant, claim, votes, now)
            if rejection is not None:
                code, message = rejection
                return self._reject("cast_vote", code, message, blocked=True, claim_id=claim_id, pseudonym=voter)

            vote = create_vote(claim_id, participant, direction, now)
            votes.append(vote)
            refresh_aggregates(claim, votes)

            participant.last_active_at = now
            participant.total_votes += 1

            feedback = None
            if self._vote_feedback:
                update = compute_vote_feedback(participant, claim, direction, now)
                if update.new_trust != update.old_trust:
                    participant.trust_score = update.new_trust
                    feedback = update
                    self._record([update])

            receipt = VoteReceipt(
                vote=vote,
                credibility_score=claim.credibility_score,
                total_votes=claim.total_votes,
                trust_score=participant.trust_score,
                feedback=feedback,
            )

        logger.debug(f"Vote by {voter} on {claim_id}: CS now {receipt.credibility_score:.3f}")
        return ok(receipt)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, claim_id: str) -> EngineResponse:
        """Resolve a claim, applying trust updates if it stabilizes.

        Safe to retry: once a claim is stabilized or expired, its stored
        result is returned unchanged. A pending claim past its deadline that
        cannot stabilize is expired here.

        Returns:
            ok(ConsensusResult) or CLAIM_NOT_FOUND.
        """
        claim = self.get_claim(claim_id)
        if claim is None:
            return self._reject("resolve", Rejection.CLAIM_NOT_FOUND, f"Claim not found: {claim_id}")

        with self._claim_lock(claim_id):
            stored = self._results.get(claim_id)
            if stored is not None:
                return ok(stored)

            votes = list(self._votes[claim_id])
            with self._holding_participants(v.voter_pseudonym for v in votes):
                now = self._clock()
                result = resolve_claim(claim, votes, self._participants, now)
                if result.stabilized:
                    self._apply_resolution(claim, votes, result)

            if result.stabilized:
                claim.status = ClaimStatus.STABILIZED
                claim.resolution = result.resolution
                claim.credibility_score = result.credibility_score
                self._results[claim_id] = result
                logger.info(
                    f"Claim {claim_id} stabilized as {result.resolution} "
                    f"(CS={result.credibility_score:.3f}, {len(result.trust_updates)} trust updates)"
                )
            elif claim.status == ClaimStatus.PENDING and now > claim.deadline:
                claim.status = ClaimStatus.EXPIRED
                self._results[claim_id] = result
                logger.info(f"Claim {claim_id} expired without stabilizing")

        return ok(result)

    def _apply_resolution(self, claim: Claim, votes: list[Vote], result: ConsensusResult) -> None:
        directions = {v.voter_pseudonym: v.direction for v in votes}
        for update in result.trust_updates:
            participant = self._participants[update.pseudonym]
            participant.trust_score = update.new_trust
            correct = (result.resolution == Resolution.TRUE and directions[update.pseudonym] == VoteDirection.TRUE) or (
                result.resolution == Resolution.FALSE and directions[update.pseudonym] == VoteDirection.FALSE
            )
            if correct:
                participant.correct_votes += 1
            else:
                participant.incorrect_votes += 1
        self._record(result.trust_updates)

    # ------------------------------------------------------------------
    # Collusion
    # ------------------------------------------------------------------

    def _vote_snapshot(self) -> list[Vote]:
        snapshot: list[Vote] = []
        for claim in self.claims():
            with self._claim_lock(claim.id):
                snapshot.extend(self._votes[claim.id])
        return snapshot

    def run_collusion_detection(self) -> EngineResponse:
        """Build the correlation graph over all votes and penalize flagged pairs.

        Returns:
            ok(CollusionReport)
        """
        edges = build_correlation_graph(self._vote_snapshot())
        with self._guard:
            recovered_at = dict(self._recovered_at)
        penalties = detect_clusters(edges, recovered_at)
        now = self._clock()

        updates: list[TrustUpdate] = []
        for pseudonym, info in sorted(penalties.items()):
            participant = self.get_participant(pseudonym)
            if participant is None:
                continue
            with self._participant_lock(pseudonym):
                update = apply_penalty(participant, info, now)
            if update is not None:
                updates.append(update)

        self._record(updates)
        with self._guard:
            self._edges = edges

        report = CollusionReport(edges=edges, penalties=penalties, trust_updates=updates)
        if penalties:
            logger.warning(
                f"Collusion detection flagged {len(report.flagged_edges)} edge(s), "
                f"{len(penalties)} participant(s) penalized"
            )
        return ok(report)

    def recover_collusion(self, pseudonym: str) -> EngineResponse:
        """Lift a participant's collusion penalty if they are eligible.

        Returns:
            ok(TrustUpdate) when lifted, ok(None) when the participant is not
            flagged or not yet eligible, or PARTICIPANT_NOT_FOUND.
        """
        participant = self.get_participant(pseudonym)
        if participant is None:
            return self._reject(
                "recover_collusion", Rejection.PARTICIPANT_NOT_FOUND, f"Participant not found: {pseudonym}"
            )

        edges = build_correlation_graph(self._vote_snapshot())
        with self._participant_lock(pseudonym):
            now = self._clock()
            if not participant.flagged_for_collusion or not recovery_eligible(participant, edges, now):
                return ok(None)
            update = lift_penalty(participant, now)
            with self._guard:
                self._recovered_at[pseudonym] = now

        self._record([update])
        return ok(update)

    # ------------------------------------------------------------------
    # Decay
    # ------------------------------------------------------------------

    def decay_inactive(self, pseudonym: str) -> EngineResponse:
        """Apply inactivity decay to one participant.

        Safe to retry: idle months already decayed in the current
        inactivity stretch are not decayed again.

        Returns:
            ok(TrustUpdate | None) or PARTICIPANT_NOT_FOUND.
        """
        participant = self.get_participant(pseudonym)
        if participant is None:
            return self._reject(
                "decay_inactive", Rejection.PARTICIPANT_NOT_FOUND, f"Participant not found: {pseudonym}"
            )

        with self._participant_lock(pseudonym):
            now = self._clock()
            applied = 0
            marker = self._decay_applied.get(pseudonym)
            if marker is not None and marker[0] == participant.last_active_at:
                applied = marker[1]

            update = apply_inactivity_decay(participant, now, months_already_applied=applied)
            if update is not None:
                participant.trust_score = update.new_trust
                self._decay_applied[pseudonym] = (participant.last_active_at, inactive_months(participant, now))

        if update is not None:
            self._record([update])
            logger.info(f"Inactivity decay for {pseudonym}: {update.old_trust:.4f} -> {update.new_trust:.4f}")
        return ok(update)

    def decay_all(self) -> EngineResponse:
        """Apply inactivity decay to every participant.

        Returns:
            ok(list of TrustUpdate records emitted)
        """
        updates = []
        for participant in self.participants():
            update = self.decay_inactive(participant.pseudonym).data
            if update is not None:
                updates.append(update)
        return ok(updates)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def simulate_attack(
        self,
        attacker_count: int = 5,
        attacker_trust: float = 1.0,
        honest_count: int = 50,
        honest_trust: float = 1.5,
    ) -> EngineResponse:
        return ok(simulate_attack(attacker_count, attacker_trust, honest_count, honest_trust))

    def payoffs(self, rounds: int = 100, assumptions: BehaviorAssumptions | None = None) -> EngineResponse:
        return ok(payoffs(rounds, assumptions))

    def popularity_vs_truth(self, **scenario: Any) -> EngineResponse:
        return ok(popularity_vs_truth(**scenario))

    def metrics(self) -> SystemMetrics:
        """Summarize the current ledger state."""
        participants = self.participants()
        claims = self.claims()
        with self._guard:
            total_votes = sum(len(v) for v in self._votes.values())
            attacks_blocked = self._attacks_blocked

        trusts = [p.trust_score for p in participants]
        return SystemMetrics(
            total_participants=len(participants),
            total_claims=len(claims),
            total_votes=total_votes,
            average_trust=sum(trusts) / len(trusts) if trusts else 0.0,
            collusion_flags_active=sum(1 for p in participants if p.flagged_for_collusion),
            claims_resolved_true=sum(1 for c in claims if c.resolution == Resolution.TRUE),
            claims_resolved_false=sum(1 for c in claims if c.resolution == Resolution.FALSE),
            claims_uncertain=sum(1 for c in claims if c.resolution == Resolution.UNCERTAIN),
            attacks_blocked=attacks_blocked,
        )
