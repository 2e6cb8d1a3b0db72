"""Tests for the identifier deduplication registry."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from truthchain.identity.registry import IdentityRegistry


class TestIdentityRegistry:
    """Tests for IdentityRegistry."""

    def test_first_claim_wins(self):
        registry = IdentityRegistry()

        assert registry.claim("digest-1") is True
        assert registry.claim("digest-1") is False
        assert len(registry) == 1

    def test_seeded_digests(self):
        registry = IdentityRegistry(["digest-1"])
        assert registry.contains("digest-1")
        assert not registry.claim("digest-1")

    def test_release(self):
        registry = IdentityRegistry()
        registry.claim("digest-1")
        registry.release("digest-1")

        assert not registry.contains("digest-1")
        assert registry.claim("digest-1")

    def test_release_unknown_is_noop(self):
        registry = IdentityRegistry()
        registry.release("missing")
        assert len(registry) == 0


class TestIdentityRegistryConcurrency:
    """Concurrent registration of one identifier yields exactly one winner."""

    def test_concurrent_claims_same_digest(self):
        registry = IdentityRegistry()
        barrier = threading.Barrier(16)

        def attempt(_):
            barrier.wait()
            return registry.claim("same-digest")

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(attempt, range(16)))

        assert results.count(True) == 1
        assert len(registry) == 1

    def test_concurrent_claims_distinct_digests(self):
        registry = IdentityRegistry()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: registry.claim(f"digest-{i}"), range(200)))

        assert all(results)
        assert len(registry) == 200
