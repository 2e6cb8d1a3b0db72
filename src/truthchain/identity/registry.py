"""Deduplication registry for identifier digests.

The registry is the only Sybil-resistance mechanism: a digest may be
claimed exactly once. Check and insert happen under one lock so two
concurrent registrations of the same identifier cannot both succeed.

Usage:
    registry = IdentityRegistry()

    if not registry.claim(hash_identifier(email)):
        reject("Identifier already registered")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Thread-safe set of claimed identifier digests."""

    def __init__(self, digests: Iterable[str] = ()) -> None:
        self._digests: set[str] = set(digests)
        self._lock = threading.Lock()

    def claim(self, digest: str) -> bool:
        """Atomically insert ``digest`` if it is unseen.

        Returns:
            True if the digest was new and is now claimed, False if it was
            already registered.
        """
        with self._lock:
            if digest in self._digests:
                logger.debug(f"Digest already claimed: {digest[:12]}...")
                return False
            self._digests.add(digest)
            return True

    def release(self, digest: str) -> None:
        """Undo a claim whose participant could not be created."""
        with self._lock:
            self._digests.discard(digest)

    def contains(self, digest: str) -> bool:
        with self._lock:
            return digest in self._digests

    def __len__(self) -> int:
        with self._lock:
            return len(self._digests)
