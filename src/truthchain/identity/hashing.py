"""Identifier hashing and pseudonym derivation.

One identifier → one digest → one participant. The raw identifier (e.g. a
campus email) is normalised, salted and hashed with SHA-256; only the digest
is ever kept, so a leaked registry cannot be reversed into identifiers.

Pseudonyms are the first 16 hex characters of SHA-256 over a public key.
Keys are normally generated client-side; :func:`generate_keypair` mirrors
that with Ed25519 for hosts and tests that need a fresh identity.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

PSEUDONYM_LENGTH = 16

_PSEUDONYM_RE = re.compile(r"^[A-F0-9]{16}$")


@dataclass(frozen=True)
class IdentityKeypair:
    """Public half of an identity key plus its derived pseudonym.

    ``private_key`` is None for seeded keypairs, which have no usable
    signing key.
    """

    public_key_hex: str
    pseudonym: str
    private_key: Ed25519PrivateKey | None = None


def hash_identifier(identifier: str, salt: str | None = None) -> str:
    """Hash a registration identifier into its deduplication digest.

    Args:
        identifier: Raw identifier; case and surrounding whitespace are ignored.
        salt: Salt override; defaults to ``identity_salt`` from config.

    Returns:
        64-character hex digest.
    """
    if salt is None:
        from ..core.config import get_config

        salt = get_config().identity_salt
    normalised = identifier.strip().lower()
    return hashlib.sha256((normalised + salt).encode()).hexdigest()


def derive_pseudonym(seed_material: str) -> str:
    """Derive the stable 16-character pseudonym for ``seed_material``."""
    return hashlib.sha256(seed_material.encode()).hexdigest()[:PSEUDONYM_LENGTH].upper()


def is_valid_pseudonym(pseudonym: str) -> bool:
    return bool(_PSEUDONYM_RE.match(pseudonym))


def generate_keypair() -> IdentityKeypair:
    """Generate a fresh Ed25519 identity and derive its pseudonym."""
    private_key = Ed25519PrivateKey.generate()
    raw = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    public_key_hex = raw.hex()
    return IdentityKeypair(
        public_key_hex=public_key_hex,
        pseudonym=derive_pseudonym(public_key_hex),
        private_key=private_key,
    )


def seeded_keypair(seed: str) -> IdentityKeypair:
    """Derive a deterministic pseudo public key from a seed string.

    Used for demo and fixture identities whose pseudonyms must be stable
    across restarts.
    """
    digest = hashlib.sha256(f"{seed}_TruthChain_KeyPair".encode()).hexdigest()
    public_key_hex = "04" + digest + hashlib.sha256(digest.encode()).hexdigest()
    return IdentityKeypair(
        public_key_hex=public_key_hex,
        pseudonym=derive_pseudonym(public_key_hex),
    )
