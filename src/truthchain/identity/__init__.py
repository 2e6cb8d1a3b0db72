"""Identity hashing and Sybil-resistance registry."""

from .hashing import (
    PSEUDONYM_LENGTH,
    IdentityKeypair,
    derive_pseudonym,
    generate_keypair,
    hash_identifier,
    is_valid_pseudonym,
    seeded_keypair,
)
from .registry import IdentityRegistry

__all__ = [
    "PSEUDONYM_LENGTH",
    "IdentityKeypair",
    "IdentityRegistry",
    "derive_pseudonym",
    "generate_keypair",
    "hash_identifier",
    "is_valid_pseudonym",
    "seeded_keypair",
]
