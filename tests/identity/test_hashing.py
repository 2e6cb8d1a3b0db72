"""Tests for identifier hashing and pseudonym derivation."""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from truthchain.identity.hashing import (
    PSEUDONYM_LENGTH,
    derive_pseudonym,
    generate_keypair,
    hash_identifier,
    is_valid_pseudonym,
    seeded_keypair,
)


class TestHashIdentifier:
    """Tests for hash_identifier."""

    def test_normalises_case_and_whitespace(self, clean_env):
        """The same mailbox typed differently is the same identity."""
        assert hash_identifier("Alice@Campus.edu") == hash_identifier("  alice@campus.edu ")

    def test_hex_digest(self, clean_env):
        digest = hash_identifier("alice@campus.edu")
        assert len(digest) == 64
        int(digest, 16)

    def test_salt_changes_digest(self):
        assert hash_identifier("alice@campus.edu", salt="a") != hash_identifier("alice@campus.edu", salt="b")

    def test_salt_from_config(self, clean_env, monkeypatch):
        default = hash_identifier("alice@campus.edu")
        monkeypatch.setenv("TRUTHCHAIN_IDENTITY_SALT", "other")

        from truthchain.core.config import clear_config_cache

        clear_config_cache()
        assert hash_identifier("alice@campus.edu") != default
        assert hash_identifier("alice@campus.edu") == hash_identifier("alice@campus.edu", salt="other")

    def test_distinct_identifiers(self, clean_env):
        assert hash_identifier("alice@campus.edu") != hash_identifier("bob@campus.edu")


class TestPseudonyms:
    """Tests for pseudonym derivation."""

    def test_derive_is_stable(self):
        assert derive_pseudonym("04abcdef") == derive_pseudonym("04abcdef")

    def test_format(self):
        pseudonym = derive_pseudonym("04abcdef")
        assert len(pseudonym) == PSEUDONYM_LENGTH
        assert pseudonym == pseudonym.upper()
        assert is_valid_pseudonym(pseudonym)

    def test_invalid_pseudonyms(self):
        assert not is_valid_pseudonym("abc")
        assert not is_valid_pseudonym("g" * 16)
        assert not is_valid_pseudonym("0123456789abcdef")


class TestKeypairs:
    """Tests for keypair generation."""

    def test_generate_keypair(self):
        keypair = generate_keypair()

        assert isinstance(keypair.private_key, Ed25519PrivateKey)
        assert len(bytes.fromhex(keypair.public_key_hex)) == 32
        assert keypair.pseudonym == derive_pseudonym(keypair.public_key_hex)

    def test_generated_keys_are_unique(self):
        assert generate_keypair().pseudonym != generate_keypair().pseudonym

    def test_seeded_keypair_is_deterministic(self):
        a = seeded_keypair("alice")
        b = seeded_keypair("alice")

        assert a == b
        assert a.private_key is None
        assert a.public_key_hex.startswith("04")
        assert seeded_keypair("bob").pseudonym != a.pseudonym
