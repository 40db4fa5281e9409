"""
Tests for proof generation, assembly and decomposition.
"""

import pytest

from locproof import (
    GenericMessage,
    LocationClaims,
    LocationProofMessage,
    ProofGenerator,
    assemble,
    decompose,
    generate_proof,
    generate_proof_bytes,
)
from locproof.config import DEFAULT_VALIDITY_MS
from locproof.errors import DecodeError, EncodingError, FormatError, UnsupportedKeyScheme
from locproof.proof import proof_from_hex, proof_to_hex
from locproof.signature import SignatureScheme, pack

from conftest import (
    DEPLOYED_SERVER_ADDRESS,
    DEPLOYED_SERVER_PUBLIC_KEY,
    LOCATION_HASH,
    NOW_MS,
    PLAYER_A_DEADLINE_MS,
    PLAYER_A_PROOF,
    PLAYER_ADDRESS,
    PLAYER_B_DEADLINE_MS,
    PLAYER_B_PROOF,
    SOURCE_STRUCTURE_ID,
    TARGET_STRUCTURE_ID,
)


def _claims(**overrides) -> LocationClaims:
    values = dict(
        player_address=PLAYER_ADDRESS,
        source_structure_id=SOURCE_STRUCTURE_ID,
        target_structure_id=TARGET_STRUCTURE_ID,
        source_location_hash=LOCATION_HASH,
    )
    values.update(overrides)
    return LocationClaims(**values)


class TestAssemble:
    """Tests for assemble()."""

    def test_layout(self):
        """Proof is message, uleb(97), then the signature."""
        message_bytes = b"\xaa" * 211
        signature_bytes = pack(SignatureScheme.ED25519, b"\x01" * 64, b"\x02" * 32)
        proof = assemble(message_bytes, signature_bytes)

        assert len(proof) == 211 + 1 + 97
        assert proof[:211] == message_bytes
        assert proof[211] == 97
        assert proof[212:] == signature_bytes

    def test_hex_helpers(self):
        """Hex helpers accept either case with or without 0x."""
        assert proof_to_hex(b"\x01\xff") == "0x01ff"
        assert proof_from_hex("0x01ff") == b"\x01\xff"
        assert proof_from_hex("01FF") == b"\x01\xff"

    def test_invalid_hex(self):
        """Odd-length hex is a format error."""
        with pytest.raises(FormatError):
            proof_from_hex("0xabc")


class TestDecompose:
    """Tests for decompose()."""

    def test_round_trip(self, server_key, config, location_message):
        """Sign, then decompose, gives back the message and key."""
        proof = ProofGenerator(server_key, config).generate(location_message)
        parts = decompose(proof)

        assert parts.message == location_message
        assert parts.message_bytes == location_message.to_bytes()
        assert parts.signature.public_key == server_key.public_key_bytes
        assert parts.signature.scheme is SignatureScheme.ED25519

    def test_generic_message(self, server_key, config, generic_message):
        """Generic messages decompose with their own type."""
        proof = ProofGenerator(server_key, config).generate(generic_message)
        parts = decompose(proof, GenericMessage)
        assert parts.message == generic_message
        assert len(proof) == 96 + 1 + 97

    def test_trailing_bytes(self, server_key, config, location_message):
        """Bytes after the signature are rejected."""
        proof = ProofGenerator(server_key, config).generate(location_message)
        with pytest.raises(DecodeError, match="trailing"):
            decompose(proof + b"\x00")

    def test_truncated_signature_section(self, server_key, config, location_message):
        """A short signature section is rejected."""
        proof = ProofGenerator(server_key, config).generate(location_message)
        with pytest.raises(DecodeError, match="Signature section"):
            decompose(proof[:-1])

    def test_missing_signature_section(self, location_message):
        """A bare message is not a proof."""
        with pytest.raises(DecodeError, match="Signature section"):
            decompose(location_message.to_bytes())

    def test_truncated_message(self, location_message):
        """A cut message fails to decode."""
        with pytest.raises(DecodeError):
            decompose(location_message.to_bytes()[:100])

    def test_wrong_signature_length(self, location_message):
        """The signature section must hold 97 bytes."""
        proof = location_message.to_bytes() + b"\x60" + b"\x00" * 96
        with pytest.raises(FormatError, match="97 bytes"):
            decompose(proof)

    def test_unsupported_scheme(self, location_message):
        """A non-Ed25519 flag is reported as unsupported."""
        proof = location_message.to_bytes() + b"\x61\x01" + b"\x00" * 96
        with pytest.raises(UnsupportedKeyScheme):
            decompose(proof)

    def test_deployed_proof(self):
        """A proof issued by a deployed server decomposes into its fields."""
        parts = decompose(proof_from_hex(PLAYER_A_PROOF))
        message = parts.message

        assert len(parts.message_bytes) == 211
        assert message.server_address.hex() == DEPLOYED_SERVER_ADDRESS
        assert message.player_address.hex() == (
            "202d7d52ab5f8e8824e3e8066c0b7458f84e326c5d77b30254c69d807586a7b0"
        )
        assert message.source_structure_id.hex() == (
            "f43bdede72c5d278d948f867aa90fb727fdffa9ba4d839b0e2c0cc0ac3e1e751"
        )
        assert message.target_structure_id.hex() == (
            "b3b56d41eed613fb7e4d4a30c64923da4f9ba6db07473563f701088c52282301"
        )
        assert message.source_location_hash.hex() == LOCATION_HASH[2:]
        assert message.target_location_hash.hex() == LOCATION_HASH[2:]
        assert message.distance == 0
        assert message.data == b""
        assert message.deadline_ms == PLAYER_A_DEADLINE_MS
        assert parts.signature.public_key.hex() == DEPLOYED_SERVER_PUBLIC_KEY
        assert parts.signature.signer_address.hex() == DEPLOYED_SERVER_ADDRESS

    def test_second_deployed_proof(self):
        """The second deployed proof carries its own deadline."""
        parts = decompose(proof_from_hex(PLAYER_B_PROOF))
        assert parts.message.deadline_ms == PLAYER_B_DEADLINE_MS
        assert parts.message.server_address.hex() == DEPLOYED_SERVER_ADDRESS


class TestProofGenerator:
    """Tests for ProofGenerator and the module-level helpers."""

    def test_server_address_comes_from_key(self, server_key, config):
        """The server address is derived from the signing key."""
        proof = ProofGenerator(server_key, config).generate(_claims())
        assert decompose(proof).message.server_address == server_key.address

    def test_default_deadline(self, server_key, config):
        """Without a deadline the validity window applies."""
        proof = ProofGenerator(server_key, config).generate(_claims())
        assert decompose(proof).message.deadline_ms == NOW_MS + DEFAULT_VALIDITY_MS

    def test_explicit_deadline(self, server_key, config):
        """An explicit deadline is kept."""
        proof = ProofGenerator(server_key, config).generate(_claims(deadline_ms=123))
        assert decompose(proof).message.deadline_ms == 123

    def test_target_hash_defaults_to_source(self, server_key, config):
        """The target hash defaults to the source hash."""
        message = decompose(ProofGenerator(server_key, config).generate(_claims())).message
        assert message.target_location_hash == message.source_location_hash

    def test_separate_target_hash(self, server_key, config):
        """Target hash, distance and data are carried through."""
        claims = _claims(target_location_hash=b"\x99" * 32, distance=7, data=b"\x01")
        message = decompose(ProofGenerator(server_key, config).generate(claims)).message
        assert message.target_location_hash == b"\x99" * 32
        assert message.distance == 7
        assert message.data == b"\x01"

    def test_build_message_passes_messages_through(self, server_key, config, location_message):
        """Ready-made messages are used as is."""
        assert ProofGenerator(server_key, config).build_message(location_message) is location_message

    def test_invalid_player_address(self, server_key, config):
        """A malformed player address is rejected."""
        with pytest.raises(EncodingError):
            ProofGenerator(server_key, config).generate(_claims(player_address="0xnothex"))

    def test_invalid_location_hash(self, server_key, config):
        """Non-hex location hashes are rejected."""
        with pytest.raises(EncodingError):
            ProofGenerator(server_key, config).generate(_claims(source_location_hash="0xzz"))

    def test_short_location_hash(self, server_key, config):
        """Short location hashes are rejected."""
        with pytest.raises(EncodingError):
            ProofGenerator(server_key, config).generate(_claims(source_location_hash="0x1234"))

    def test_generation_is_deterministic(self, server_key, config):
        """The same claims give the same proof."""
        claims = _claims(deadline_ms=NOW_MS)
        assert generate_proof_bytes(server_key, claims, config) == generate_proof_bytes(
            server_key, claims, config
        )

    def test_generate_proof_hex(self, server_key, config):
        """generate_proof returns 0x-prefixed hex."""
        proof_hex = generate_proof(server_key, _claims(), config)
        assert proof_hex.startswith("0x")
        assert len(proof_hex) == 2 + 2 * (211 + 1 + 97)

    def test_records_metrics(self, server_key, config, metrics):
        """Each generated proof is counted."""
        generator = ProofGenerator(server_key, config, metrics=metrics)
        generator.generate(_claims())
        generator.generate(_claims())
        assert metrics.get_stats()["proofs_generated"] == 2

    def test_message_type(self, server_key, config):
        """Claims produce a location proof message."""
        proof = ProofGenerator(server_key, config).generate(_claims())
        assert isinstance(decompose(proof).message, LocationProofMessage)
