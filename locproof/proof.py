"""
Proof assembly and decomposition.

A proof blob is the canonical message bytes followed by the composite
signature as a length-prefixed byte vector:

    proof = message_bytes || uleb128(97) || flag || signature || public_key

The message comes first and is self-delimiting, so a reader decodes it with
the expected schema to find where the signature section starts.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Type, Union

from locproof import bcs
from locproof.config import DEFAULT_CONFIG, ProofConfig
from locproof.errors import DecodeError, EncodingError, FormatError
from locproof.keys import ServerKey
from locproof.messages import LocationProofMessage, StructuredMessage
from locproof.metrics import ProofMetrics
from locproof.signature import CompositeSignature, unpack
from locproof.signer import ProofSigner


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecomposedProof:
    """The parts of a received proof."""

    message: StructuredMessage
    message_bytes: bytes
    signature: CompositeSignature


def assemble(message_bytes: bytes, composite_signature_bytes: bytes) -> bytes:
    """Concatenate message bytes and the length-prefixed composite signature."""
    return bytes(message_bytes) + bcs.encode_bytes_vector(composite_signature_bytes)


def decompose(
    proof_bytes: bytes,
    message_type: Type[StructuredMessage] = LocationProofMessage,
) -> DecomposedProof:
    """
    Split a proof blob into message and composite signature.

    Args:
        proof_bytes: The raw proof.
        message_type: Expected message class; its schema delimits the message.

    Returns:
        DecomposedProof with the decoded message, its exact bytes, and the
        unpacked signature.

    Raises:
        DecodeError: If the message or signature section is truncated, or
            bytes remain after the signature section.
        FormatError: If the signature section is not a 97-byte composite
            signature (``UnsupportedKeyScheme`` for a non-Ed25519 flag).
    """
    message, message_end = message_type.decode_prefix(proof_bytes)
    try:
        signature_bytes, end = bcs.decode_bytes_vector(proof_bytes, message_end)
    except DecodeError as e:
        raise DecodeError(f"Signature section: {e}") from e
    if end != len(proof_bytes):
        raise DecodeError(f"{len(proof_bytes) - end} trailing bytes after signature section")

    return DecomposedProof(
        message=message,
        message_bytes=bytes(proof_bytes[:message_end]),
        signature=unpack(signature_bytes),
    )


def proof_to_hex(proof_bytes: bytes) -> str:
    return "0x" + bytes(proof_bytes).hex()


def proof_from_hex(proof_hex: str) -> bytes:
    """
    Parse a hex proof, with or without ``0x``.

    Raises:
        FormatError: If the string is not valid hex.
    """
    text = proof_hex.strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise FormatError(f"Proof is not valid hex: {e}") from e


# =============================================================================
# Generation
# =============================================================================


@dataclass(frozen=True)
class LocationClaims:
    """
    What the server is attesting to in a location proof.

    The server address is not part of the claims; it is always derived from
    the signing key. ``target_location_hash`` defaults to the source hash and
    ``deadline_ms`` to now plus the configured validity window.
    """

    player_address: Union[str, bytes]
    source_structure_id: Union[str, bytes]
    target_structure_id: Union[str, bytes]
    source_location_hash: Union[str, bytes]
    target_location_hash: Optional[Union[str, bytes]] = None
    distance: int = 0
    data: bytes = b""
    deadline_ms: Optional[int] = None

    def to_message(self, server_address: bytes, config: ProofConfig = DEFAULT_CONFIG) -> LocationProofMessage:
        source_hash = _hash_bytes(self.source_location_hash)
        target_hash = (
            source_hash if self.target_location_hash is None else _hash_bytes(self.target_location_hash)
        )
        return LocationProofMessage(
            server_address=server_address,
            player_address=self.player_address,
            source_structure_id=self.source_structure_id,
            source_location_hash=source_hash,
            target_structure_id=self.target_structure_id,
            target_location_hash=target_hash,
            distance=self.distance,
            data=self.data,
            deadline_ms=config.default_deadline() if self.deadline_ms is None else self.deadline_ms,
        )


def _hash_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        text = value[2:] if value[:2] in ("0x", "0X") else value
        try:
            return bytes.fromhex(text)
        except ValueError as e:
            raise EncodingError(f"Location hash is not valid hex: {value!r}") from e
    return bytes(value)


class ProofGenerator:
    """
    Builds signed proofs with a server key.

    Example:
        >>> generator = ProofGenerator(ServerKey.generate())
        >>> proof_hex = generator.generate_hex(claims)
    """

    def __init__(
        self,
        key: ServerKey,
        config: Optional[ProofConfig] = None,
        metrics: Optional[ProofMetrics] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.signer = ProofSigner(key, framing=self.config.framing)
        self.metrics = metrics

    @property
    def server_address(self) -> bytes:
        return self.signer.key.address

    def build_message(self, claims: Union[LocationClaims, StructuredMessage]) -> StructuredMessage:
        if isinstance(claims, StructuredMessage):
            return claims
        return claims.to_message(self.server_address, self.config)

    def generate(self, claims: Union[LocationClaims, StructuredMessage]) -> bytes:
        """
        Encode, sign and assemble a proof.

        Raises:
            EncodingError: If any claim field is malformed. No proof is
                returned in that case.
        """
        message = self.build_message(claims)
        message_bytes = message.to_bytes()
        signature = self.signer.sign_message(message_bytes)
        proof = assemble(message_bytes, signature.to_bytes())

        logger.debug(
            f"Generated {type(message).__name__} proof ({len(proof)} bytes) "
            f"signed by {bcs.address_to_hex(self.server_address)}"
        )
        if self.metrics is not None:
            self.metrics.record_proof_generated()
        return proof

    def generate_hex(self, claims: Union[LocationClaims, StructuredMessage]) -> str:
        return proof_to_hex(self.generate(claims))


def generate_proof_bytes(
    signer_key: ServerKey,
    claims: Union[LocationClaims, StructuredMessage],
    config: Optional[ProofConfig] = None,
) -> bytes:
    """Generate a proof and return the raw blob."""
    return ProofGenerator(signer_key, config).generate(claims)


def generate_proof(
    signer_key: ServerKey,
    claims: Union[LocationClaims, StructuredMessage],
    config: Optional[ProofConfig] = None,
) -> str:
    """
    Generate a proof and return it as ``0x``-prefixed hex.

    Args:
        signer_key: The server key; its address becomes ``server_address``.
        claims: Location claims, or a ready-built message.
        config: Validity window, framing and clock.

    Returns:
        Hex-encoded proof blob.
    """
    return proof_to_hex(generate_proof_bytes(signer_key, claims, config))
