"""
Proof verification.

Runs the consumer side of the protocol:

    decompose -> re-encode message -> intent wrap -> digest
    -> verify signature against embedded key -> check key matches signer field
    -> check key is authorized -> check deadline

Rejections are normal outcomes and are returned as a ``VerificationResult``;
nothing in ``ProofVerifier.verify`` raises for a bad proof.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type, Union

from locproof.bcs import address_to_hex
from locproof.config import DEFAULT_CONFIG, ProofConfig
from locproof.errors import (
    DecodeError,
    ExpiredProof,
    FormatError,
    SignatureInvalid,
    UnsupportedKeyScheme,
)
from locproof.intent import IntentFraming, personal_message_digest
from locproof.messages import LocationProofMessage, StructuredMessage
from locproof.metrics import ProofMetrics
from locproof.proof import decompose, proof_from_hex
from locproof.registry import SignerRegistry
from locproof.signature import CompositeSignature


logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    MALFORMED = "malformed"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    SIGNATURE_INVALID = "signature_invalid"
    SIGNER_MISMATCH = "signer_mismatch"
    UNAUTHORIZED_SIGNER = "unauthorized_signer"
    EXPIRED = "expired"


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of verifying a proof.

    ``accepted`` is True only when every check passed. On rejection
    ``reason`` says which check failed; ``message`` and ``signature`` are set
    whenever the proof could be decomposed.
    """

    accepted: bool
    reason: Optional[RejectReason] = None
    message: Optional[StructuredMessage] = None
    signature: Optional[CompositeSignature] = None
    error: Optional[str] = None

    @classmethod
    def accept(cls, message: StructuredMessage, signature: CompositeSignature) -> "VerificationResult":
        return cls(accepted=True, message=message, signature=signature)

    @classmethod
    def reject(
        cls,
        reason: RejectReason,
        error: str,
        message: Optional[StructuredMessage] = None,
        signature: Optional[CompositeSignature] = None,
    ) -> "VerificationResult":
        return cls(accepted=False, reason=reason, message=message, signature=signature, error=error)

    def __bool__(self) -> bool:
        return self.accepted

    def raise_for_status(self) -> None:
        """
        Raise the matching exception if the proof was rejected.

        Raises:
            ExpiredProof, SignatureInvalid, UnsupportedKeyScheme, FormatError
        """
        if self.accepted:
            return
        if self.reason is RejectReason.EXPIRED:
            raise ExpiredProof(self.error)
        if self.reason is RejectReason.UNSUPPORTED_SCHEME:
            raise UnsupportedKeyScheme(self.error)
        if self.reason is RejectReason.MALFORMED:
            raise FormatError(self.error)
        raise SignatureInvalid(self.error)


class ProofVerifier:
    """
    Verifies proofs issued by authorized servers.

    Example:
        >>> registry = SignerRegistry()
        >>> registry.register(server_public_key)
        >>> verifier = ProofVerifier(registry=registry)
        >>> result = verifier.verify(proof_hex)
        >>> if result:
        ...     print(result.message.player_address.hex())
    """

    def __init__(
        self,
        registry: Optional[SignerRegistry] = None,
        config: Optional[ProofConfig] = None,
        metrics: Optional[ProofMetrics] = None,
        check_signer_field: bool = True,
    ):
        """
        Args:
            registry: Authorized signers. When None, any key is accepted and
                only the cryptographic checks apply.
            config: Framing and clock.
            metrics: Optional metrics collector.
            check_signer_field: Require the message's signer address field to
                match the address derived from the embedded public key.
        """
        self.registry = registry
        self.config = config or DEFAULT_CONFIG
        self.metrics = metrics
        self.check_signer_field = check_signer_field

    def verify(
        self,
        proof: Union[str, bytes],
        message_type: Type[StructuredMessage] = LocationProofMessage,
        now_ms: Optional[int] = None,
        framing: Optional[IntentFraming] = None,
    ) -> VerificationResult:
        """
        Verify a proof blob.

        Args:
            proof: Raw bytes or hex string.
            message_type: Expected message class.
            now_ms: Verification time; defaults to the configured clock.
            framing: Override the configured intent framing.

        Returns:
            VerificationResult; never raises for a malformed or invalid proof.
        """
        if self.metrics is not None:
            with self.metrics.verification_timer():
                result = self._verify(proof, message_type, now_ms, framing)
            self.metrics.record_verification(
                "accepted" if result.accepted else result.reason.value
            )
        else:
            result = self._verify(proof, message_type, now_ms, framing)

        if result.accepted:
            logger.debug("Proof accepted")
        else:
            logger.warning(f"Proof rejected ({result.reason.value}): {result.error}")
        return result

    def _verify(
        self,
        proof: Union[str, bytes],
        message_type: Type[StructuredMessage],
        now_ms: Optional[int],
        framing: Optional[IntentFraming],
    ) -> VerificationResult:
        try:
            proof_bytes = proof_from_hex(proof) if isinstance(proof, str) else bytes(proof)
            parts = decompose(proof_bytes, message_type)
        except UnsupportedKeyScheme as e:
            return VerificationResult.reject(RejectReason.UNSUPPORTED_SCHEME, str(e))
        except (DecodeError, FormatError) as e:
            return VerificationResult.reject(RejectReason.MALFORMED, str(e))

        message, signature = parts.message, parts.signature

        digest = personal_message_digest(message.to_bytes(), framing or self.config.framing)
        if not signature.verify(digest):
            return VerificationResult.reject(
                RejectReason.SIGNATURE_INVALID,
                "Signature does not match message and public key",
                message,
                signature,
            )

        signer = signature.signer_address
        if self.check_signer_field and message.signer_address != signer:
            return VerificationResult.reject(
                RejectReason.SIGNER_MISMATCH,
                f"{message.SIGNER_FIELD} {address_to_hex(message.signer_address)} "
                f"does not match signing key address {address_to_hex(signer)}",
                message,
                signature,
            )

        if self.registry is not None and not self.registry.is_authorized(signature.public_key):
            return VerificationResult.reject(
                RejectReason.UNAUTHORIZED_SIGNER,
                f"Signer {address_to_hex(signer)} is not authorized",
                message,
                signature,
            )

        deadline = getattr(message, "deadline_ms", None)
        if deadline is not None:
            now = self.config.now() if now_ms is None else now_ms
            if now > deadline:
                return VerificationResult.reject(
                    RejectReason.EXPIRED,
                    f"Proof expired at {deadline} ms (now {now} ms)",
                    message,
                    signature,
                )

        return VerificationResult.accept(message, signature)


def verify_proof(
    proof: Union[str, bytes],
    public_key: Union[str, bytes],
    message_type: Type[StructuredMessage] = LocationProofMessage,
    now_ms: Optional[int] = None,
    config: Optional[ProofConfig] = None,
) -> VerificationResult:
    """
    Verify a proof holding only the server's public key.

    The key is treated as the sole authorized signer.
    """
    registry = SignerRegistry()
    registry.register(public_key)
    return ProofVerifier(registry=registry, config=config).verify(proof, message_type, now_ms)
