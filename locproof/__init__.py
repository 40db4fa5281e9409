"""
locproof - signed, time-bounded location proofs.

A trusted server signs canonical claim messages with Ed25519 so that any party
holding the server's public key can check the claim was endorsed, has not been
tampered with, and has not expired.
"""

__version__ = "0.4.0"

# Encoding and message schemas
from .bcs import Field, FieldType, Schema, address_to_hex, normalize_address
from .messages import GenericMessage, LocationProofMessage, StructuredMessage

# Signing
from .intent import IntentFraming, IntentScope, derive_address, personal_message_digest
from .keys import KeyPair, ServerKey, generate_identity
from .signature import CompositeSignature, SignatureScheme, pack, unpack
from .signer import ProofSigner

# Proofs
from .config import ProofConfig
from .proof import (
    DecomposedProof,
    LocationClaims,
    ProofGenerator,
    assemble,
    decompose,
    generate_proof,
    generate_proof_bytes,
)
from .registry import SignerRegistry
from .verifier import ProofVerifier, RejectReason, VerificationResult, verify_proof

# Metrics
from .metrics import ProofMetrics, get_metrics

# Diagnostics
from .diagnostics import DiagnosticCode, decode_diagnostic_code, parse_abort_message

from .errors import (
    DecodeError,
    DiagnosticDecodeError,
    EncodingError,
    ExpiredProof,
    FormatError,
    ProofError,
    SignatureInvalid,
    UnsupportedKeyScheme,
)


__all__ = [
    "__version__",
    # Encoding
    "Field",
    "FieldType",
    "Schema",
    "address_to_hex",
    "normalize_address",
    "GenericMessage",
    "LocationProofMessage",
    "StructuredMessage",
    # Signing
    "IntentFraming",
    "IntentScope",
    "derive_address",
    "personal_message_digest",
    "KeyPair",
    "ServerKey",
    "generate_identity",
    "CompositeSignature",
    "SignatureScheme",
    "pack",
    "unpack",
    "ProofSigner",
    # Proofs
    "ProofConfig",
    "DecomposedProof",
    "LocationClaims",
    "ProofGenerator",
    "assemble",
    "decompose",
    "generate_proof",
    "generate_proof_bytes",
    "SignerRegistry",
    "ProofVerifier",
    "RejectReason",
    "VerificationResult",
    "verify_proof",
    # Diagnostics
    "DiagnosticCode",
    "decode_diagnostic_code",
    "parse_abort_message",
    # Errors
    "ProofError",
    "EncodingError",
    "DecodeError",
    "FormatError",
    "UnsupportedKeyScheme",
    "DiagnosticDecodeError",
    "ExpiredProof",
    "SignatureInvalid",
    # Metrics
    "ProofMetrics",
    "get_metrics",
]
