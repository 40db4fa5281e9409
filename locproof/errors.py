"""
Exception hierarchy for locproof.

Generation-time failures (bad fields, bad keys) are raised and must abort
proof construction. Verification-time outcomes are reported through
``VerificationResult``; ``ExpiredProof`` and ``SignatureInvalid`` exist for
callers who prefer an exception via ``VerificationResult.raise_for_status()``.
"""


class ProofError(Exception):
    """Base class for all locproof errors."""


class EncodingError(ProofError):
    """A field could not be canonically encoded (wrong type, length or range)."""


class DecodeError(ProofError):
    """Bytes could not be decoded: truncated, malformed prefix or trailing data."""


class FormatError(ProofError):
    """A composite signature or proof blob has the wrong length or shape."""


class UnsupportedKeyScheme(FormatError):
    """Key material or a signature flag denotes a scheme other than Ed25519."""


class DiagnosticDecodeError(ProofError):
    """Input to the diagnostic-code decoder is not a valid unsigned 64-bit value."""


class ExpiredProof(ProofError):
    """The proof deadline is earlier than the verification time."""


class SignatureInvalid(ProofError):
    """Digest, signature and public key do not match."""
