"""
Composite signature codec.

A composite signature is a self-describing 97-byte blob:

    offset 0        1-byte scheme flag (0x00 = Ed25519)
    offset 1..65    64-byte Ed25519 signature
    offset 65..97   32-byte Ed25519 public key

The fixed total size is the delimiter; there are no length prefixes inside.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from locproof.errors import FormatError, UnsupportedKeyScheme
from locproof.intent import derive_address


SIGNATURE_LENGTH = 64
PUBLIC_KEY_LENGTH = 32
COMPOSITE_SIGNATURE_LENGTH = 1 + SIGNATURE_LENGTH + PUBLIC_KEY_LENGTH


class SignatureScheme(IntEnum):
    """Scheme flags. Only ED25519 is supported."""

    ED25519 = 0x00
    SECP256K1 = 0x01
    SECP256R1 = 0x02


def _require_ed25519(flag: Union[int, SignatureScheme]) -> SignatureScheme:
    if flag != SignatureScheme.ED25519:
        try:
            name = SignatureScheme(flag).name
        except ValueError:
            name = f"0x{int(flag):02x}"
        raise UnsupportedKeyScheme(f"Unsupported signature scheme {name}; only Ed25519 is supported")
    return SignatureScheme.ED25519


@dataclass(frozen=True)
class CompositeSignature:
    """Scheme flag, signature and public key, as carried inside a proof."""

    scheme: SignatureScheme
    signature: bytes
    public_key: bytes

    def to_bytes(self) -> bytes:
        return pack(self.scheme, self.signature, self.public_key)

    @classmethod
    def from_bytes(cls, data: bytes) -> "CompositeSignature":
        return unpack(data)

    @property
    def signer_address(self) -> bytes:
        """Address derived from the embedded public key."""
        return derive_address(self.public_key, int(self.scheme))

    def verify(self, digest: bytes) -> bool:
        """Check the signature over ``digest`` against the embedded public key."""
        try:
            Ed25519PublicKey.from_public_bytes(self.public_key).verify(self.signature, digest)
            return True
        except (InvalidSignature, ValueError):
            return False

    def to_dict(self) -> dict:
        return {
            "scheme": self.scheme.name,
            "signature": "0x" + self.signature.hex(),
            "public_key": "0x" + self.public_key.hex(),
        }


def pack(flag: Union[int, SignatureScheme], signature: bytes, public_key: bytes) -> bytes:
    """
    Pack a composite signature into its 97-byte form.

    Raises:
        FormatError: If the signature is not 64 bytes or the key is not 32 bytes.
        UnsupportedKeyScheme: If ``flag`` is not Ed25519.
    """
    scheme = _require_ed25519(flag)
    if len(signature) != SIGNATURE_LENGTH:
        raise FormatError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise FormatError(f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}")
    return bytes([int(scheme)]) + bytes(signature) + bytes(public_key)


def unpack(data: bytes) -> CompositeSignature:
    """
    Split a 97-byte composite signature into its parts.

    Raises:
        FormatError: If the input is not exactly 97 bytes.
        UnsupportedKeyScheme: If the flag byte is not Ed25519.
    """
    if len(data) != COMPOSITE_SIGNATURE_LENGTH:
        raise FormatError(
            f"Composite signature must be {COMPOSITE_SIGNATURE_LENGTH} bytes, got {len(data)}"
        )
    scheme = _require_ed25519(data[0])
    return CompositeSignature(
        scheme=scheme,
        signature=bytes(data[1 : 1 + SIGNATURE_LENGTH]),
        public_key=bytes(data[1 + SIGNATURE_LENGTH :]),
    )
