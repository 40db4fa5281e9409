"""
Server key handling.

Wraps an Ed25519 private key and exposes the two things the proof pipeline
needs from a key holder: ``sign(digest)`` and the raw public key bytes. Keys
can be loaded from a JWK (OKP/Ed25519) or from a raw 32-byte seed. Any other
scheme is rejected with ``UnsupportedKeyScheme``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from jwcrypto import jwk
from jwcrypto.common import base64url_decode

from locproof.bcs import address_to_hex
from locproof.errors import UnsupportedKeyScheme
from locproof.intent import derive_address
from locproof.signature import SignatureScheme


logger = logging.getLogger(__name__)

SEED_LENGTH = 32


class ServerKey:
    """
    An Ed25519 signing key for the proof-issuing server.

    Example:
        >>> key = ServerKey.generate()
        >>> sig = key.sign(b"\\x00" * 32)
        >>> len(sig), len(key.public_key_bytes)
        (64, 32)
    """

    scheme = SignatureScheme.ED25519

    def __init__(self, private_key: Ed25519PrivateKey):
        """
        Args:
            private_key: A ``cryptography`` Ed25519 private key.

        Raises:
            UnsupportedKeyScheme: If ``private_key`` is any other key type.
        """
        if not isinstance(private_key, Ed25519PrivateKey):
            raise UnsupportedKeyScheme(
                f"Only Ed25519 keys are supported, got {type(private_key).__name__}"
            )
        self._key = private_key
        self._public_key_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )

    @classmethod
    def generate(cls) -> "ServerKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: Union[bytes, str]) -> "ServerKey":
        """
        Load from a raw 32-byte seed, as bytes or hex.

        Raises:
            ValueError: If the seed is not 32 bytes of valid hex/bytes.
        """
        if isinstance(seed, str):
            hex_part = seed[2:] if seed[:2] in ("0x", "0X") else seed
            seed = bytes.fromhex(hex_part)
        if len(seed) != SEED_LENGTH:
            raise ValueError(f"Ed25519 seed must be {SEED_LENGTH} bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_jwk(cls, private_key_jwk: str) -> "ServerKey":
        """
        Load from a JWK JSON string.

        Raises:
            UnsupportedKeyScheme: If the JWK is not OKP with crv=Ed25519.
            ValueError: If the JWK is malformed or has no private component.
        """
        try:
            key = jwk.JWK.from_json(private_key_jwk)
        except Exception as e:
            raise ValueError(f"Invalid JWK private key: {e}") from e

        if key.get("kty") != "OKP" or key.get("crv") != "Ed25519":
            raise UnsupportedKeyScheme(
                f"Key must be an Ed25519 key (OKP with crv=Ed25519), got kty={key.get('kty')}"
            )
        if not key.has_private:
            raise ValueError("JWK has no private component")

        params = key.export_private(as_dict=True)
        return cls.from_seed(base64url_decode(params["d"]))

    @classmethod
    def from_private_key(cls, private_key: Any) -> "ServerKey":
        """Wrap an already-loaded ``cryptography`` private key object."""
        return cls(private_key)

    @classmethod
    def load(cls, material: str) -> "ServerKey":
        """Load from either a JWK JSON string or a hex seed."""
        material = material.strip()
        if material.startswith("{"):
            return cls.from_jwk(material)
        return cls.from_seed(material)

    def sign(self, digest: bytes) -> bytes:
        """Ed25519 signature over ``digest``; deterministic for a given key."""
        return self._key.sign(digest)

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    @property
    def address(self) -> bytes:
        """The 32-byte address this key signs as."""
        return derive_address(self._public_key_bytes, int(self.scheme))

    def to_jwk(self) -> str:
        """Private key as JWK JSON."""
        return jwk.JWK.from_pyca(self._key).export_private()

    def public_jwk(self) -> str:
        return jwk.JWK.from_pyca(self._key.public_key()).export_public()

    def __repr__(self) -> str:
        return f"ServerKey(address={address_to_hex(self.address)})"


@dataclass
class KeyPair:
    """A freshly generated server identity."""

    private_key_jwk: str
    public_key_jwk: str
    address: str
    public_key_hex: str

    def to_json(self, include_private: bool = False) -> str:
        data = {
            "address": self.address,
            "public_key": self.public_key_hex,
            "public_key_jwk": json.loads(self.public_key_jwk),
        }
        if include_private:
            data["private_key_jwk"] = json.loads(self.private_key_jwk)
        return json.dumps(data, indent=2)


def generate_identity() -> KeyPair:
    """Generate a new Ed25519 server keypair."""
    key = ServerKey.generate()
    logger.debug(f"Generated server key {address_to_hex(key.address)}")
    return KeyPair(
        private_key_jwk=key.to_jwk(),
        public_key_jwk=key.public_jwk(),
        address=address_to_hex(key.address),
        public_key_hex="0x" + key.public_key_bytes.hex(),
    )
