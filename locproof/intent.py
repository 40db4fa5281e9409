"""
Intent wrapping and hashing.

Before signing, message bytes are tagged with a 3-byte intent (scope, version,
app id) so a signature made here cannot be replayed under another signing
domain that hashes the same raw bytes. The tagged bytes are hashed with
blake2b-256 and the 32-byte digest is what the Ed25519 key signs.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union

from locproof.bcs import encode_bytes_vector
from locproof.errors import EncodingError


DIGEST_LENGTH = 32
PUBLIC_KEY_LENGTH = 32


class IntentScope(IntEnum):
    """What kind of data a signature covers."""

    TRANSACTION_DATA = 0
    TRANSACTION_EFFECTS = 1
    CHECKPOINT_SUMMARY = 2
    PERSONAL_MESSAGE = 3


class IntentFraming(str, Enum):
    """
    How message bytes follow the intent prefix.

    LENGTH_PREFIXED re-wraps the message as a counted byte vector.
    RAW appends the message bytes directly, as the deployed location
    verifier expects.
    """

    LENGTH_PREFIXED = "length_prefixed"
    RAW = "raw"


@dataclass(frozen=True)
class Intent:
    scope: IntentScope
    version: int = 0
    app_id: int = 0

    def to_bytes(self) -> bytes:
        return bytes([int(self.scope), self.version, self.app_id])


PERSONAL_MESSAGE_INTENT = Intent(IntentScope.PERSONAL_MESSAGE)
INTENT_PREFIX = PERSONAL_MESSAGE_INTENT.to_bytes()


def wrap(
    message_bytes: bytes,
    framing: Union[IntentFraming, str] = IntentFraming.LENGTH_PREFIXED,
    intent: Intent = PERSONAL_MESSAGE_INTENT,
) -> bytes:
    """
    Prefix message bytes with the intent tag.

    Args:
        message_bytes: Canonically encoded message.
        framing: Whether the message is length-prefixed after the tag.
        intent: Intent tag, personal message by default.

    Returns:
        ``intent || vector(message_bytes)`` (or ``intent || message_bytes``
        with RAW framing).
    """
    if IntentFraming(framing) is IntentFraming.RAW:
        return intent.to_bytes() + bytes(message_bytes)
    return intent.to_bytes() + encode_bytes_vector(message_bytes)


def digest(intent_bytes: bytes) -> bytes:
    """blake2b-256 of intent-wrapped bytes."""
    return hashlib.blake2b(intent_bytes, digest_size=DIGEST_LENGTH).digest()


def personal_message_digest(
    message_bytes: bytes,
    framing: Union[IntentFraming, str] = IntentFraming.LENGTH_PREFIXED,
) -> bytes:
    """Wrap ``message_bytes`` as a personal message and hash it."""
    return digest(wrap(message_bytes, framing))


def derive_address(public_key: bytes, flag: int = 0x00) -> bytes:
    """
    Address controlled by a public key: blake2b-256(flag || public_key).

    Raises:
        EncodingError: If the public key is not 32 bytes.
    """
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise EncodingError(f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}")
    return digest(bytes([flag]) + bytes(public_key))
