"""
Proof signer - signs canonical message bytes as personal messages.

Signing pipeline:

    message bytes -> intent wrap -> blake2b-256 digest -> Ed25519 -> composite signature
"""

import logging
from typing import Union

from locproof.errors import EncodingError
from locproof.intent import DIGEST_LENGTH, IntentFraming, personal_message_digest
from locproof.keys import ServerKey
from locproof.messages import StructuredMessage
from locproof.signature import CompositeSignature


logger = logging.getLogger(__name__)


class ProofSigner:
    """
    Produces composite signatures with a server key.

    Ed25519 signing is deterministic: the same digest and key always give the
    same 64 bytes.

    Example:
        >>> signer = ProofSigner(ServerKey.generate())
        >>> sig = signer.sign_message(message.to_bytes())
        >>> len(sig.to_bytes())
        97
    """

    def __init__(
        self,
        key: ServerKey,
        framing: Union[IntentFraming, str] = IntentFraming.LENGTH_PREFIXED,
    ):
        """
        Args:
            key: The server's signing key.
            framing: Intent framing used for every message signed.
        """
        if not isinstance(key, ServerKey):
            key = ServerKey.from_private_key(key)
        self.key = key
        self.framing = IntentFraming(framing)

    def sign_digest(self, digest: bytes) -> bytes:
        """
        Sign a 32-byte digest.

        Raises:
            EncodingError: If ``digest`` is not 32 bytes.
        """
        if len(digest) != DIGEST_LENGTH:
            raise EncodingError(f"Digest must be {DIGEST_LENGTH} bytes, got {len(digest)}")
        return self.key.sign(digest)

    def sign_message(self, message_bytes: bytes) -> CompositeSignature:
        """Sign canonical message bytes and return the composite signature."""
        digest = personal_message_digest(message_bytes, self.framing)
        signature = self.sign_digest(digest)
        logger.debug(f"Signed {len(message_bytes)}-byte message, digest {digest.hex()}")
        return CompositeSignature(
            scheme=self.key.scheme,
            signature=signature,
            public_key=self.key.public_key_bytes,
        )

    def sign(self, message: StructuredMessage) -> CompositeSignature:
        """Encode ``message`` and sign it."""
        return self.sign_message(message.to_bytes())
