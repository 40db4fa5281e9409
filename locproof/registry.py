"""
Authorized signer registry.

A verifier accepts a proof only if the public key embedded in its signature
belongs to a registered server. Keys are indexed by their derived address.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from locproof.bcs import address_to_hex, normalize_address
from locproof.intent import derive_address


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignerInfo:
    """A registered server signer."""

    address: bytes
    public_key: Optional[bytes] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "address": address_to_hex(self.address),
            "public_key": "0x" + self.public_key.hex() if self.public_key else None,
            "name": self.name,
        }


def _parse_key(public_key: Union[str, bytes]) -> bytes:
    if isinstance(public_key, str):
        text = public_key[2:] if public_key[:2] in ("0x", "0X") else public_key
        public_key = bytes.fromhex(text)
    return bytes(public_key)


class SignerRegistry:
    """
    Registry of authorized server signers.

    Signers can be registered by public key (address derived) or by address
    alone, mirroring an on-chain registry that stores server addresses.

    Example:
        >>> registry = SignerRegistry()
        >>> registry.register(key.public_key_bytes, name="game-server-1")
        >>> registry.is_authorized(key.public_key_bytes)
        True
    """

    def __init__(self):
        self._signers: Dict[bytes, SignerInfo] = {}
        self._lock = threading.RLock()

    def register(self, public_key: Union[str, bytes], name: Optional[str] = None) -> SignerInfo:
        """Register a signer by its 32-byte Ed25519 public key."""
        key = _parse_key(public_key)
        info = SignerInfo(address=derive_address(key), public_key=key, name=name)
        with self._lock:
            self._signers[info.address] = info
        logger.debug(f"Registered signer: {address_to_hex(info.address)}")
        return info

    def register_address(self, address: Union[str, bytes], name: Optional[str] = None) -> SignerInfo:
        """Register a signer by address only."""
        info = SignerInfo(address=normalize_address(address), name=name)
        with self._lock:
            self._signers[info.address] = info
        logger.debug(f"Registered signer address: {address_to_hex(info.address)}")
        return info

    def revoke(self, address: Union[str, bytes]) -> bool:
        """Remove a signer; returns False if it was not registered."""
        addr = normalize_address(address)
        with self._lock:
            if self._signers.pop(addr, None) is None:
                return False
        logger.info(f"Revoked signer: {address_to_hex(addr)}")
        return True

    def is_authorized(self, public_key: bytes) -> bool:
        """Whether the address derived from ``public_key`` is registered."""
        return self.is_authorized_address(derive_address(_parse_key(public_key)))

    def is_authorized_address(self, address: Union[str, bytes]) -> bool:
        addr = normalize_address(address)
        with self._lock:
            return addr in self._signers

    def get(self, address: Union[str, bytes]) -> Optional[SignerInfo]:
        with self._lock:
            return self._signers.get(normalize_address(address))

    def list_signers(self) -> List[SignerInfo]:
        with self._lock:
            return list(self._signers.values())

    def load_from_file(self, path: str) -> int:
        """
        Load signers from a JSON file.

        Expected format:
        {
            "signers": [
                {"public_key": "0x...", "name": "server-1"},
                {"address": "0x..."}
            ]
        }

        Returns:
            Number of signers loaded.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON.
        """
        with open(path, "r") as f:
            data = json.load(f)

        count = 0
        for entry in data.get("signers", []):
            if entry.get("public_key"):
                self.register(entry["public_key"], name=entry.get("name"))
            elif entry.get("address"):
                self.register_address(entry["address"], name=entry.get("name"))
            else:
                logger.warning(f"Skipping signer entry with no key or address: {entry}")
                continue
            count += 1

        logger.info(f"Loaded {count} signers from {path}")
        return count

    def save_to_file(self, path: str) -> None:
        """Write the registry to a JSON file."""
        with self._lock:
            signers = [info.to_dict() for info in self._signers.values()]
        with open(path, "w") as f:
            json.dump({"signers": signers}, f, indent=2)
        logger.info(f"Saved {len(signers)} signers to {path}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._signers)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, (str, bytes)):
            return False
        return self.is_authorized_address(address)
