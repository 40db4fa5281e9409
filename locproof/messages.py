"""
Message schemas signed by the server.

Each message type is a frozen dataclass with a fixed ``SCHEMA``. The schema's
field order is the wire order and must match the verifier's struct definition
exactly.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Tuple, Type, TypeVar, Union

from locproof import bcs
from locproof.bcs import Field, FieldType, Schema


M = TypeVar("M", bound="StructuredMessage")

AddressLike = Union[str, bytes]


class StructuredMessage:
    """
    Base for signable messages.

    Subclasses declare ``SCHEMA`` and ``SIGNER_FIELD``, the address field that
    names the party whose key must have produced the signature.
    """

    SCHEMA: ClassVar[Schema]
    SIGNER_FIELD: ClassVar[str]

    def __post_init__(self) -> None:
        # Normalize inputs so logically equal messages compare equal.
        for field in self.SCHEMA.fields:
            value = getattr(self, field.name)
            if field.type is FieldType.ADDRESS:
                object.__setattr__(self, field.name, bcs.normalize_address(value))
            elif field.type in (FieldType.BYTES, FieldType.HASH32):
                object.__setattr__(self, field.name, bcs.coerce_bytes(value, field))

    def to_bytes(self) -> bytes:
        """Canonical encoding of this message."""
        return bcs.encode(self.SCHEMA, self)

    @classmethod
    def from_bytes(cls: Type[M], data: bytes) -> M:
        """Decode a message; trailing bytes are rejected."""
        return cls(**bcs.decode(data, cls.SCHEMA))

    @classmethod
    def decode_prefix(cls: Type[M], data: bytes, offset: int = 0) -> Tuple[M, int]:
        """Decode a message from the front of ``data``, returning it and its end offset."""
        values, end = bcs.decode_prefix(data, cls.SCHEMA, offset)
        return cls(**values), end

    @property
    def signer_address(self) -> bytes:
        return getattr(self, self.SIGNER_FIELD)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view: addresses and byte fields rendered as 0x-hex."""
        result: Dict[str, Any] = {}
        for field in self.SCHEMA.fields:
            value = getattr(self, field.name)
            if isinstance(value, bytes):
                value = "0x" + value.hex()
            result[field.name] = value
        return result


@dataclass(frozen=True)
class GenericMessage(StructuredMessage):
    """A free-form attestation: who, what, and how far."""

    from_address: AddressLike
    custom_message: bytes
    distance: int

    SCHEMA: ClassVar[Schema] = Schema(
        name="Message",
        fields=(
            Field("from_address", FieldType.ADDRESS),
            Field("custom_message", FieldType.BYTES),
            Field("distance", FieldType.U64),
        ),
    )
    SIGNER_FIELD: ClassVar[str] = "from_address"


@dataclass(frozen=True)
class LocationProofMessage(StructuredMessage):
    """
    Server attestation that a player's structure is near another structure.

    ``deadline_ms`` is an absolute expiry in epoch milliseconds; the proof is
    valid while verification time <= deadline_ms. ``distance`` and the
    location hashes are opaque to this package.
    """

    server_address: AddressLike
    player_address: AddressLike
    source_structure_id: AddressLike
    source_location_hash: bytes
    target_structure_id: AddressLike
    target_location_hash: bytes
    distance: int
    data: bytes
    deadline_ms: int

    SCHEMA: ClassVar[Schema] = Schema(
        name="LocationProofMessage",
        fields=(
            Field("server_address", FieldType.ADDRESS),
            Field("player_address", FieldType.ADDRESS),
            Field("source_structure_id", FieldType.ADDRESS),
            Field("source_location_hash", FieldType.HASH32),
            Field("target_structure_id", FieldType.ADDRESS),
            Field("target_location_hash", FieldType.HASH32),
            Field("distance", FieldType.U64),
            Field("data", FieldType.BYTES),
            Field("deadline_ms", FieldType.U64),
        ),
    )
    SIGNER_FIELD: ClassVar[str] = "server_address"

