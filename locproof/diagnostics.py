"""
Diagnostics for rejected proofs.

When the external verifier rejects a proof it may return a packed 64-bit
abort code. Bit layout, most significant first:

    | version: 4 | reserved: 4 | error_code: 8 |
    | line_number: 16 | identifier_index: 16 | constant_index: 16 |

This module decodes those codes, extracts them from verifier abort messages,
and models verifier responses as a tagged Accepted / Rejected result.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Union

from locproof.errors import DiagnosticDecodeError


logger = logging.getLogger(__name__)

U64_MAX = (1 << 64) - 1

_HEX_CODE_RE = re.compile(r"0[xX][0-9a-fA-F]{16}")
_DECIMAL_CODE_RE = re.compile(r"[0-9]+")

_ABORT_RE = re.compile(
    r"MoveAbort\(MoveLocation\s*{\s*module:\s*ModuleId\s*{\s*address:\s*([0-9a-f]+),"
    r"\s*name:\s*Identifier\(\"([A-Za-z_]+)\"\)\s*},\s*function:\s*(\d+),\s*instruction:\s*(\d+),"
    r"\s*function_name:\s*Some\(\"([A-Za-z_]+)\"\)\s*},\s*(0x[0-9a-fA-F]+|\d+)\)\s+in command\s*(\d+)"
)
# Looser fallback for messages with extra fields or line breaks.
_ABORT_FALLBACK_RE = re.compile(
    r"MoveAbort.*?address:\s*([0-9a-f]+).*?name:\s*Identifier\(\"([A-Za-z_]+)\"\).*?"
    r"function:\s*(\d+).*?instruction:\s*(\d+).*?function_name:\s*Some\(\"([A-Za-z_]+)\"\).*?},"
    r"\s*(0x[0-9a-fA-F]+|\d+)\).*?in command\s*(\d+)",
    re.DOTALL,
)


@dataclass(frozen=True)
class DiagnosticCode:
    """Fields unpacked from a 64-bit abort code."""

    version: int
    reserved: int
    error_code: int
    line_number: int
    identifier_index: int
    constant_index: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def is_valid_diagnostic_code(code: str) -> bool:
    """
    Check the textual form of an abort code.

    Hex codes must be ``0x`` followed by exactly 16 hex digits; decimal codes
    must be digits only. Both must fit in an unsigned 64-bit value.
    """
    if not code or not code.strip():
        return False
    if code[:2] in ("0x", "0X"):
        return bool(_HEX_CODE_RE.fullmatch(code))
    if not _DECIMAL_CODE_RE.fullmatch(code):
        return False
    return int(code) <= U64_MAX


def decode_diagnostic_code(code: Union[str, int]) -> DiagnosticCode:
    """
    Unpack a 64-bit abort code.

    Args:
        code: The code as an int, a ``0x``-prefixed 16-digit hex string, or a
            decimal string.

    Raises:
        DiagnosticDecodeError: If the input is not a valid unsigned 64-bit value.
    """
    if isinstance(code, bool):
        raise DiagnosticDecodeError(f"Invalid abort code: {code!r}")
    if isinstance(code, str):
        if not is_valid_diagnostic_code(code):
            raise DiagnosticDecodeError(
                f'Invalid abort code format: "{code}". Abort codes should be valid u64 values '
                "(0x followed by 16 hex digits, or a decimal number)."
            )
        value = int(code, 0) if code[:2] in ("0x", "0X") else int(code)
    elif isinstance(code, int):
        value = code
    else:
        raise DiagnosticDecodeError(f"Invalid abort code type: {type(code).__name__}")

    if not 0 <= value <= U64_MAX:
        raise DiagnosticDecodeError(f"Abort code {value} is outside the u64 range")

    return DiagnosticCode(
        version=(value >> 60) & 0xF,
        reserved=(value >> 56) & 0xF,
        error_code=(value >> 48) & 0xFF,
        line_number=(value >> 32) & 0xFFFF,
        identifier_index=(value >> 16) & 0xFFFF,
        constant_index=value & 0xFFFF,
    )


# =============================================================================
# Abort message parsing
# =============================================================================


@dataclass(frozen=True)
class AbortInfo:
    """Location and code of a verifier abort."""

    module_name: str
    function_name: str
    address: str
    instruction: int
    abort_code: str
    decoded: DiagnosticCode
    command_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module_name,
            "function": self.function_name,
            "address": self.address,
            "instruction": self.instruction,
            "abort_code": self.abort_code,
            "decoded": self.decoded.to_dict(),
            "command_index": self.command_index,
        }


def extract_abort_code(message: str) -> Optional[str]:
    """Pull just the abort code out of an abort message, if present."""
    match = re.search(r"},\s*(0x[0-9a-fA-F]+|\d+)\)\s+in command", message)
    return match.group(1) if match else None


def parse_abort_message(message: str) -> Optional[AbortInfo]:
    """
    Parse a verifier abort message.

    Returns:
        AbortInfo, or None if the text is not an abort message.

    Raises:
        DiagnosticDecodeError: If the message matches but its code is invalid.
    """
    match = _ABORT_RE.search(message) or _ABORT_FALLBACK_RE.search(message)
    if not match:
        return None

    address, module_name, _function, instruction, function_name, code, command = match.groups()
    try:
        decoded = decode_diagnostic_code(code)
    except DiagnosticDecodeError as e:
        raise DiagnosticDecodeError(f'Failed to decode abort code "{code}": {e}') from e

    return AbortInfo(
        module_name=module_name,
        function_name=function_name,
        address=address,
        instruction=int(instruction),
        abort_code=code,
        decoded=decoded,
        command_index=int(command),
    )


# =============================================================================
# Verifier responses
# =============================================================================


@dataclass(frozen=True)
class Accepted:
    """The external verifier accepted the proof."""

    accepted = True


@dataclass(frozen=True)
class Rejected:
    """The external verifier rejected the proof."""

    diagnostic_code: Optional[int] = None
    error: Optional[str] = None

    accepted = False

    @property
    def diagnostic(self) -> Optional[DiagnosticCode]:
        if self.diagnostic_code is None:
            return None
        return decode_diagnostic_code(self.diagnostic_code)


VerifierResponse = Union[Accepted, Rejected]


def response_from_status(status: Mapping[str, Any]) -> VerifierResponse:
    """
    Convert an execution status object into a tagged response.

    ``{"status": "success"}`` becomes ``Accepted()``. Anything else becomes
    ``Rejected`` carrying the abort code parsed from ``error`` when present.
    """
    if status.get("status") == "success":
        return Accepted()

    error = status.get("error")
    code: Optional[int] = None
    if isinstance(error, str):
        raw = extract_abort_code(error)
        if raw is not None and is_valid_diagnostic_code(raw):
            code = int(raw, 0) if raw[:2] in ("0x", "0X") else int(raw)
        elif raw is not None:
            logger.warning(f"Verifier returned an unparseable abort code: {raw}")
    return Rejected(diagnostic_code=code, error=error)
