"""
Tests for abort code decoding and verifier response parsing.
"""

import json

import pytest

from locproof.diagnostics import (
    U64_MAX,
    Accepted,
    DiagnosticCode,
    Rejected,
    decode_diagnostic_code,
    extract_abort_code,
    is_valid_diagnostic_code,
    parse_abort_message,
    response_from_status,
)
from locproof.errors import DiagnosticDecodeError


def _abort_message(code: str, command: int = 0) -> str:
    return (
        "MoveAbort(MoveLocation { module: ModuleId { address: "
        "5bd7a1d4f3e0a0b9c4e5f6a7b8c9d0e1f2a3b4c5d6e7f8091a2b3c4d5e6f7081, "
        'name: Identifier("location") }, function: 3, instruction: 42, '
        'function_name: Some("verify_location_proof") }, '
        f"{code}) in command {command}"
    )


class TestDecodeDiagnosticCode:
    """Tests for decode_diagnostic_code()."""

    def test_known_code(self):
        """A known code unpacks into each field."""
        decoded = decode_diagnostic_code("0xC002005600040005")
        assert decoded == DiagnosticCode(
            version=0xC,
            reserved=0,
            error_code=2,
            line_number=0x56,
            identifier_index=4,
            constant_index=5,
        )

    def test_lowercase_hex(self):
        """Hex digits are case-insensitive."""
        assert decode_diagnostic_code("0xc002005600040005") == decode_diagnostic_code("0xC002005600040005")

    def test_decimal_and_int(self):
        """Decimal strings and ints decode alike."""
        value = 0xC002005600040005
        assert decode_diagnostic_code(str(value)) == decode_diagnostic_code(value)

    def test_all_fields_set(self):
        """The maximum code sets every field to its maximum."""
        decoded = decode_diagnostic_code(U64_MAX)
        assert decoded.version == 0xF
        assert decoded.reserved == 0xF
        assert decoded.error_code == 0xFF
        assert decoded.line_number == 0xFFFF
        assert decoded.identifier_index == 0xFFFF
        assert decoded.constant_index == 0xFFFF

    def test_zero(self):
        """Zero decodes to all-zero fields."""
        assert decode_diagnostic_code("0") == DiagnosticCode(0, 0, 0, 0, 0, 0)

    def test_reserved_bits(self):
        """The reserved nibble is exposed."""
        assert decode_diagnostic_code(0x0A << 56).reserved == 0xA

    @pytest.mark.parametrize(
        "code",
        [
            "",
            "   ",
            "0x",
            "0x123",
            "0xC00200560004000",
            "0xC0020056000400050",
            "0xG002005600040005",
            "-1",
            "12a",
            "1.5",
            "123\n",
            "0xC002005600040005\n",
            "\u0661\u0662\u0663",
            str(U64_MAX + 1),
        ],
    )
    def test_invalid_strings(self, code):
        """Malformed strings are rejected, including trailing newlines."""
        assert not is_valid_diagnostic_code(code)
        with pytest.raises(DiagnosticDecodeError):
            decode_diagnostic_code(code)

    @pytest.mark.parametrize("code", [-1, U64_MAX + 1, True, 1.0, None])
    def test_invalid_values(self, code):
        """Out-of-range and non-integer values are rejected."""
        with pytest.raises(DiagnosticDecodeError):
            decode_diagnostic_code(code)

    def test_to_json(self):
        """Decoded codes serialize to JSON."""
        data = json.loads(decode_diagnostic_code("0xC002005600040005").to_json())
        assert data["error_code"] == 2
        assert data["line_number"] == 86


class TestParseAbortMessage:
    """Tests for parse_abort_message()."""

    def test_hex_code(self):
        """Every part of a hex abort message is extracted."""
        info = parse_abort_message(_abort_message("0xc002005600040005", command=1))
        assert info is not None
        assert info.module_name == "location"
        assert info.function_name == "verify_location_proof"
        assert info.instruction == 42
        assert info.command_index == 1
        assert info.abort_code == "0xc002005600040005"
        assert info.decoded.error_code == 2
        assert info.address.startswith("5bd7a1d4")

    def test_decimal_code(self):
        """Decimal abort codes are decoded."""
        info = parse_abort_message(_abort_message("14"))
        assert info.decoded.constant_index == 14

    def test_embedded_in_longer_text(self):
        """The abort is found inside surrounding text."""
        text = "Transaction failed: " + _abort_message("14") + ". Gas used: 1000"
        assert parse_abort_message(text).command_index == 0

    def test_multiline_message(self):
        """Line breaks inside the abort are tolerated."""
        text = _abort_message("14").replace(", function: 3", ",\n  function: 3")
        assert parse_abort_message(text).function_name == "verify_location_proof"

    def test_not_an_abort(self):
        """Text without an abort gives None."""
        assert parse_abort_message("InsufficientGas") is None

    def test_invalid_code(self):
        """A short hex code in an abort is an error."""
        with pytest.raises(DiagnosticDecodeError, match="0x0e"):
            parse_abort_message(_abort_message("0x0e"))

    def test_to_dict(self):
        """Abort info serializes with its decoded code."""
        data = parse_abort_message(_abort_message("14")).to_dict()
        assert data["module"] == "location"
        assert data["decoded"]["constant_index"] == 14

    def test_extract_abort_code(self):
        """Only the code is extracted."""
        assert extract_abort_code(_abort_message("0xc002005600040005")) == "0xc002005600040005"
        assert extract_abort_code("no abort here") is None


class TestVerifierResponse:
    """Tests for response_from_status()."""

    def test_success(self):
        """A success status is Accepted."""
        response = response_from_status({"status": "success"})
        assert isinstance(response, Accepted)
        assert response.accepted

    def test_abort_with_code(self):
        """An abort carries its decoded code."""
        response = response_from_status(
            {"status": "failure", "error": _abort_message("0xc002005600040005")}
        )
        assert isinstance(response, Rejected)
        assert not response.accepted
        assert response.diagnostic_code == 0xC002005600040005
        assert response.diagnostic.line_number == 0x56

    def test_failure_without_code(self):
        """A failure without an abort keeps the raw error."""
        response = response_from_status({"status": "failure", "error": "InsufficientGas"})
        assert isinstance(response, Rejected)
        assert response.diagnostic_code is None
        assert response.diagnostic is None
        assert response.error == "InsufficientGas"

    def test_unparseable_code(self):
        """An undecodable code is left out."""
        response = response_from_status({"status": "failure", "error": _abort_message("0x0e")})
        assert response.diagnostic_code is None
