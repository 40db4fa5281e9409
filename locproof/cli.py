"""
locproof Command Line Interface.

Provides commands for generating a server key, issuing and verifying location
proofs, and decoding verifier abort codes.
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from typing import Optional, Sequence

from locproof.bcs import address_to_hex
from locproof.config import ENV_PRIVATE_KEY, ProofConfig
from locproof.diagnostics import decode_diagnostic_code, parse_abort_message
from locproof.errors import DiagnosticDecodeError, ProofError
from locproof.intent import IntentFraming
from locproof.keys import ServerKey, generate_identity
from locproof.messages import GenericMessage, LocationProofMessage
from locproof.proof import LocationClaims, ProofGenerator, decompose, proof_from_hex
from locproof.registry import SignerRegistry
from locproof.verifier import ProofVerifier


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _config(args: argparse.Namespace) -> ProofConfig:
    config = ProofConfig.from_env()
    if getattr(args, "framing", None):
        config = replace(config, framing=IntentFraming(args.framing))
    return config


def cmd_init(args: argparse.Namespace) -> int:
    """Generate a new Ed25519 server key."""
    keys = generate_identity()
    if args.env:
        print(f"export {ENV_PRIVATE_KEY}='{keys.private_key_jwk}'")
        print(f"# Address: {keys.address}", file=sys.stderr)
        print(f"# Public key: {keys.public_key_hex}", file=sys.stderr)
    else:
        print(keys.to_json(include_private=True))
    return 0


def cmd_sign(args: argparse.Namespace) -> int:
    """Issue a location proof."""
    material = args.key or os.environ.get(ENV_PRIVATE_KEY)
    if not material:
        print(f"Error: Missing private key. Set {ENV_PRIVATE_KEY} or use --key", file=sys.stderr)
        return 1

    try:
        key = ServerKey.load(material)
        claims = LocationClaims(
            player_address=args.player,
            source_structure_id=args.source,
            target_structure_id=args.target,
            source_location_hash=args.location_hash,
            target_location_hash=args.target_location_hash,
            distance=args.distance,
            data=bytes.fromhex(args.data[2:] if args.data.startswith("0x") else args.data),
            deadline_ms=args.deadline_ms,
        )
        generator = ProofGenerator(key, config=_config(args))
        proof_hex = generator.generate_hex(claims)
    except (ProofError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        parts = decompose(proof_from_hex(proof_hex))
        print(
            json.dumps(
                {
                    "proof": proof_hex,
                    "length": len(proof_from_hex(proof_hex)),
                    "message": parts.message.to_dict(),
                    "signature": parts.signature.to_dict(),
                },
                indent=2,
            )
        )
    else:
        print(proof_hex)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a proof."""
    registry = None
    if args.public_key:
        registry = SignerRegistry()
        try:
            registry.register(args.public_key)
        except (ProofError, ValueError) as e:
            print(f"Error: Invalid public key: {e}", file=sys.stderr)
            return 1

    try:
        config = _config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    message_type = GenericMessage if args.generic else LocationProofMessage
    result = ProofVerifier(registry=registry, config=config).verify(
        args.proof, message_type=message_type, now_ms=args.now_ms
    )
    if registry is None and result.accepted:
        print("⚠️  Warning: No public key provided, signer not checked against a registry", file=sys.stderr)

    if args.json:
        output = {"valid": result.accepted}
        if result.reason is not None:
            output["reason"] = result.reason.value
            output["error"] = result.error
        if result.message is not None:
            output["message"] = result.message.to_dict()
        print(json.dumps(output, indent=2))
    elif result.accepted:
        print("✅ VALID")
        print(f"   Signer: {address_to_hex(result.signature.signer_address)}")
    else:
        print(f"❌ INVALID ({result.reason.value}): {result.error}")
    return 0 if result.accepted else 1


def cmd_decode_error(args: argparse.Namespace) -> int:
    """Decode a 64-bit abort code."""
    try:
        print(decode_diagnostic_code(args.code).to_json())
        return 0
    except DiagnosticDecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_parse_error(args: argparse.Namespace) -> int:
    """Parse a verifier abort message."""
    text = sys.stdin.read() if args.message == "-" else args.message
    try:
        parsed = parse_abort_message(text)
    except DiagnosticDecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if parsed is None:
        print("Error: No abort found in message", file=sys.stderr)
        return 1
    print(json.dumps(parsed.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="locproof",
        description="locproof CLI - signed, time-bounded location proofs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    p_init = subparsers.add_parser("init", help="Generate a new server key")
    p_init.add_argument("--env", action="store_true", help="Output as environment variables")

    framing_choices = [f.value for f in IntentFraming]

    p_sign = subparsers.add_parser("sign", help="Issue a location proof")
    p_sign.add_argument("--key", help="Private key (JWK JSON or hex seed)")
    p_sign.add_argument("--player", required=True, help="Player address")
    p_sign.add_argument("--source", required=True, help="Source structure id")
    p_sign.add_argument("--target", required=True, help="Target structure id")
    p_sign.add_argument("--location-hash", required=True, help="Source location hash (32-byte hex)")
    p_sign.add_argument("--target-location-hash", help="Target location hash (defaults to source)")
    p_sign.add_argument("--distance", type=int, default=0, help="Distance (default: 0)")
    p_sign.add_argument("--data", default="", help="Extra data as hex")
    p_sign.add_argument("--deadline-ms", type=int, help="Absolute deadline in epoch ms")
    p_sign.add_argument("--framing", choices=framing_choices, help="Intent framing")
    p_sign.add_argument("--json", action="store_true", help="Output proof breakdown as JSON")

    p_verify = subparsers.add_parser("verify", help="Verify a proof")
    p_verify.add_argument("proof", help="Proof as hex")
    p_verify.add_argument("--public-key", help="Authorized server public key (hex)")
    p_verify.add_argument("--now-ms", type=int, help="Verification time in epoch ms")
    p_verify.add_argument("--generic", action="store_true", help="Proof carries a generic message")
    p_verify.add_argument("--framing", choices=framing_choices, help="Intent framing")
    p_verify.add_argument("--json", action="store_true", help="Output as JSON")

    p_decode = subparsers.add_parser("decode-error", help="Decode a 64-bit abort code")
    p_decode.add_argument("code", help="Abort code (0x + 16 hex digits, or decimal)")

    p_parse = subparsers.add_parser("parse-error", help="Parse a verifier abort message")
    p_parse.add_argument("message", help="Abort message text, or - to read stdin")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "sign":
        return cmd_sign(args)
    elif args.command == "verify":
        return cmd_verify(args)
    elif args.command == "decode-error":
        return cmd_decode_error(args)
    elif args.command == "parse-error":
        return cmd_parse_error(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
