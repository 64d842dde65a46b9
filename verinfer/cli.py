#!/usr/bin/env python3
"""
Verinfer CLI - Command Line Interface for verifiable inference

Generate verifiable results, check serialized proofs received from third
parties, and manage local witness keys.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .client import VerifiableInferenceClient
from .config import ClientConfig
from .errors import VerifiableInferenceError
from .providers.witness import (
    Ed25519ProofVerifier,
    LocalWitness,
    generate_witness_key,
    load_private_key,
    public_key_b64,
    save_private_key,
)
from .result import SerializedProof, deserialize
from .types import InferenceRequest, ProviderTag


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="verinfer",
        description="Verinfer - verifiable AI inference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Deterministic generation, verifiable by re-execution
  verinfer generate --config eigenai.yaml --prompt "What is 2+2?" --seed 42 -o proof.json

  # Witnessed generation with a local witness key
  verinfer generate --config anthropic.yaml --prompt "Hello" --witness-key witness.key -o proof.json

  # Verify a proof received from someone else
  verinfer check proof.json --config eigenai.yaml
  verinfer check proof.json --trusted-key <base64 public key>

  # Show what a proof claims without verifying it
  verinfer inspect proof.json

  # Create a local witness key
  verinfer keygen --output witness.key
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"verinfer {__version__}",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate command
    generate_parser = subparsers.add_parser(
        "generate", help="Generate a verifiable result"
    )
    generate_parser.add_argument(
        "--config", "-c", type=Path, required=True, help="Client configuration (YAML or JSON)"
    )
    generate_parser.add_argument("--prompt", "-p", required=True, help="User prompt")
    generate_parser.add_argument("--system", help="System prompt")
    generate_parser.add_argument("--model", help="Model override")
    generate_parser.add_argument("--seed", type=int, help="Seed (re-execution only)")
    generate_parser.add_argument("--temperature", type=float, help="Sampling temperature")
    generate_parser.add_argument("--max-tokens", type=int, help="Maximum tokens to generate")
    generate_parser.add_argument(
        "--witness-key",
        type=Path,
        help="Ed25519 private key for the local witness (transcript proofs)",
    )
    generate_parser.add_argument(
        "--output", "-o", type=Path, help="Write the serialized proof to this file"
    )
    generate_parser.add_argument(
        "--json", action="store_true", help="Print the serialized proof as JSON"
    )

    # check command
    check_parser = subparsers.add_parser(
        "check", help="Verify a serialized proof"
    )
    check_parser.add_argument("proof", type=Path, help="Path to serialized proof JSON file")
    check_parser.add_argument(
        "--config", "-c", type=Path, help="Client configuration (defaults to the proof's strategy)"
    )
    check_parser.add_argument(
        "--trusted-key",
        action="append",
        default=[],
        help="Base64 Ed25519 public key of a trusted witness (repeatable)",
    )
    check_parser.add_argument(
        "--json", action="store_true", help="Print the verification outcome as JSON"
    )

    # inspect command
    inspect_parser = subparsers.add_parser(
        "inspect", help="Show the contents of a serialized proof without verifying"
    )
    inspect_parser.add_argument("proof", type=Path, help="Path to serialized proof JSON file")
    inspect_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # keygen command
    keygen_parser = subparsers.add_parser(
        "keygen", help="Create a local witness signing key"
    )
    keygen_parser.add_argument(
        "--output", "-o", type=Path, default=Path("witness.key"),
        help="Private key output file (default: witness.key)",
    )

    return parser


def _load_config(path: Path) -> ClientConfig:
    config = ClientConfig.from_file(path)
    if not config.api_key:
        # Config files usually leave secrets to the environment.
        config = config.with_overrides(api_key=ClientConfig.from_env(config.strategy).api_key)
    return config


async def cmd_generate(args: argparse.Namespace) -> int:
    """Execute generate command."""
    try:
        config = _load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    collaborators: Dict[str, Any] = {}
    if config.strategy is ProviderTag.TRANSCRIPT_PROOF:
        if not args.witness_key:
            print("Transcript proofs require --witness-key", file=sys.stderr)
            return 1
        try:
            key = load_private_key(args.witness_key)
        except Exception as e:
            print(f"Error loading witness key: {e}", file=sys.stderr)
            return 1
        collaborators["witness"] = LocalWitness(key, timeout=config.timeout)

    try:
        client = VerifiableInferenceClient(config, **collaborators)
        request = InferenceRequest(
            provider=config.strategy,
            prompt=args.prompt,
            system_prompt=args.system,
            model=args.model,
            max_tokens=args.max_tokens,
            temperature=args.temperature,
            seed=args.seed,
        )
        result = await client.generate(request)
    except VerifiableInferenceError as e:
        print(f"Generation failed ({e.kind.value}): {e.message}", file=sys.stderr)
        return 1

    serialized = client.serialize_result(result)

    if args.json:
        print(serialized.to_json())
    else:
        print(result.text)

    if args.output:
        serialized.save(args.output)
        print(f"Proof saved to: {args.output}", file=sys.stderr)

    return 0


async def cmd_check(args: argparse.Namespace) -> int:
    """Execute check command."""
    try:
        serialized = SerializedProof.load(args.proof)
    except Exception as e:
        print(f"Error loading proof: {e}", file=sys.stderr)
        return 1

    try:
        if args.config:
            config = _load_config(args.config)
        else:
            config = ClientConfig.from_env(serialized.provider)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    collaborators: Dict[str, Any] = {}
    if config.strategy is ProviderTag.TRANSCRIPT_PROOF:
        if not args.trusted_key:
            print("Transcript proofs require at least one --trusted-key", file=sys.stderr)
            return 1
        try:
            collaborators["proof_verifier"] = Ed25519ProofVerifier(args.trusted_key)
        except Exception as e:
            print(f"Invalid trusted key: {e}", file=sys.stderr)
            return 1

    outcome = await VerifiableInferenceClient.verify_serialized_proof(
        serialized, config, **collaborators
    )

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
    else:
        print(f"Proof: {args.proof}")
        print(f"Provider: {serialized.provider.value}")
        print(f"Model: {serialized.model}")
        print(f"Status: {'VALID' if outcome.is_valid else 'INVALID'}")
        if outcome.verified_endpoint:
            print(f"Verified Endpoint: {outcome.verified_endpoint}")
        if outcome.output_matches is not None:
            print(f"Output Matches: {'YES' if outcome.output_matches else 'NO'}")
        if outcome.error:
            print(f"Error ({outcome.error_kind.value}): {outcome.error}")
        if outcome.re_executed_output is not None and not outcome.output_matches:
            print()
            print("Recorded output:")
            print(f"  {serialized.text}")
            print("Re-executed output:")
            print(f"  {outcome.re_executed_output}")

    return 0 if outcome.is_valid else 1


def describe_proof(serialized: SerializedProof) -> Dict[str, Any]:
    """Summary of a serialized proof's claims, without verifying them."""
    result = deserialize(serialized, serialized.provider)
    summary: Dict[str, Any] = {
        "provider": result.provider.value,
        "model": result.model,
        "timestamp": result.timestamp.isoformat().replace("+00:00", "Z"),
        "text": result.text,
    }

    if result.proof is not None:
        summary["identifier"] = result.proof.identifier
        summary["signatures"] = len(result.proof.signatures)
        summary["witnesses"] = [w.to_dict() for w in result.proof.witnesses]
    elif result.attestation is not None:
        params = result.attestation.request_params
        summary["seed"] = result.attestation.seed
        summary["request_id"] = result.attestation.request_id
        summary["temperature"] = params.temperature
        summary["max_tokens"] = params.max_tokens
        summary["messages"] = len(params.messages)

    return summary


async def cmd_inspect(args: argparse.Namespace) -> int:
    """Execute inspect command."""
    try:
        serialized = SerializedProof.load(args.proof)
        summary = describe_proof(serialized)
    except Exception as e:
        print(f"Error loading proof: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(summary, indent=2))
        return 0

    print(f"Proof: {args.proof}")
    print("=" * 60)
    for key, value in summary.items():
        if key == "witnesses":
            print("Witnesses:")
            for witness in value:
                print(f"  - {witness['id']} ({witness['url']})")
        elif key != "text":
            print(f"{key.replace('_', ' ').title()}: {value}")
    print()
    print("Text:")
    print(f"  {summary['text']}")
    return 0


async def cmd_keygen(args: argparse.Namespace) -> int:
    """Execute keygen command."""
    if args.output.exists():
        print(f"Refusing to overwrite existing key: {args.output}", file=sys.stderr)
        return 1

    key = generate_witness_key()
    save_private_key(key, args.output)

    print(f"Private key written to: {args.output}")
    print(f"Public key (trusted key): {public_key_b64(key)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    # Run appropriate command
    commands = {
        "generate": cmd_generate,
        "check": cmd_check,
        "inspect": cmd_inspect,
        "keygen": cmd_keygen,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return asyncio.run(cmd_func(args))
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
