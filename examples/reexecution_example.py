#!/usr/bin/env python3
"""
Verinfer Re-execution Example

Generates a deterministic answer on EigenAI, serializes it, and verifies
it again from the serialized proof alone, as a third party would.

Requires EIGENAI_API_KEY in the environment.
"""

import asyncio
from pathlib import Path

from verinfer import ClientConfig, ProviderTag, SerializedProof, VerifiableInferenceClient


async def main():
    """Run generate -> serialize -> verify on a fresh client."""
    print("Verinfer Re-execution Example")
    print("=" * 50)
    print()

    config = ClientConfig.from_env(ProviderTag.RE_EXECUTION)
    client = VerifiableInferenceClient(config)

    print(f"Endpoint: {config.resolved_endpoint}")
    print(f"Model: {config.resolved_model}")
    print()

    result = await client.chat("What is the capital of France?", seed=42)

    print(f"Response: {result.text}")
    print(f"Seed: {result.attestation.seed}")
    print()

    # Save the proof the way it would be shared
    proof_path = Path("reexecution_proof.json")
    client.serialize_result(result).save(proof_path)
    print(f"Proof saved to: {proof_path}")

    # A verifier needs only the proof file and its own API access
    outcome = await VerifiableInferenceClient.verify_serialized_proof(
        SerializedProof.load(proof_path),
        ClientConfig.from_env(ProviderTag.RE_EXECUTION),
    )

    print()
    print("Verification")
    print("-" * 50)
    print(f"Status: {outcome}")
    print(f"Output matches: {outcome.output_matches}")
    if not outcome.output_matches:
        print(f"Re-executed: {outcome.re_executed_output}")


if __name__ == "__main__":
    asyncio.run(main())
