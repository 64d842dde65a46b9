#!/usr/bin/env python3
"""
Verinfer Transcript-Proof Example

Calls the Anthropic Messages API through a self-hosted Ed25519 witness
and verifies the resulting proof with only the witness public key.

Requires ANTHROPIC_API_KEY in the environment.
"""

import asyncio

from verinfer import ClientConfig, ProviderTag, VerifiableInferenceClient
from verinfer.providers import Ed25519ProofVerifier, LocalWitness
from verinfer.providers.witness import generate_witness_key


async def main():
    """Run a witnessed generation and verify it."""
    print("Verinfer Transcript-Proof Example")
    print("=" * 50)
    print()

    witness = LocalWitness(generate_witness_key())
    print(f"Witness id: {witness.witness_id}")
    print()

    client = VerifiableInferenceClient(
        ClientConfig.from_env(ProviderTag.TRANSCRIPT_PROOF),
        witness=witness,
    )
    result = await client.chat("Name one prime number.", max_tokens=64)

    print(f"Response: {result.text}")
    print(f"Proof identifier: {result.proof.identifier}")
    print()

    # The verifier holds no API key, only the trusted witness key
    serialized = client.serialize_result(result)
    outcome = await VerifiableInferenceClient.verify_serialized_proof(
        serialized,
        ClientConfig(strategy=ProviderTag.TRANSCRIPT_PROOF),
        proof_verifier=Ed25519ProofVerifier([witness.witness_id]),
    )

    print(f"Status: {outcome}")
    print(f"Verified endpoint: {outcome.verified_endpoint}")


if __name__ == "__main__":
    asyncio.run(main())
