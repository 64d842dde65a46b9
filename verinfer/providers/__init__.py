"""
Verinfer Provider Implementations

Verification strategies and the witness collaborators they consume.
"""

from ..config import ClientConfig
from ..types import ProviderTag
from .base import VerifiableProvider
from .reexecution import ReExecutionProvider
from .transcript import TranscriptProofProvider
from .witness import (
    Ed25519ProofVerifier,
    LocalWitness,
    ProofVerifier,
    TranscriptWitness,
)

__all__ = [
    "VerifiableProvider",
    "TranscriptProofProvider",
    "ReExecutionProvider",
    "TranscriptWitness",
    "ProofVerifier",
    "LocalWitness",
    "Ed25519ProofVerifier",
    "get_provider",
]


def get_provider(config: ClientConfig, **kwargs) -> VerifiableProvider:
    """
    Get provider instance for the configured strategy.

    Args:
        config: Client configuration; config.strategy selects the provider
        **kwargs: Collaborators for that provider (witness, proof_verifier,
            rule, witness_options for transcript proofs; completion_client for re-execution)

    Returns:
        VerifiableProvider instance
    """
    providers = {
        ProviderTag.TRANSCRIPT_PROOF: TranscriptProofProvider,
        ProviderTag.RE_EXECUTION: ReExecutionProvider,
    }

    return providers[config.strategy](config, **kwargs)
