"""
Verinfer Client

Strategy-polymorphic entry point. One client serves exactly one strategy,
chosen by its configuration; artifacts from the other strategy are
rejected with STRATEGY_MISMATCH rather than interpreted.

Example:
    client = VerifiableInferenceClient(
        ClientConfig(strategy=ProviderTag.RE_EXECUTION, api_key=key),
    )
    result = await client.chat("What is 2+2?", seed=42)
    outcome = await client.verify(result)
    print(outcome.is_valid, outcome.output_matches)
"""

import logging
from typing import Any, Mapping, Optional

from .config import ClientConfig
from .errors import ErrorKind, InvalidRequestError, StrategyMismatchError
from .providers import get_provider
from .providers.base import VerifiableProvider
from .providers.witness import ProofVerifier, TranscriptWitness
from .result import SerializedProof, VerifiableResult
from .types import InferenceRequest, ProviderTag, VerificationOutcome

logger = logging.getLogger(__name__)


class VerifiableInferenceClient:
    """
    Inference client whose results can be verified by third parties.

    Holds only immutable configuration and its collaborators, so
    generate and verify calls may run concurrently on one instance.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        witness: Optional[TranscriptWitness] = None,
        proof_verifier: Optional[ProofVerifier] = None,
        witness_options: Optional[Mapping[str, Any]] = None,
        completion_client: Optional[Any] = None,
    ):
        errors = config.validate()
        if errors:
            raise InvalidRequestError(f"Invalid configuration: {errors}", strategy=config.strategy)

        self._config = config

        if config.strategy is ProviderTag.TRANSCRIPT_PROOF:
            collaborators = {
                "witness": witness,
                "proof_verifier": proof_verifier,
                "witness_options": witness_options,
            }
        else:
            collaborators = {"completion_client": completion_client}
        self._provider = get_provider(config, **collaborators)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def strategy(self) -> ProviderTag:
        return self._config.strategy

    @property
    def provider(self) -> VerifiableProvider:
        return self._provider

    def _mismatch_message(self, tag: ProviderTag) -> str:
        return (
            f"{self.strategy.value} client cannot handle a {tag.value} artifact"
        )

    def _mismatch_outcome(self, tag: ProviderTag) -> VerificationOutcome:
        return VerificationOutcome.failure(
            self._mismatch_message(tag),
            ErrorKind.STRATEGY_MISMATCH,
            strategy=self.strategy,
            **self._provider.failure_fields(),
        )

    async def generate(self, request: InferenceRequest) -> VerifiableResult:
        """
        Generate text with a verifiable proof or attestation.

        Raises:
            StrategyMismatchError: request targets the other strategy
            VerifiableInferenceError: typed generation failure
        """
        if request.provider != self.strategy:
            raise StrategyMismatchError(self._mismatch_message(request.provider), strategy=self.strategy)
        return await self._provider.generate(request)

    async def chat(self, prompt: str, **options) -> VerifiableResult:
        """Simple single-turn interface with verification."""
        request = InferenceRequest.chat(prompt, self.strategy, **options)
        return await self.generate(request)

    async def verify(self, result: VerifiableResult) -> VerificationOutcome:
        """Verify a result from a previous generation. Never raises."""
        if result.provider != self.strategy:
            return self._mismatch_outcome(result.provider)
        return await self._provider.verify(result)

    def serialize_result(self, result: VerifiableResult) -> SerializedProof:
        """Serialize a result for storage or transmission to third parties."""
        if result.provider != self.strategy:
            raise StrategyMismatchError(self._mismatch_message(result.provider), strategy=self.strategy)
        return self._provider.serialize_result(result)

    async def verify_serialized(self, serialized: SerializedProof) -> VerificationOutcome:
        """Verify a serialized proof received from a third party. Never raises."""
        if serialized.provider != self.strategy:
            return self._mismatch_outcome(serialized.provider)
        return await self._provider.verify_serialized(serialized)

    @classmethod
    async def verify_serialized_proof(
        cls,
        serialized: SerializedProof,
        config: ClientConfig,
        **collaborators,
    ) -> VerificationOutcome:
        """
        Verify a serialized proof on a fresh client.

        Nothing from the generating client or the original request is
        needed: the serialized payload carries all verification material.
        """
        logger.debug("Verifying serialized %s proof on a fresh client", serialized.provider.value)
        client = cls(config, **collaborators)
        return await client.verify_serialized(serialized)


def create_client(config: ClientConfig, **collaborators) -> VerifiableInferenceClient:
    """Create a verifiable inference client."""
    return VerifiableInferenceClient(config, **collaborators)
