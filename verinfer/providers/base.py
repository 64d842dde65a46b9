"""
Verinfer Provider Base Class

Abstract base class for verification strategies. Concrete providers
implement _generate and _verify; the base class owns the tag checks and
the rule that verification failures come back as data, never exceptions.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict

from ..config import ClientConfig
from ..errors import (
    ErrorKind,
    ProviderMismatchError,
    VerifiableInferenceError,
)
from ..result import SerializedProof, VerifiableResult, deserialize, serialize
from ..types import InferenceRequest, ProviderTag, VerificationOutcome

logger = logging.getLogger(__name__)


class VerifiableProvider(ABC):
    """
    Abstract base class for verifiable inference strategies.

    Key Design Principles:
    1. Generation failures raise a typed error, never a partial result
    2. Verification failures are returned as VerificationOutcome data
    3. A payload from another strategy is always PROVIDER_MISMATCH
    4. Instances hold only immutable configuration and collaborators
    """

    # Kind reported for unexpected exceptions raised during verification.
    verification_fault_kind = ErrorKind.COLLABORATOR

    def __init__(self, config: ClientConfig):
        self._config = config

    @property
    @abstractmethod
    def provider_tag(self) -> ProviderTag:
        """Strategy this provider implements."""
        pass

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def endpoint(self) -> str:
        return self._config.resolved_endpoint

    @property
    def default_model(self) -> str:
        return self._config.resolved_model

    async def generate(self, request: InferenceRequest) -> VerifiableResult:
        """
        Run one inference call and return a verifiable result.

        Raises:
            ProviderMismatchError: request targets another strategy
            VerifiableInferenceError: any typed generation failure
        """
        if request.provider != self.provider_tag:
            raise ProviderMismatchError(
                f"{self.provider_tag.value} provider cannot generate a "
                f"{request.provider.value} request",
                strategy=self.provider_tag,
            )

        model = request.model or self.default_model
        if request.max_tokens is None:
            request = replace(request, max_tokens=self._config.default_max_tokens)
        logger.debug("Generating with %s (model=%s)", self.provider_tag.value, model)

        try:
            result = await self._generate(request, model)
        except VerifiableInferenceError as e:
            if e.strategy is None:
                e.strategy = self.provider_tag
            logger.info("Generation failed (%s): %s", e.kind.value, e.message)
            raise

        logger.info("Generated %s result (model=%s, %d chars)", self.provider_tag.value, model, len(result.text))
        return result

    @abstractmethod
    async def _generate(self, request: InferenceRequest, model: str) -> VerifiableResult:
        pass

    async def verify(self, result: VerifiableResult) -> VerificationOutcome:
        """Verify a result. Never raises for verification failures."""
        if result.provider != self.provider_tag:
            return VerificationOutcome.failure(
                f"{result.provider.value} result cannot be verified by the "
                f"{self.provider_tag.value} provider",
                ErrorKind.PROVIDER_MISMATCH,
                strategy=self.provider_tag,
                **self.failure_fields(),
            )

        try:
            outcome = await self._verify(result)
        except Exception as e:
            return self._failure_from_exception(e)

        logger.info(
            "Verification %s for %s result (model=%s)",
            "passed" if outcome.is_valid else "failed",
            self.provider_tag.value,
            result.model,
        )
        return outcome

    @abstractmethod
    async def _verify(self, result: VerifiableResult) -> VerificationOutcome:
        pass

    async def verify_serialized(self, serialized: SerializedProof) -> VerificationOutcome:
        """Hydrate a serialized proof and verify it with no other context."""
        try:
            result = deserialize(serialized, self.provider_tag)
        except VerifiableInferenceError as e:
            return self._failure_from_exception(e)
        return await self.verify(result)

    def serialize_result(self, result: VerifiableResult) -> SerializedProof:
        if result.provider != self.provider_tag:
            raise ProviderMismatchError(
                f"Cannot serialize a {result.provider.value} result with the "
                f"{self.provider_tag.value} provider",
                strategy=self.provider_tag,
            )
        return serialize(result)

    def failure_fields(self) -> Dict[str, Any]:
        """Extra outcome fields every failure of this strategy carries."""
        return {}

    def _failure_from_exception(self, error: Exception) -> VerificationOutcome:
        if isinstance(error, VerifiableInferenceError):
            kind = error.kind
            message = error.message
        elif isinstance(error, TimeoutError):
            kind = ErrorKind.TIMEOUT
            message = str(error) or "Verification timed out"
        else:
            kind = self.verification_fault_kind
            message = str(error) or type(error).__name__

        logger.warning("Verification error (%s, %s): %s", self.provider_tag.value, kind.value, message)
        return VerificationOutcome.failure(
            message,
            kind,
            strategy=self.provider_tag,
            **self.failure_fields(),
        )

    def get_model_info(self) -> Dict[str, Any]:
        """Return provider information for display and logs."""
        return {
            "provider": self.provider_tag.value,
            "model": self.default_model,
            "endpoint": self.endpoint,
        }
