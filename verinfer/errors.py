"""
Verinfer Error Taxonomy

Typed failures for generation and verification. Generation failures are
raised to the caller; verification failures are captured into a
VerificationOutcome carrying the same ErrorKind.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .types import ProviderTag


class ErrorKind(Enum):
    """Structured failure categories."""
    NO_MATCH = "no_match"
    AMBIGUOUS_MATCH = "ambiguous_match"
    MALFORMED_PAYLOAD = "malformed_payload"
    PROOF_GENERATION_FAILED = "proof_generation_failed"
    TRANSPORT = "transport"
    MALFORMED_PROOF = "malformed_proof"
    COLLABORATOR = "collaborator"
    PROVIDER_MISMATCH = "provider_mismatch"
    STRATEGY_MISMATCH = "strategy_mismatch"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"


class VerifiableInferenceError(Exception):
    """Base class for all verinfer failures."""

    default_kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        strategy: Optional["ProviderTag"] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.strategy = strategy
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "strategy": self.strategy.value if self.strategy else None,
        }


class InvalidRequestError(VerifiableInferenceError, ValueError):
    """Request or rule is unusable before any network call is made."""
    default_kind = ErrorKind.INVALID_REQUEST


class ExtractionError(VerifiableInferenceError):
    """
    The Extraction Engine could not carve a usable slice from a response.

    kind is one of NO_MATCH, AMBIGUOUS_MATCH or MALFORMED_PAYLOAD, so callers
    can tell a changed response shape from a truncated/corrupted body.
    """
    default_kind = ErrorKind.NO_MATCH

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.NO_MATCH,
        pattern: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, kind=kind, **kwargs)
        self.pattern = pattern

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["pattern"] = self.pattern
        return data


class ProofGenerationFailed(VerifiableInferenceError):
    """The witness returned no proof, or failed while producing one."""
    default_kind = ErrorKind.PROOF_GENERATION_FAILED


class InferenceError(VerifiableInferenceError):
    """The inference provider rejected or failed the request."""
    default_kind = ErrorKind.TRANSPORT


class VerificationError(VerifiableInferenceError):
    """Verification could not reach a verdict (transport, bad proof, collaborator fault)."""
    default_kind = ErrorKind.COLLABORATOR


class MalformedProofError(VerificationError):
    """A proof bundle or attestation is structurally unusable."""
    default_kind = ErrorKind.MALFORMED_PROOF


class ProviderMismatchError(VerifiableInferenceError):
    """A payload was handed to the wrong provider variant."""
    default_kind = ErrorKind.PROVIDER_MISMATCH


class StrategyMismatchError(VerifiableInferenceError):
    """A client was asked to handle an artifact from another strategy."""
    default_kind = ErrorKind.STRATEGY_MISMATCH


class InferenceTimeout(VerifiableInferenceError, TimeoutError):
    """The transport gave up waiting for the provider or witness."""
    default_kind = ErrorKind.TIMEOUT
