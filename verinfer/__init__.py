"""
Verinfer - Verifiable AI Inference

Portable proofs that a text response was produced by a given provider
for a given request, checkable by a third party holding no credentials.

Two strategies behind one client:
- Transcript proof: the provider call is witnessed over TLS and the
  witness signs a claim over request and response. Verification is a
  signature check; no secrets and no re-execution.
- Re-execution: the call is deterministic (fixed seed, temperature 0).
  Verification replays it and compares outputs byte for byte.
"""

import logging

__version__ = "0.1.0"

from .client import VerifiableInferenceClient, create_client
from .config import ClientConfig
from .errors import (
    ErrorKind,
    ExtractionError,
    InferenceError,
    InferenceTimeout,
    InvalidRequestError,
    MalformedProofError,
    ProofGenerationFailed,
    ProviderMismatchError,
    StrategyMismatchError,
    VerifiableInferenceError,
    VerificationError,
)
from .extraction import ExtractionRule, extract
from .result import (
    ReExecutionAttestation,
    SerializedProof,
    TranscriptProofPayload,
    VerifiableResult,
    deserialize,
    serialize,
)
from .types import InferenceRequest, Message, ProviderTag, Role, VerificationOutcome

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Client
    "VerifiableInferenceClient",
    "create_client",
    "ClientConfig",
    # Data model
    "InferenceRequest",
    "Message",
    "Role",
    "ProviderTag",
    "VerifiableResult",
    "TranscriptProofPayload",
    "ReExecutionAttestation",
    "SerializedProof",
    "VerificationOutcome",
    "serialize",
    "deserialize",
    # Extraction
    "ExtractionRule",
    "extract",
    # Errors
    "ErrorKind",
    "VerifiableInferenceError",
    "InvalidRequestError",
    "ExtractionError",
    "ProofGenerationFailed",
    "InferenceError",
    "VerificationError",
    "MalformedProofError",
    "ProviderMismatchError",
    "StrategyMismatchError",
    "InferenceTimeout",
    # Version info
    "__version__",
]
