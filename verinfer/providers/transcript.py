"""
Verinfer Transcript-Proof Provider

Anthropic Messages API calls issued through a TLS witness. The witness
returns a signed claim over the request and the extracted response;
verification is a signature check, with no re-execution and no secrets.

State machine: Requested -> ProofObtained -> Verified | Rejected | VerificationError
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from ..config import ClientConfig
from ..errors import (
    ErrorKind,
    ExtractionError,
    InferenceTimeout,
    InvalidRequestError,
    ProofGenerationFailed,
    VerificationError,
    VerifiableInferenceError,
)
from ..extraction import ANTHROPIC_MESSAGE_RULE, ExtractionRule, anthropic_text, decode_payload
from ..result import VerifiableResult
from ..types import InferenceRequest, ProviderTag, Role, VerificationOutcome
from .base import VerifiableProvider
from .witness import ProofVerifier, TranscriptWitness

logger = logging.getLogger(__name__)

# Temperature used when the request does not set one.
DEFAULT_TEMPERATURE = 1.0


class TranscriptProofProvider(VerifiableProvider):
    """
    Transcript-proof strategy.

    Secrets travel only in the hidden headers handed to the witness, so a
    proof can be shared without exposing the API key. The verified
    endpoint reported on success is the configured one: the proof attests
    to the origin the original request was constrained to.
    """

    verification_fault_kind = ErrorKind.COLLABORATOR

    def __init__(
        self,
        config: ClientConfig,
        witness: Optional[TranscriptWitness] = None,
        proof_verifier: Optional[ProofVerifier] = None,
        rule: ExtractionRule = ANTHROPIC_MESSAGE_RULE,
        witness_options: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(config)
        self._witness = witness
        self._proof_verifier = proof_verifier
        self._rule = rule
        self._witness_options = dict(witness_options or {})

    @property
    def provider_tag(self) -> ProviderTag:
        return ProviderTag.TRANSCRIPT_PROOF

    @property
    def messages_url(self) -> str:
        return f"{self.endpoint}/messages"

    @property
    def rule(self) -> ExtractionRule:
        return self._rule

    def build_request_body(self, request: InferenceRequest, model: str) -> Dict[str, Any]:
        """Messages API body; system-role turns are folded into 'system'."""
        system_parts = [request.system_prompt] if request.system_prompt else []
        messages = []
        for message in request.resolved_messages():
            if message.role is Role.SYSTEM:
                system_parts.append(message.content)
            else:
                messages.append(message.to_dict())

        if not messages:
            raise InvalidRequestError(
                "Messages API requires at least one user or assistant turn",
                strategy=self.provider_tag,
            )

        temperature = request.temperature
        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": request.max_tokens or self.config.default_max_tokens,
            "messages": messages,
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        if request.stop_sequences:
            body["stop_sequences"] = list(request.stop_sequences)
        return body

    def _hidden_headers(self) -> Dict[str, str]:
        headers = {"anthropic-version": self.config.anthropic_version}
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        return headers

    async def _generate(self, request: InferenceRequest, model: str) -> VerifiableResult:
        if self._witness is None:
            raise ProofGenerationFailed("No transcript witness configured")

        body = self.build_request_body(request, model)
        # Witness-specific switches (e.g. useTee) ride along with the request.
        http_options = {
            **self._witness_options,
            "method": "POST",
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body),
        }

        try:
            proof = await self._witness.issue_witnessed_request(
                self.messages_url,
                http_options,
                self._hidden_headers(),
                self._rule,
            )
        except VerifiableInferenceError:
            raise
        except TimeoutError as e:
            raise InferenceTimeout(f"Witness timed out: {e}", cause=e)
        except Exception as e:
            raise ProofGenerationFailed(f"Verifiable generation failed: {e}", cause=e)

        if proof is None:
            raise ProofGenerationFailed("Failed to generate proof - no proof returned")

        if self.config.api_key and self.config.api_key in json.dumps(proof.to_dict()):
            raise ProofGenerationFailed("Witness embedded a hidden header in the proof")

        response_json = proof.extracted_parameter_values.get(self._rule.group)
        if not response_json:
            raise ExtractionError(
                "Failed to extract response from proof",
                kind=ErrorKind.NO_MATCH,
                pattern=self._rule.pattern,
            )

        try:
            payload = decode_payload(response_json, pattern=self._rule.pattern)
            text = anthropic_text(payload)
        except ExtractionError as e:
            e.pattern = e.pattern or self._rule.pattern
            raise

        logger.debug("Proof %s obtained for %s", proof.identifier, self.messages_url)
        return VerifiableResult(
            text=text,
            provider=self.provider_tag,
            payload=proof,
            model=model,
            raw_response=payload,
        )

    async def _verify(self, result: VerifiableResult) -> VerificationOutcome:
        if self._proof_verifier is None:
            raise VerificationError("No proof verifier configured")

        is_valid = bool(await self._proof_verifier.verify_witnessed_proof(result.proof))

        return VerificationOutcome(
            is_valid=is_valid,
            verified_endpoint=self.messages_url if is_valid else None,
            strategy=self.provider_tag,
        )
