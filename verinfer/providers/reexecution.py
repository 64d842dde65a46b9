"""
Verinfer Re-execution Provider

Deterministic inference against an OpenAI-compatible chat completions
endpoint (EigenAI by default). Verification re-runs the recorded request
with the recorded seed and compares outputs byte for byte.

State machine: Requested -> Generated -> Matched | Mismatched | VerificationError

Known limitation: a provider may return different text for the same
seed at temperature 0 after a model or hardware update. A mismatch is
then ambiguous between tampering and drift, so outcomes expose both
texts and leave any drift tolerance to the caller.
"""

import logging
import secrets
from typing import Any, Dict, Optional, Sequence, Tuple

import openai
from openai import AsyncOpenAI

from ..config import ClientConfig
from ..errors import ErrorKind, InferenceError, InferenceTimeout
from ..extraction import openai_text
from ..result import ReExecutionAttestation, RequestParams, VerifiableResult
from ..types import InferenceRequest, Message, ProviderTag, VerificationOutcome
from .base import VerifiableProvider

logger = logging.getLogger(__name__)

# Seeds are drawn uniformly from [1, MAX_SEED).
MAX_SEED = 2147483647

DEFAULT_TEMPERATURE = 0.0


def generate_seed() -> int:
    """Random seed for deterministic inference."""
    return 1 + secrets.randbelow(MAX_SEED - 1)


class ReExecutionProvider(VerifiableProvider):
    """
    Re-execution strategy.

    Every generated result records its seed, so the attestation alone is
    enough to replay the call. Verification needs API access but no
    cryptography.
    """

    verification_fault_kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        config: ClientConfig,
        completion_client: Optional[Any] = None,
    ):
        super().__init__(config)
        self._client = completion_client

    @property
    def provider_tag(self) -> ProviderTag:
        return ProviderTag.RE_EXECUTION

    def _get_client(self) -> Any:
        # Created on first use so a client without credentials can still
        # serialize results and report mismatches.
        if self._client is None:
            kwargs: Dict[str, Any] = {
                "api_key": self.config.api_key,
                "base_url": self.endpoint,
            }
            if self.config.timeout is not None:
                kwargs["timeout"] = self.config.timeout
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    @staticmethod
    def build_messages(request: InferenceRequest) -> Tuple[Message, ...]:
        """System prompt first, then the resolved conversation."""
        messages = request.resolved_messages()
        if request.system_prompt:
            return (Message.system(request.system_prompt),) + tuple(messages)
        return tuple(messages)

    async def _complete(
        self,
        model: str,
        messages: Sequence[Message],
        max_tokens: int,
        temperature: float,
        seed: int,
        stop: Sequence[str] = (),
    ) -> Tuple[str, Dict[str, Any]]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "seed": seed,
        }
        if stop:
            kwargs["stop"] = list(stop)

        logger.debug("Chat completion on %s (model=%s, seed=%s)", self.endpoint, model, seed)

        try:
            response = await self._get_client().chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            raise InferenceTimeout(f"EigenAI request timed out: {e}", cause=e)
        except openai.OpenAIError as e:
            raise InferenceError(f"EigenAI request failed: {e}", cause=e)

        payload = response.model_dump()
        return openai_text(payload), payload

    async def _generate(self, request: InferenceRequest, model: str) -> VerifiableResult:
        temperature = DEFAULT_TEMPERATURE if request.temperature is None else request.temperature
        seed = request.seed if request.seed is not None else generate_seed()
        messages = self.build_messages(request)

        text, payload = await self._complete(
            model,
            messages,
            request.max_tokens,
            temperature,
            seed,
            request.stop_sequences,
        )

        attestation = ReExecutionAttestation(
            seed=seed,
            model=model,
            request_id=payload.get("id"),
            request_params=RequestParams(
                messages=messages,
                temperature=temperature,
                max_tokens=request.max_tokens,
                stop_sequences=request.stop_sequences,
            ),
        )

        return VerifiableResult(
            text=text,
            provider=self.provider_tag,
            payload=attestation,
            model=model,
            raw_response=payload,
        )

    async def _verify(self, result: VerifiableResult) -> VerificationOutcome:
        attestation = result.attestation
        params = attestation.request_params

        re_executed, _ = await self._complete(
            attestation.model,
            params.messages,
            params.max_tokens,
            params.temperature,
            attestation.seed,
            params.stop_sequences,
        )
        output_matches = re_executed == result.text

        if not output_matches:
            logger.info(
                "Re-executed output differs (seed=%s, %d vs %d chars)",
                attestation.seed,
                len(re_executed),
                len(result.text),
            )

        return VerificationOutcome(
            is_valid=output_matches,
            verified_endpoint=self.endpoint if output_matches else None,
            output_matches=output_matches,
            re_executed_output=re_executed,
            strategy=self.provider_tag,
        )

    def failure_fields(self) -> Dict[str, Any]:
        return {"output_matches": False}
