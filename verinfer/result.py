"""
Verinfer Result Model

The verifiable result produced by either strategy, its two payload
variants, and the serialized form that travels to third parties.

A payload is always enough on its own to re-verify a result: the proof
bundle carries the signed claim, the attestation carries everything
needed to replay the request.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .errors import MalformedProofError, ProviderMismatchError
from .types import Message, ProviderTag


@dataclass(frozen=True)
class ClaimData:
    """Witnessed claim binding request parameters to an extracted response."""
    provider: str
    parameters: str  # JSON: url, method, public headers, body, response matches
    context: str     # JSON: extracted parameters
    owner: str = ""
    timestamp_s: int = 0
    epoch: int = 1
    identifier: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "parameters": self.parameters,
            "context": self.context,
            "owner": self.owner,
            "timestampS": self.timestamp_s,
            "epoch": self.epoch,
            "identifier": self.identifier,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimData":
        return cls(
            provider=data["provider"],
            parameters=data["parameters"],
            context=data["context"],
            owner=data.get("owner", ""),
            timestamp_s=int(data.get("timestampS", 0)),
            epoch=int(data.get("epoch", 1)),
            identifier=data.get("identifier", ""),
        )


@dataclass(frozen=True)
class WitnessInfo:
    """A witness that signed a claim."""
    id: str
    url: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "url": self.url}


@dataclass(frozen=True)
class TranscriptProofPayload:
    """
    Opaque witness bundle for the transcript-proof strategy.

    Wire keys follow the witness network's camelCase format so bundles
    produced elsewhere round-trip unchanged.
    """
    identifier: str
    claim_data: ClaimData
    signatures: Tuple[str, ...]
    witnesses: Tuple[WitnessInfo, ...] = ()
    extracted_parameter_values: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "signatures", tuple(self.signatures))
        object.__setattr__(self, "witnesses", tuple(
            w if isinstance(w, WitnessInfo) else WitnessInfo(**w) for w in self.witnesses
        ))

    @property
    def response(self) -> Optional[str]:
        return self.extracted_parameter_values.get("response")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "claimData": self.claim_data.to_dict(),
            "signatures": list(self.signatures),
            "witnesses": [w.to_dict() for w in self.witnesses],
            "extractedParameterValues": dict(self.extracted_parameter_values),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptProofPayload":
        try:
            return cls(
                identifier=data["identifier"],
                claim_data=ClaimData.from_dict(data["claimData"]),
                signatures=tuple(data["signatures"]),
                witnesses=tuple(
                    WitnessInfo(id=w["id"], url=w.get("url", "")) for w in data.get("witnesses", [])
                ),
                extracted_parameter_values=dict(data.get("extractedParameterValues") or {}),
            )
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
            raise MalformedProofError(f"Malformed proof bundle: missing or invalid {e}", cause=e)


@dataclass(frozen=True)
class RequestParams:
    """Request parameters needed to replay an inference call."""
    messages: Tuple[Message, ...]
    temperature: float = 0.0
    max_tokens: int = 1024
    stop_sequences: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "messages": [m.to_dict() for m in self.messages],
            "temperature": self.temperature,
            "maxTokens": self.max_tokens,
        }
        if self.stop_sequences:
            data["stop"] = list(self.stop_sequences)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequestParams":
        temperature = data.get("temperature")
        return cls(
            messages=tuple(Message.from_dict(m) for m in data["messages"]),
            temperature=0.0 if temperature is None else float(temperature),
            max_tokens=int(data.get("maxTokens") or 1024),
            stop_sequences=tuple(data.get("stop") or ()),
        )


@dataclass(frozen=True)
class ReExecutionAttestation:
    """Seed, model and request parameters for deterministic replay."""
    seed: int
    model: str
    request_params: RequestParams
    request_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "model": self.model,
            "requestId": self.request_id,
            "requestParams": self.request_params.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReExecutionAttestation":
        try:
            return cls(
                seed=int(data["seed"]),
                model=data["model"],
                request_id=data.get("requestId"),
                request_params=RequestParams.from_dict(data["requestParams"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
            raise MalformedProofError(f"Malformed attestation: missing or invalid {e}", cause=e)


ResultPayload = Union[TranscriptProofPayload, ReExecutionAttestation]

_PAYLOAD_TYPES = {
    ProviderTag.TRANSCRIPT_PROOF: TranscriptProofPayload,
    ProviderTag.RE_EXECUTION: ReExecutionAttestation,
}


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _now() -> datetime:
    """Current UTC time at the millisecond precision of the wire format."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


@dataclass(frozen=True)
class VerifiableResult:
    """
    Generated text plus the strategy payload that lets anyone re-verify it.

    The payload variant must agree with the provider tag.
    """
    text: str
    provider: ProviderTag
    payload: ResultPayload
    model: str
    timestamp: datetime = field(default_factory=_now)
    raw_response: Optional[Any] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "provider", ProviderTag.parse(self.provider))
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))
        expected = _PAYLOAD_TYPES[self.provider]
        if not isinstance(self.payload, expected):
            raise ProviderMismatchError(
                f"{self.provider.value} result requires a {expected.__name__}, "
                f"got {type(self.payload).__name__}",
                strategy=self.provider,
            )

    @property
    def proof(self) -> Optional[TranscriptProofPayload]:
        return self.payload if isinstance(self.payload, TranscriptProofPayload) else None

    @property
    def attestation(self) -> Optional[ReExecutionAttestation]:
        return self.payload if isinstance(self.payload, ReExecutionAttestation) else None

    @property
    def timestamp_ms(self) -> int:
        return to_epoch_ms(self.timestamp)


@dataclass(frozen=True)
class SerializedProof:
    """Flattened, string-encodable VerifiableResult for storage or transmission."""
    payload_json: str
    text: str
    timestamp: int  # epoch milliseconds
    model: str
    provider: ProviderTag

    def __post_init__(self):
        object.__setattr__(self, "provider", ProviderTag.parse(self.provider))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payload_json": self.payload_json,
            "text": self.text,
            "timestamp": self.timestamp,
            "model": self.model,
            "provider": self.provider.value,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Union[str, Path]) -> None:
        """Save serialized proof to a JSON file."""
        Path(path).write_text(self.to_json())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SerializedProof":
        """
        Build from a dict, accepting the legacy payload keys
        (proofJson, attestationJson, payloadJson). Unknown keys are ignored.
        """
        payload_json = None
        for key in ("payload_json", "payloadJson", "proofJson", "attestationJson"):
            if key in data:
                payload_json = data[key]
                break
        if payload_json is None or "provider" not in data:
            raise MalformedProofError("Serialized proof is missing its payload or provider tag")

        try:
            timestamp = int(data.get("timestamp", 0))
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedProofError(f"Invalid timestamp: {data.get('timestamp')!r}", cause=e)

        return cls(
            payload_json=payload_json,
            text=data.get("text", ""),
            timestamp=timestamp,
            model=data.get("model", ""),
            provider=data["provider"],
        )

    @classmethod
    def from_json(cls, json_str: str) -> "SerializedProof":
        try:
            data = json.loads(json_str)
        except ValueError as e:
            raise MalformedProofError(f"Serialized proof is not valid JSON: {e}", cause=e)
        if not isinstance(data, dict):
            raise MalformedProofError("Serialized proof must be a JSON object")
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SerializedProof":
        """Load serialized proof from a JSON file."""
        return cls.from_json(Path(path).read_text())


def serialize(result: VerifiableResult) -> SerializedProof:
    """Flatten a result; the raw provider response is not carried."""
    return SerializedProof(
        payload_json=json.dumps(result.payload.to_dict(), sort_keys=True, separators=(",", ":")),
        text=result.text,
        timestamp=result.timestamp_ms,
        model=result.model,
        provider=result.provider,
    )


# Keys that only one payload variant carries, used to name the mismatch.
_TRANSCRIPT_KEYS = {"claimData", "signatures"}
_ATTESTATION_KEYS = {"seed", "requestParams"}


def deserialize(
    serialized: SerializedProof,
    provider_tag: Union[ProviderTag, str],
) -> VerifiableResult:
    """
    Rebuild a VerifiableResult, parsing the payload for provider_tag.

    Raises:
        ProviderMismatchError: tag differs from the serialized tag, or the
            payload has the other variant's shape
        MalformedProofError: payload or timestamp is not parseable
    """
    tag = ProviderTag.parse(provider_tag)
    if serialized.provider != tag:
        raise ProviderMismatchError(
            f"Serialized proof is tagged {serialized.provider.value}, "
            f"cannot be read as {tag.value}",
            strategy=tag,
        )

    try:
        data = json.loads(serialized.payload_json)
    except (TypeError, ValueError) as e:
        raise MalformedProofError(f"Payload is not valid JSON: {e}", strategy=tag, cause=e)
    if not isinstance(data, dict):
        raise MalformedProofError("Payload must be a JSON object", strategy=tag)

    keys = set(data)
    if tag is ProviderTag.TRANSCRIPT_PROOF:
        if not keys & _TRANSCRIPT_KEYS and keys & _ATTESTATION_KEYS:
            raise ProviderMismatchError(
                "Payload is a re-execution attestation, not a transcript proof", strategy=tag
            )
        payload: ResultPayload = TranscriptProofPayload.from_dict(data)
    else:
        if not keys & _ATTESTATION_KEYS and keys & _TRANSCRIPT_KEYS:
            raise ProviderMismatchError(
                "Payload is a transcript proof, not a re-execution attestation", strategy=tag
            )
        payload = ReExecutionAttestation.from_dict(data)

    try:
        timestamp = from_epoch_ms(serialized.timestamp)
    except (OverflowError, TypeError, ValueError) as e:
        raise MalformedProofError(
            f"Timestamp out of range: {serialized.timestamp!r}", strategy=tag, cause=e
        )

    return VerifiableResult(
        text=serialized.text,
        provider=tag,
        payload=payload,
        model=serialized.model,
        timestamp=timestamp,
    )
