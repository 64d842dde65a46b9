"""
Verinfer Core Types

Requests, messages, provider tags and verification outcomes shared by
both verification strategies.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from .errors import ErrorKind, InvalidRequestError, ProviderMismatchError


class Role(Enum):
    """Chat message roles."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ProviderTag(Enum):
    """Verification strategy a result was produced under."""
    TRANSCRIPT_PROOF = "transcript_proof"  # witnessed TLS transcript
    RE_EXECUTION = "re_execution"          # deterministic replay

    @classmethod
    def parse(cls, value: Union["ProviderTag", str]) -> "ProviderTag":
        """Accept enum members, wire values and legacy provider names."""
        if isinstance(value, cls):
            return value
        aliases = {
            "reclaim": cls.TRANSCRIPT_PROOF,
            "eigenai": cls.RE_EXECUTION,
        }
        normalized = str(value).strip().lower()
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ProviderMismatchError(f"Unknown provider tag: {value!r}")


@dataclass(frozen=True)
class Message:
    """A single chat turn."""
    role: Role
    content: str

    def __post_init__(self):
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(role=Role(data["role"]), content=data["content"])

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)


def _coerce_messages(messages: Iterable[Union[Message, Dict[str, Any]]]) -> Tuple[Message, ...]:
    return tuple(m if isinstance(m, Message) else Message.from_dict(m) for m in messages)


@dataclass(frozen=True)
class InferenceRequest:
    """
    Immutable description of one inference call.

    Either messages or prompt must resolve to a non-empty conversation
    before dispatch. model, max_tokens and temperature fall back to the
    client configuration or strategy defaults when left unset.
    """
    provider: ProviderTag
    model: Optional[str] = None
    messages: Tuple[Message, ...] = ()
    prompt: Optional[str] = None
    system_prompt: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    seed: Optional[int] = None
    stop_sequences: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "provider", ProviderTag.parse(self.provider))
        object.__setattr__(self, "messages", _coerce_messages(self.messages or ()))
        object.__setattr__(self, "stop_sequences", tuple(self.stop_sequences or ()))

        if self.max_tokens is not None and (
            not isinstance(self.max_tokens, int) or isinstance(self.max_tokens, bool) or self.max_tokens <= 0
        ):
            raise InvalidRequestError(f"max_tokens must be a positive integer, got {self.max_tokens!r}")
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise InvalidRequestError(f"temperature out of range [0, 2]: {self.temperature}")
        if self.seed is not None and self.seed < 0:
            raise InvalidRequestError(f"seed must be non-negative, got {self.seed}")

    def resolved_messages(self) -> Tuple[Message, ...]:
        """Ordered conversation to send; explicit messages win over prompt."""
        if self.messages:
            return self.messages
        if self.prompt:
            return (Message.user(self.prompt),)
        raise InvalidRequestError(
            "Either 'messages' or 'prompt' must be provided",
            strategy=self.provider,
        )

    @classmethod
    def chat(cls, prompt: str, provider: Union[ProviderTag, str], **options) -> "InferenceRequest":
        """Single-turn convenience constructor."""
        return cls(provider=provider, prompt=prompt, **options)


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Result of one verify call.

    Produced fresh every time; verification failures are data here, not
    exceptions. output_matches and re_executed_output are only populated
    by the re-execution strategy.
    """
    is_valid: bool
    verified_endpoint: Optional[str] = None
    output_matches: Optional[bool] = None
    re_executed_output: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    strategy: Optional[ProviderTag] = None

    @classmethod
    def failure(
        cls,
        error: str,
        kind: ErrorKind,
        strategy: Optional[ProviderTag] = None,
        **extra,
    ) -> "VerificationOutcome":
        return cls(is_valid=False, error=error, error_kind=kind, strategy=strategy, **extra)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "verified_endpoint": self.verified_endpoint,
            "output_matches": self.output_matches,
            "re_executed_output": self.re_executed_output,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "strategy": self.strategy.value if self.strategy else None,
        }

    def __str__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        if self.error:
            return f"{status}: {self.error}"
        return status
