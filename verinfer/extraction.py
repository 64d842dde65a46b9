"""
Verinfer Extraction Engine

Carves the provable/comparable slice out of an opaque provider response
body and decodes it into provider-native JSON.

Everything here is synchronous and pure: no I/O, no logging of payloads.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Pattern

from .errors import ErrorKind, ExtractionError, InvalidRequestError


# JavaScript-style named groups, as used on the witness wire format.
# Lookbehinds (?<= and (?<! are left alone.
_JS_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")
_PY_NAMED_GROUP = re.compile(r"\(\?P<(?=[A-Za-z_])")


@dataclass(frozen=True)
class ExtractionRule:
    """
    A regular expression with exactly one named capture group.

    The rule shape is validated once here so extract() never has to
    second-guess it. A pattern with extra capture groups could yield
    several candidate regions and is rejected as AMBIGUOUS_MATCH.
    """
    pattern: str
    group: str = "response"
    _compiled: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        normalized = _JS_NAMED_GROUP.sub("(?P<", self.pattern)
        try:
            compiled = re.compile(normalized)
        except re.error as e:
            raise InvalidRequestError(f"Invalid extraction pattern {self.pattern!r}: {e}", cause=e)

        if self.group not in compiled.groupindex:
            raise ExtractionError(
                f"Extraction rule has no capture group named '{self.group}'",
                kind=ErrorKind.AMBIGUOUS_MATCH,
                pattern=self.pattern,
            )
        if compiled.groups != 1:
            raise ExtractionError(
                f"Extraction rule must have exactly one capture group, found {compiled.groups}",
                kind=ErrorKind.AMBIGUOUS_MATCH,
                pattern=self.pattern,
            )

        object.__setattr__(self, "pattern", normalized)
        object.__setattr__(self, "_compiled", compiled)

    @property
    def compiled(self) -> Pattern:
        return self._compiled

    def to_wire(self) -> Dict[str, str]:
        """Response-match entry in the witness network's format."""
        return {"type": "regex", "value": _PY_NAMED_GROUP.sub("(?<", self.pattern)}

    @classmethod
    def from_wire(cls, data: Dict[str, str], group: str = "response") -> "ExtractionRule":
        if data.get("type", "regex") != "regex":
            raise InvalidRequestError(f"Unsupported response match type: {data.get('type')}")
        return cls(pattern=data["value"], group=group)


# Full Messages API body, anchored on the message id.
ANTHROPIC_MESSAGE_RULE = ExtractionRule(
    r'(?P<response>\{[\s\S]*?"id":\s*"msg_[^"]*"[\s\S]*\})'
)

# Full chat completions body, anchored on the choices array.
OPENAI_COMPLETION_RULE = ExtractionRule(
    r'(?P<response>\{[\s\S]*?"choices":\s*\[[\s\S]*\})'
)


def extract(raw_body: str, rule: ExtractionRule) -> str:
    """
    Apply rule to raw_body and return the captured slice unchanged.

    Raises:
        ExtractionError: NO_MATCH when nothing matches, AMBIGUOUS_MATCH when
            more than one region matches.
    """
    matches = list(rule.compiled.finditer(raw_body))

    if not matches:
        raise ExtractionError(
            "Response body does not match extraction rule",
            kind=ErrorKind.NO_MATCH,
            pattern=rule.pattern,
        )
    if len(matches) > 1:
        raise ExtractionError(
            f"Extraction rule matched {len(matches)} regions, expected exactly one",
            kind=ErrorKind.AMBIGUOUS_MATCH,
            pattern=rule.pattern,
        )

    captured = matches[0].group(rule.group)
    if captured is None:
        raise ExtractionError(
            f"Capture group '{rule.group}' did not participate in the match",
            kind=ErrorKind.NO_MATCH,
            pattern=rule.pattern,
        )
    return captured


def decode_payload(slice_: str, pattern: Optional[str] = None) -> Dict[str, Any]:
    """Parse an extracted slice as a JSON object."""
    try:
        payload = json.loads(slice_)
    except (TypeError, ValueError) as e:
        raise ExtractionError(
            f"Extracted response is not valid JSON: {e}",
            kind=ErrorKind.MALFORMED_PAYLOAD,
            pattern=pattern,
            cause=e,
        )

    if not isinstance(payload, dict):
        raise ExtractionError(
            f"Extracted response is a JSON {type(payload).__name__}, expected an object",
            kind=ErrorKind.MALFORMED_PAYLOAD,
            pattern=pattern,
        )
    return payload


def anthropic_text(payload: Dict[str, Any]) -> str:
    """Assistant text from a Messages API response."""
    content = payload.get("content")
    if not isinstance(content, list):
        raise ExtractionError(
            "Messages response has no 'content' list",
            kind=ErrorKind.MALFORMED_PAYLOAD,
        )

    for item in content:
        if isinstance(item, dict) and item.get("type") == "text":
            return item.get("text") or ""
    return ""


def openai_text(payload: Dict[str, Any]) -> str:
    """Assistant text from a chat completions response."""
    choices = payload.get("choices")
    if not isinstance(choices, list):
        raise ExtractionError(
            "Completion response has no 'choices' list",
            kind=ErrorKind.MALFORMED_PAYLOAD,
        )
    if not choices:
        return ""

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise ExtractionError(
            "First completion choice has no 'message' object",
            kind=ErrorKind.MALFORMED_PAYLOAD,
        )
    return message.get("content") or ""


def extract_text(raw_body: str, rule: ExtractionRule, decoder=anthropic_text) -> str:
    """extract + decode_payload + provider text decoding in one step."""
    payload = decode_payload(extract(raw_body, rule), pattern=rule.pattern)
    return decoder(payload)
