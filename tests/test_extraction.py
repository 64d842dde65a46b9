"""
Tests for the verinfer Extraction Engine.

Covers rule validation at construction, single/zero/multiple match
handling, and the distinction between a missing match and a malformed
payload.
"""

import json

import pytest

from verinfer.errors import ErrorKind, ExtractionError, InvalidRequestError
from verinfer.extraction import (
    ANTHROPIC_MESSAGE_RULE,
    OPENAI_COMPLETION_RULE,
    ExtractionRule,
    anthropic_text,
    decode_payload,
    extract,
    extract_text,
    openai_text,
)

from conftest import anthropic_message


class TestExtractionRule:
    """Test rule shape validation."""

    def test_single_named_group_accepted(self):
        rule = ExtractionRule(r"(?P<response>\d+)")
        assert rule.group == "response"
        assert rule.compiled.groups == 1

    def test_javascript_named_group_normalized(self):
        """Witness-style (?<name>...) groups compile as Python named groups."""
        rule = ExtractionRule(r"(?<response>\{.*\})")
        assert rule.pattern == r"(?P<response>\{.*\})"
        assert rule.to_wire() == {"type": "regex", "value": r"(?<response>\{.*\})"}

    def test_lookbehind_left_alone(self):
        rule = ExtractionRule(r"(?<=id=)(?P<response>\w+)")
        assert "(?<=" in rule.pattern

    def test_extra_capture_group_rejected(self):
        with pytest.raises(ExtractionError) as exc_info:
            ExtractionRule(r"(?P<response>\w+)-(\d+)")
        assert exc_info.value.kind is ErrorKind.AMBIGUOUS_MATCH

    def test_missing_named_group_rejected(self):
        with pytest.raises(ExtractionError) as exc_info:
            ExtractionRule(r"(\w+)")
        assert exc_info.value.kind is ErrorKind.AMBIGUOUS_MATCH

    def test_invalid_pattern_rejected(self):
        with pytest.raises(InvalidRequestError):
            ExtractionRule(r"(?P<response>[unclosed")

    def test_wire_round_trip(self):
        rule = ExtractionRule.from_wire(ANTHROPIC_MESSAGE_RULE.to_wire())
        assert rule == ANTHROPIC_MESSAGE_RULE

    def test_rules_are_hashable_values(self):
        assert ExtractionRule(r"(?P<response>a)") == ExtractionRule(r"(?<response>a)")
        assert len({ExtractionRule(r"(?P<response>a)"), ExtractionRule(r"(?P<response>a)")}) == 1


class TestExtract:
    """Test extract() match semantics."""

    def test_single_match_returns_slice_unchanged(self):
        body = json.dumps(anthropic_message("Hello"))
        assert extract(body, ANTHROPIC_MESSAGE_RULE) == body

    def test_surrounding_context_stripped(self):
        rule = ExtractionRule(r"<b>(?P<response>[^<]*)</b>")
        assert extract("before <b>bold text</b> after", rule) == "bold text"

    def test_no_match(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract('{"error": "overloaded"}', ANTHROPIC_MESSAGE_RULE)
        assert exc_info.value.kind is ErrorKind.NO_MATCH
        assert exc_info.value.pattern == ANTHROPIC_MESSAGE_RULE.pattern

    def test_multiple_matches_are_ambiguous(self):
        rule = ExtractionRule(r"<b>(?P<response>[^<]*)</b>")
        with pytest.raises(ExtractionError) as exc_info:
            extract("<b>one</b> and <b>two</b>", rule)
        assert exc_info.value.kind is ErrorKind.AMBIGUOUS_MATCH

    def test_extraction_is_deterministic(self):
        rule = ExtractionRule(r"<b>(?P<response>[^<]*)</b>")
        for _ in range(3):
            with pytest.raises(ExtractionError) as exc_info:
                extract("nothing here", rule)
            assert exc_info.value.kind is ErrorKind.NO_MATCH

    def test_optional_group_not_participating(self):
        rule = ExtractionRule(r"start(?P<response>x)?end")
        with pytest.raises(ExtractionError) as exc_info:
            extract("startend", rule)
        assert exc_info.value.kind is ErrorKind.NO_MATCH


class TestDecoding:
    """Test payload decoding and provider text extraction."""

    def test_truncated_body_is_malformed_not_no_match(self):
        rule = ExtractionRule(r"(?P<response>\{[\s\S]*)")
        truncated = json.dumps(anthropic_message("Hello"))[:-10]
        sliced = extract(truncated, rule)

        with pytest.raises(ExtractionError) as exc_info:
            decode_payload(sliced, pattern=rule.pattern)
        assert exc_info.value.kind is ErrorKind.MALFORMED_PAYLOAD

    def test_non_object_payload_is_malformed(self):
        with pytest.raises(ExtractionError) as exc_info:
            decode_payload("[1, 2, 3]")
        assert exc_info.value.kind is ErrorKind.MALFORMED_PAYLOAD

    def test_anthropic_text(self):
        assert anthropic_text(anthropic_message("Paris")) == "Paris"

    def test_anthropic_text_skips_non_text_blocks(self):
        payload = {"content": [{"type": "tool_use", "id": "t1"}, {"type": "text", "text": "done"}]}
        assert anthropic_text(payload) == "done"

    def test_anthropic_without_text_block_is_empty(self):
        assert anthropic_text({"content": []}) == ""

    def test_anthropic_schema_drift_is_malformed(self):
        with pytest.raises(ExtractionError) as exc_info:
            anthropic_text({"id": "msg_1", "completion": "old format"})
        assert exc_info.value.kind is ErrorKind.MALFORMED_PAYLOAD

    def test_openai_text(self):
        payload = {"choices": [{"message": {"role": "assistant", "content": "4"}}]}
        assert openai_text(payload) == "4"

    def test_openai_null_content_is_empty(self):
        payload = {"choices": [{"message": {"role": "assistant", "content": None}}]}
        assert openai_text(payload) == ""

    def test_openai_schema_drift_is_malformed(self):
        with pytest.raises(ExtractionError) as exc_info:
            openai_text({"output": [{"text": "4"}]})
        assert exc_info.value.kind is ErrorKind.MALFORMED_PAYLOAD

    def test_extract_text_pipeline(self):
        body = json.dumps({"id": "chatcmpl-1", "choices": [{"message": {"content": "hi"}}]})
        assert extract_text(body, OPENAI_COMPLETION_RULE, decoder=openai_text) == "hi"
