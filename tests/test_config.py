"""Tests for verinfer client configuration."""

import json

import pytest

from verinfer.config import ANTHROPIC_API_ENDPOINT, ClientConfig
from verinfer.errors import InvalidRequestError, ProviderMismatchError
from verinfer.types import InferenceRequest, ProviderTag


class TestClientConfig:
    """Test configuration defaults and validation."""

    def test_defaults_per_strategy(self):
        transcript = ClientConfig(strategy=ProviderTag.TRANSCRIPT_PROOF)
        reexecution = ClientConfig(strategy="eigenai")

        assert transcript.resolved_endpoint == ANTHROPIC_API_ENDPOINT
        assert transcript.resolved_model == "claude-sonnet-4-20250514"
        assert reexecution.strategy is ProviderTag.RE_EXECUTION
        assert reexecution.resolved_model == "gpt-oss-120b-f16"

    def test_trailing_slash_stripped(self):
        config = ClientConfig(strategy="re_execution", endpoint="http://localhost:8000/v1/")
        assert config.resolved_endpoint == "http://localhost:8000/v1"

    def test_validate(self):
        config = ClientConfig(strategy="re_execution", default_max_tokens=0, timeout=-1)
        errors = config.validate()
        assert len(errors) == 2
        assert ClientConfig(strategy="re_execution").validate() == []

    def test_unknown_strategy(self):
        with pytest.raises(ProviderMismatchError):
            ClientConfig(strategy="gemini")

    def test_api_key_redacted(self):
        config = ClientConfig(strategy="reclaim", api_key="sk-secret")
        assert "sk-secret" not in repr(config)
        assert config.to_dict()["api_key"] == "***"


class TestConfigLoading:
    """Test file and environment loaders."""

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "eigenai.yaml"
        path.write_text(
            "strategy: eigenai\n"
            "model: gpt-oss-120b-f16\n"
            "endpoint: https://eigenai.example/v1\n"
            "timeout: 30\n"
        )

        config = ClientConfig.from_file(path)

        assert config.strategy is ProviderTag.RE_EXECUTION
        assert config.default_model == "gpt-oss-120b-f16"
        assert config.timeout == 30.0
        assert config.api_key is None

    def test_from_json(self, tmp_path):
        path = tmp_path / "anthropic.json"
        path.write_text(json.dumps({"strategy": "transcript_proof", "default_max_tokens": 256}))

        config = ClientConfig.from_file(path)

        assert config.strategy is ProviderTag.TRANSCRIPT_PROOF
        assert config.default_max_tokens == 256

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ClientConfig.from_file(tmp_path / "missing.yaml")

    def test_missing_strategy(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("model: x\n")
        with pytest.raises(ValueError):
            ClientConfig.from_file(path)

    def test_from_env(self):
        environ = {
            "EIGENAI_API_KEY": "eigen-key",
            "ANTHROPIC_API_KEY": "anthropic-key",
            "VERINFER_TIMEOUT": "12.5",
        }

        config = ClientConfig.from_env("re_execution", environ=environ)

        assert config.api_key == "eigen-key"
        assert config.timeout == 12.5
        assert config.endpoint is None

    def test_from_env_without_key(self):
        assert ClientConfig.from_env("reclaim", environ={}).api_key is None


class TestInferenceRequest:
    """Test request validation."""

    def test_prompt_resolves_to_user_message(self):
        request = InferenceRequest.chat("hello", "eigenai")
        assert [m.to_dict() for m in request.resolved_messages()] == [{"role": "user", "content": "hello"}]

    def test_messages_win_over_prompt(self):
        request = InferenceRequest(
            provider="eigenai",
            prompt="ignored",
            messages=[{"role": "user", "content": "used"}],
        )
        assert request.resolved_messages()[0].content == "used"

    def test_empty_conversation(self):
        with pytest.raises(InvalidRequestError):
            InferenceRequest(provider="eigenai").resolved_messages()

    @pytest.mark.parametrize("options", [
        {"max_tokens": 0},
        {"temperature": 2.5},
        {"seed": -1},
    ])
    def test_invalid_options(self, options):
        with pytest.raises(InvalidRequestError):
            InferenceRequest.chat("hi", "eigenai", **options)
