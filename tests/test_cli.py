"""Tests for the verinfer command line interface."""

import json

import pytest

from verinfer.cli import create_parser, describe_proof, main
from verinfer.config import ClientConfig
from verinfer.providers.transcript import TranscriptProofProvider
from verinfer.providers.witness import public_key_b64
from verinfer.result import SerializedProof, serialize
from verinfer.types import InferenceRequest, ProviderTag


@pytest.fixture
def proof_file(tmp_path, local_witness):
    """A transcript proof produced by the local witness, saved to disk."""
    import asyncio

    provider = TranscriptProofProvider(
        ClientConfig(strategy=ProviderTag.TRANSCRIPT_PROOF, api_key="sk-ant-test-secret"),
        witness=local_witness,
    )
    request = InferenceRequest.chat("Capital of France?", ProviderTag.TRANSCRIPT_PROOF)
    result = asyncio.run(provider.generate(request))

    path = tmp_path / "proof.json"
    serialize(result).save(path)
    return path


class TestParser:
    """Test argument parsing."""

    def test_generate_requires_config_and_prompt(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["generate", "--prompt", "hi"])

    def test_check_collects_trusted_keys(self):
        args = create_parser().parse_args(["check", "p.json", "--trusted-key", "a", "--trusted-key", "b"])
        assert args.trusted_key == ["a", "b"]

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "verinfer" in capsys.readouterr().out


class TestInspect:
    """Test the inspect command."""

    def test_inspect_json(self, proof_file, capsys):
        assert main(["inspect", str(proof_file), "--json"]) == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["provider"] == "transcript_proof"
        assert summary["signatures"] == 1
        assert summary["text"] == "The capital of France is Paris."
        assert summary["timestamp"].endswith("Z")

    def test_inspect_text(self, proof_file, capsys):
        assert main(["inspect", str(proof_file)]) == 0
        out = capsys.readouterr().out
        assert "Witnesses:" in out
        assert "The capital of France is Paris." in out

    def test_describe_attestation(self):
        payload = {
            "seed": 5,
            "model": "gpt-oss-120b-f16",
            "requestId": "chatcmpl-9",
            "requestParams": {"messages": [{"role": "user", "content": "hi"}], "temperature": 0, "maxTokens": 16},
        }
        serialized = SerializedProof(json.dumps(payload), "hello", 0, "gpt-oss-120b-f16", "re_execution")

        summary = describe_proof(serialized)

        assert summary["seed"] == 5
        assert summary["request_id"] == "chatcmpl-9"
        assert summary["messages"] == 1
        assert summary["timestamp"] == "1970-01-01T00:00:00Z"

    def test_inspect_missing_file(self, tmp_path, capsys):
        assert main(["inspect", str(tmp_path / "nope.json")]) == 1
        assert "Error loading proof" in capsys.readouterr().err


class TestCheck:
    """Test the check command."""

    def test_check_trusted_witness(self, proof_file, local_witness, capsys):
        code = main(["check", str(proof_file), "--trusted-key", local_witness.witness_id, "--json"])

        outcome = json.loads(capsys.readouterr().out)
        assert code == 0
        assert outcome["is_valid"] is True
        assert outcome["verified_endpoint"] == "https://api.anthropic.com/v1/messages"

    def test_check_untrusted_witness(self, proof_file, capsys):
        from verinfer.providers.witness import generate_witness_key

        stranger = public_key_b64(generate_witness_key())
        assert main(["check", str(proof_file), "--trusted-key", stranger]) == 1
        assert "INVALID" in capsys.readouterr().out

    def test_check_requires_trusted_key(self, proof_file, capsys):
        assert main(["check", str(proof_file)]) == 1
        assert "--trusted-key" in capsys.readouterr().err

    def test_check_tampered_text_file(self, proof_file, local_witness, capsys):
        data = json.loads(proof_file.read_text())
        data["payload_json"] = data["payload_json"].replace("Paris", "Lyon")
        proof_file.write_text(json.dumps(data))

        assert main(["check", str(proof_file), "--trusted-key", local_witness.witness_id]) == 1


class TestKeygen:
    """Test the keygen command."""

    def test_keygen_writes_key(self, tmp_path, capsys):
        path = tmp_path / "witness.key"
        assert main(["keygen", "--output", str(path)]) == 0
        assert len(path.read_bytes()) == 32
        assert "Public key" in capsys.readouterr().out

    def test_keygen_refuses_overwrite(self, tmp_path):
        path = tmp_path / "witness.key"
        path.write_bytes(b"existing")
        assert main(["keygen", "--output", str(path)]) == 1
        assert path.read_bytes() == b"existing"
