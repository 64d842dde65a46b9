"""Shared fixtures and fakes for verinfer tests."""

import hashlib
import json
from types import SimpleNamespace

import httpx
import pytest
from openai.types.chat import ChatCompletion

from verinfer.config import ClientConfig
from verinfer.providers.witness import (
    Ed25519ProofVerifier,
    LocalWitness,
    generate_witness_key,
)
from verinfer.types import ProviderTag


ANTHROPIC_KEY = "sk-ant-test-secret"
EIGENAI_KEY = "eigen-test-secret"


def anthropic_message(text: str, message_id: str = "msg_01ABC") -> dict:
    return {
        "id": message_id,
        "type": "message",
        "role": "assistant",
        "model": "claude-sonnet-4-20250514",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 12, "output_tokens": 8},
    }


def chat_completion(content, model: str = "gpt-oss-120b-f16", completion_id: str = "chatcmpl-1") -> ChatCompletion:
    return ChatCompletion.model_validate({
        "id": completion_id,
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [{
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": content},
        }],
    })


def deterministic_reply(kwargs: dict) -> str:
    """Same messages + seed + temperature always give the same text."""
    last = kwargs["messages"][-1]["content"]
    if last == "Say OK":
        return "OK"
    if last == "2+2?":
        return "4"
    digest = hashlib.sha256(
        json.dumps([kwargs["messages"], kwargs["seed"], kwargs["temperature"]], sort_keys=True).encode()
    ).hexdigest()
    return f"reply-{digest[:12]}"


class FakeCompletions:
    """Stands in for openai's chat.completions resource."""

    def __init__(self, responder=deterministic_reply):
        self.responder = responder
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.responder(kwargs)
        if isinstance(reply, Exception):
            raise reply
        return chat_completion(reply, model=kwargs["model"], completion_id=f"chatcmpl-{len(self.calls)}")


class FakeOpenAI:
    """Minimal AsyncOpenAI replacement exposing chat.completions.create."""

    def __init__(self, responder=deterministic_reply):
        self.completions = FakeCompletions(responder)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self):
        return self.completions.calls


def anthropic_transport(text: str = "The capital of France is Paris.", status: int = 200, body=None):
    """httpx transport answering like the Messages API and recording requests."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if body is not None:
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=anthropic_message(text))

    transport = httpx.MockTransport(handler)
    transport.seen = seen
    return transport


@pytest.fixture
def witness_key():
    return generate_witness_key()


@pytest.fixture
def transport():
    return anthropic_transport()


@pytest.fixture
def local_witness(witness_key, transport):
    return LocalWitness(witness_key, transport=transport)


@pytest.fixture
def proof_verifier(local_witness):
    return Ed25519ProofVerifier.for_witness(local_witness)


@pytest.fixture
def transcript_config():
    return ClientConfig(strategy=ProviderTag.TRANSCRIPT_PROOF, api_key=ANTHROPIC_KEY)


@pytest.fixture
def reexecution_config():
    return ClientConfig(strategy=ProviderTag.RE_EXECUTION, api_key=EIGENAI_KEY)


@pytest.fixture
def fake_openai():
    return FakeOpenAI()
