"""
Verinfer Client Configuration

Explicit, immutable configuration handed to the client at construction.
Nothing in the core reads the environment; from_env() and from_file()
are edge helpers for callers that want them.
"""

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .types import ProviderTag


ANTHROPIC_API_ENDPOINT = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
EIGENAI_ENDPOINT = "https://eigenai.eigencloud.xyz/v1"

DEFAULT_ENDPOINTS = {
    ProviderTag.TRANSCRIPT_PROOF: ANTHROPIC_API_ENDPOINT,
    ProviderTag.RE_EXECUTION: EIGENAI_ENDPOINT,
}

DEFAULT_MODELS = {
    ProviderTag.TRANSCRIPT_PROOF: "claude-sonnet-4-20250514",
    ProviderTag.RE_EXECUTION: "gpt-oss-120b-f16",
}

# Environment variables consulted by from_env(), per strategy.
API_KEY_VARIABLES = {
    ProviderTag.TRANSCRIPT_PROOF: "ANTHROPIC_API_KEY",
    ProviderTag.RE_EXECUTION: "EIGENAI_API_KEY",
}


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for VerifiableInferenceClient."""
    strategy: ProviderTag
    api_key: Optional[str] = field(default=None, repr=False)
    endpoint: Optional[str] = None
    default_model: Optional[str] = None
    default_max_tokens: int = 1024
    timeout: Optional[float] = None  # seconds, enforced by the transport
    anthropic_version: str = ANTHROPIC_VERSION

    def __post_init__(self):
        object.__setattr__(self, "strategy", ProviderTag.parse(self.strategy))
        if self.endpoint:
            object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @property
    def resolved_endpoint(self) -> str:
        return self.endpoint or DEFAULT_ENDPOINTS[self.strategy]

    @property
    def resolved_model(self) -> str:
        return self.default_model or DEFAULT_MODELS[self.strategy]

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        errors = []

        if self.default_max_tokens <= 0:
            errors.append(f"default_max_tokens must be positive, got {self.default_max_tokens}")
        if self.timeout is not None and self.timeout <= 0:
            errors.append(f"timeout must be positive, got {self.timeout}")
        if not self.resolved_endpoint.startswith(("https://", "http://")):
            errors.append(f"endpoint must be an http(s) URL: {self.resolved_endpoint}")

        return errors

    def with_overrides(self, **changes) -> "ClientConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form with the API key redacted."""
        return {
            "strategy": self.strategy.value,
            "api_key": "***" if self.api_key else None,
            "endpoint": self.resolved_endpoint,
            "default_model": self.resolved_model,
            "default_max_tokens": self.default_max_tokens,
            "timeout": self.timeout,
            "anthropic_version": self.anthropic_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        if "strategy" not in data:
            raise ValueError("Configuration requires a 'strategy'")

        timeout = data.get("timeout")
        return cls(
            strategy=ProviderTag.parse(data["strategy"]),
            api_key=data.get("api_key"),
            endpoint=data.get("endpoint"),
            default_model=data.get("default_model") or data.get("model"),
            default_max_tokens=int(data.get("default_max_tokens", 1024)),
            timeout=float(timeout) if timeout is not None else None,
            anthropic_version=data.get("anthropic_version", ANTHROPIC_VERSION),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ClientConfig":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix in ('.yaml', '.yml'):
            data = yaml.safe_load(content)
        elif path.suffix == '.json':
            data = json.loads(content)
        else:
            # Try YAML first, then JSON
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {path}")

        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        strategy: Union[ProviderTag, str],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        """Build configuration from environment variables."""
        env = os.environ if environ is None else environ
        tag = ProviderTag.parse(strategy)
        timeout = env.get("VERINFER_TIMEOUT")

        return cls(
            strategy=tag,
            api_key=env.get(API_KEY_VARIABLES[tag]),
            endpoint=env.get("VERINFER_ENDPOINT"),
            default_model=env.get("VERINFER_MODEL"),
            timeout=float(timeout) if timeout else None,
        )
