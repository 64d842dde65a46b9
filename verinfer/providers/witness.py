"""
Verinfer Transcript Witnesses

Collaborator contracts for the transcript-proof strategy, plus a
reference Ed25519 witness for self-hosted deployments and tests.

The witness issues the provider request on the caller's behalf and signs
a claim binding the public request parameters to the extracted response.
Hidden headers (API keys) are sent upstream but never enter the claim.
"""

import base64
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import httpx
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from ..errors import InferenceTimeout, ProofGenerationFailed
from ..extraction import ExtractionRule, extract
from ..result import ClaimData, TranscriptProofPayload, WitnessInfo

logger = logging.getLogger(__name__)

DEFAULT_WITNESS_URL = "local://verinfer-witness"


class TranscriptWitness(ABC):
    """Issues a request through a TLS witness and returns its proof bundle."""

    @abstractmethod
    async def issue_witnessed_request(
        self,
        url: str,
        http_options: Mapping[str, Any],
        hidden_headers: Mapping[str, str],
        rule: ExtractionRule,
    ) -> Optional[TranscriptProofPayload]:
        """
        Args:
            url: Provider endpoint
            http_options: method, public headers, body and any
                witness-specific options (ignored by witnesses that lack them)
            hidden_headers: Headers sent upstream but never embedded in the proof
            rule: Extraction rule the witness applies to the response body

        Returns:
            Proof bundle, or None when the witness produced no proof
        """
        pass


class ProofVerifier(ABC):
    """Checks a witnessed proof bundle. May raise on malformed input."""

    @abstractmethod
    async def verify_witnessed_proof(self, proof: TranscriptProofPayload) -> bool:
        pass


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def claim_identifier(claim: ClaimData) -> str:
    """SHA-256 over the claim's provider, parameters and context."""
    data = "\n".join([claim.provider, claim.parameters, claim.context])
    return "0x" + hashlib.sha256(data.encode()).hexdigest()


def _signed_message(claim: ClaimData, identifier: str) -> bytes:
    return f"{identifier}\n{claim.owner}\n{claim.timestamp_s}\n{claim.epoch}".encode()


def encode_signature(signature: bytes) -> str:
    return "0x" + signature.hex()


def decode_signature(signature: str) -> bytes:
    """Raises ValueError for anything that is not 0x-prefixed hex."""
    if not signature.startswith("0x"):
        raise ValueError(f"Signature is not 0x-prefixed hex: {signature[:16]!r}")
    return bytes.fromhex(signature[2:])


def generate_witness_key() -> ed25519.Ed25519PrivateKey:
    return ed25519.Ed25519PrivateKey.generate()


def public_key_b64(
    key: Union[ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey],
) -> str:
    """Base64 raw public key, used as the witness id."""
    if isinstance(key, ed25519.Ed25519PrivateKey):
        key = key.public_key()
    return base64.b64encode(key.public_bytes_raw()).decode()


def save_private_key(key: ed25519.Ed25519PrivateKey, path: Union[str, Path]) -> None:
    """Write the raw 32-byte private key."""
    raw = key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    Path(path).write_bytes(raw)


def load_private_key(path: Union[str, Path]) -> ed25519.Ed25519PrivateKey:
    """Load a raw 32-byte or unencrypted PEM Ed25519 private key."""
    data = Path(path).read_bytes()

    if data.lstrip().startswith(b"-----BEGIN"):
        key = serialization.load_pem_private_key(data, password=None)
        if not isinstance(key, ed25519.Ed25519PrivateKey):
            raise ValueError(f"Not an Ed25519 private key: {path}")
        return key

    return ed25519.Ed25519PrivateKey.from_private_bytes(data)


class LocalWitness(TranscriptWitness):
    """
    Self-hosted witness: issues the request with httpx and signs the claim.

    Unlike a TLS witness network this trusts the machine it runs on, so
    its proofs are only as strong as the custody of its signing key.
    """

    def __init__(
        self,
        private_key: ed25519.Ed25519PrivateKey,
        witness_url: str = DEFAULT_WITNESS_URL,
        owner: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._private_key = private_key
        self._witness_url = witness_url
        self._owner = owner
        self._timeout = timeout
        self._transport = transport

    @property
    def witness_id(self) -> str:
        return public_key_b64(self._private_key)

    async def issue_witnessed_request(
        self,
        url: str,
        http_options: Mapping[str, Any],
        hidden_headers: Mapping[str, str],
        rule: ExtractionRule,
    ) -> Optional[TranscriptProofPayload]:
        method = http_options.get("method", "POST")
        public_headers = dict(http_options.get("headers") or {})
        body = http_options.get("body")

        logger.debug("Witnessing %s %s", method, url)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    headers={**public_headers, **hidden_headers},
                    content=body,
                )
        except httpx.TimeoutException as e:
            raise InferenceTimeout(f"Timed out waiting for {url}", cause=e)
        except httpx.RequestError as e:
            raise ProofGenerationFailed(f"Request to {url} failed: {e}", cause=e)

        if response.status_code >= 400:
            raise ProofGenerationFailed(
                f"Provider returned HTTP {response.status_code}: {response.text[:200]}"
            )

        extracted = extract(response.text, rule)

        claim = ClaimData(
            provider="http",
            parameters=canonical_json({
                "url": url,
                "method": method,
                "headers": public_headers,
                "body": body or "",
                "responseMatches": [rule.to_wire()],
            }),
            context=canonical_json({"extractedParameters": {rule.group: extracted}}),
            owner=self._owner,
            timestamp_s=int(time.time()),
            epoch=1,
        )
        identifier = claim_identifier(claim)
        claim = replace(claim, identifier=identifier)
        signature = self._private_key.sign(_signed_message(claim, identifier))

        return TranscriptProofPayload(
            identifier=identifier,
            claim_data=claim,
            signatures=(encode_signature(signature),),
            witnesses=(WitnessInfo(id=self.witness_id, url=self._witness_url),),
            extracted_parameter_values={rule.group: extracted},
        )


class Ed25519ProofVerifier(ProofVerifier):
    """
    Verifies bundles signed by trusted Ed25519 witnesses.

    A bundle is valid when its identifier matches the claim, the extracted
    values match the signed context, and every signature verifies under a
    trusted witness key.
    """

    def __init__(self, trusted_keys: Iterable[str]):
        self._trusted: Dict[str, ed25519.Ed25519PublicKey] = {
            key: ed25519.Ed25519PublicKey.from_public_bytes(base64.b64decode(key))
            for key in trusted_keys
        }

    @classmethod
    def for_witness(cls, witness: LocalWitness) -> "Ed25519ProofVerifier":
        return cls([witness.witness_id])

    async def verify_witnessed_proof(self, proof: TranscriptProofPayload) -> bool:
        claim = proof.claim_data
        identifier = claim_identifier(claim)

        if proof.identifier != identifier or claim.identifier != identifier:
            logger.debug("Proof identifier does not match its claim")
            return False

        context = json.loads(claim.context)
        if context.get("extractedParameters") != proof.extracted_parameter_values:
            logger.debug("Extracted values differ from the signed context")
            return False

        if not proof.signatures or len(proof.signatures) != len(proof.witnesses):
            return False

        message = _signed_message(claim, identifier)
        for signature, witness in zip(proof.signatures, proof.witnesses):
            public_key = self._trusted.get(witness.id)
            if public_key is None:
                logger.debug("Untrusted witness %s", witness.id)
                return False
            try:
                public_key.verify(decode_signature(signature), message)
            except InvalidSignature:
                return False

        return True
