"""
Verification credential issuer.

A passing validation is stamped with a signed token binding the source
URL, the validation timestamp and the spec version. The default issuer
produces an HS256 JWT so listing consumers can verify it with any JWT
library; verify_token() is the in-process counterpart.
"""

import base64
import hashlib
import hmac
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from agentmanifest.config import ValidatorConfig
from agentmanifest.errors import CredentialError

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(s: str) -> bytes:
    pad = "=" * ((4 - (len(s) % 4)) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("ascii"))


def _encode_segment(obj: Dict[str, Any]) -> str:
    blob = json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return _b64url_encode(blob)


class CredentialIssuer(ABC):
    """Signs an opaque verification credential for a passing validation"""

    @abstractmethod
    def issue(self, source: str, validated_at: str, spec_version: str) -> str:
        raise NotImplementedError("Issuer must implement issue")


class HmacCredentialIssuer(CredentialIssuer):
    """HS256 JWT issuer keyed by a shared secret"""

    def __init__(self, secret: str, validity_days: int = 90, issuer: str = "agentmanifest-validator"):
        if not secret:
            raise ValueError("secret cannot be empty")
        self._secret = secret.encode("utf-8")
        self.validity_seconds = validity_days * 86400
        self.issuer = issuer

    @classmethod
    def from_config(cls, config: ValidatorConfig) -> "HmacCredentialIssuer":
        return cls(
            secret=config.jwt_secret,
            validity_days=config.token_validity_days,
            issuer=config.token_issuer,
        )

    def _sign(self, signing_input: str) -> str:
        sig = hmac.new(self._secret, signing_input.encode("ascii"), hashlib.sha256).digest()
        return _b64url_encode(sig)

    def issue(self, source: str, validated_at: str, spec_version: str, now: Optional[int] = None) -> str:
        issued_at = int(time.time()) if now is None else now
        claims = {
            "url": source,
            "validated_at": validated_at,
            "spec_version": spec_version,
            "iss": self.issuer,
            "iat": issued_at,
            "exp": issued_at + self.validity_seconds,
        }
        signing_input = f"{_encode_segment(_HEADER)}.{_encode_segment(claims)}"
        return f"{signing_input}.{self._sign(signing_input)}"

    def verify_token(self, token: str, now: Optional[int] = None) -> Dict[str, Any]:
        """
        Verify a token issued by this issuer.

        Returns:
            The token claims

        Raises:
            CredentialError: If the token is malformed, tampered with, or expired
        """
        try:
            header_part, claims_part, sig = token.split(".")
        except (AttributeError, ValueError) as e:
            raise CredentialError("malformed token") from e

        expected = self._sign(f"{header_part}.{claims_part}")
        if not hmac.compare_digest(expected, sig):
            raise CredentialError("bad signature")

        try:
            header = json.loads(_b64url_decode(header_part))
            claims = json.loads(_b64url_decode(claims_part))
        except ValueError as e:
            raise CredentialError("malformed token") from e

        if not isinstance(header, dict) or header.get("alg") != "HS256" or not isinstance(claims, dict):
            raise CredentialError("unsupported token")

        current = int(time.time()) if now is None else now
        if current >= claims.get("exp", 0):
            raise CredentialError("token expired")
        if claims.get("iss") != self.issuer:
            raise CredentialError(f"unexpected issuer: {claims.get('iss')}")

        return claims
