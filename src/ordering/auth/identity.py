"""Bearer-token verification and caller identity.

Tokens are compact JWS strings signed with RS256 by the user service. Only
the public key is known here, in PEM form. A verified token yields an
Identity carrying the caller's subject id and roles; every orchestrator
method receives that Identity explicitly.
"""

import base64
import binascii
import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ordering.config import get_settings
from ordering.errors import AuthenticationFailed

logger = structlog.get_logger(__name__)

USER_ID_CLAIM = "userId"
USER_TYPE_CLAIM = "userType"
ADMIN_ROLE = "ROLE_ADMIN"


@dataclass(frozen=True)
class Identity:
    subject_id: str
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


def _b64url_decode(segment: str) -> bytes:
    padding_needed = -len(segment) % 4
    return base64.urlsafe_b64decode(segment + "=" * padding_needed)


def _roles_from(claim) -> frozenset[str]:
    if isinstance(claim, str) and claim.strip():
        return frozenset({f"ROLE_{claim.strip().upper()}"})
    if isinstance(claim, list | tuple):
        return frozenset(f"ROLE_{str(value).strip().upper()}" for value in claim if str(value).strip())
    logger.warning("Token carries no usable userType claim; granting no roles", claim_type=type(claim).__name__)
    return frozenset()


class TokenVerifier:
    """Verifies RS256 tokens against a single public key."""

    def __init__(self, public_key_pem: str, clock: Callable[[], float] = time.time) -> None:
        key = serialization.load_pem_public_key(public_key_pem.encode())
        if not isinstance(key, rsa.RSAPublicKey):
            raise ValueError("Token verification key must be an RSA public key")
        self._public_key = key
        self._clock = clock

    def validate(self, token: str | None) -> dict:
        """Check structure, algorithm, signature and time claims.

        Returns the decoded claims. Raises AuthenticationFailed otherwise.
        """
        if not token or not token.strip():
            raise AuthenticationFailed("Authentication token is missing")

        parts = token.strip().split(".")
        if len(parts) != 3:
            raise AuthenticationFailed("Malformed authentication token")
        header_b64, payload_b64, signature_b64 = parts

        try:
            header = json.loads(_b64url_decode(header_b64))
            claims = json.loads(_b64url_decode(payload_b64))
            signature = _b64url_decode(signature_b64)
        except (binascii.Error, ValueError) as exc:
            raise AuthenticationFailed("Malformed authentication token") from exc
        if not isinstance(header, dict) or not isinstance(claims, dict):
            raise AuthenticationFailed("Malformed authentication token")

        if header.get("alg") != "RS256":
            raise AuthenticationFailed(f"Unsupported token algorithm: {header.get('alg')}")

        try:
            self._public_key.verify(
                signature,
                f"{header_b64}.{payload_b64}".encode(),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except InvalidSignature as exc:
            raise AuthenticationFailed("Invalid token signature") from exc

        now = self._clock()
        exp = claims.get("exp")
        if exp is not None and (not isinstance(exp, int | float) or exp <= now):
            raise AuthenticationFailed("Authentication token has expired")
        nbf = claims.get("nbf")
        if nbf is not None and (not isinstance(nbf, int | float) or nbf > now):
            raise AuthenticationFailed("Authentication token is not yet valid")

        return claims

    def extract_identity(self, token: str | None) -> Identity:
        claims = self.validate(token)

        user_id = claims.get(USER_ID_CLAIM)
        if user_id is None or not str(user_id).strip():
            raise AuthenticationFailed("Authentication token carries no user id")

        return Identity(subject_id=str(user_id).strip(), roles=_roles_from(claims.get(USER_TYPE_CLAIM)))


_current_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    """Return the active verifier, built from TOKEN_PUBLIC_KEY_PEM on first use."""
    global _current_verifier
    if _current_verifier is None:
        public_key_pem = get_settings().token_public_key_pem
        if not public_key_pem:
            raise RuntimeError("TOKEN_PUBLIC_KEY_PEM is not configured")
        _current_verifier = TokenVerifier(public_key_pem)
    return _current_verifier


def set_verifier(verifier: TokenVerifier) -> None:
    """Override the active verifier (useful for tests)."""
    global _current_verifier
    _current_verifier = verifier


def reset_verifier() -> None:
    global _current_verifier
    _current_verifier = None
