"""Custom token signing for Identity Admin SDK.

Custom tokens are RS256 JWTs signed with a service account key. Client SDKs
exchange them for ID tokens.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from ..errors import TokenCreationError
from ..models import MAX_UID_LENGTH

CUSTOM_TOKEN_AUDIENCE = (
    "https://identitytoolkit.googleapis.com/"
    "google.identity.identitytoolkit.v1.IdentityToolkit"
)
CUSTOM_TOKEN_LIFETIME_SECONDS = 3600
ALGORITHM = "RS256"

RESERVED_CLAIMS = frozenset({
    "acr", "amr", "at_hash", "aud", "auth_time", "azp", "cnf", "c_hash",
    "exp", "firebase", "iat", "iss", "jti", "nbf", "nonce", "sub",
})


def validate_uid(uid: Any) -> str:
    """Check that ``uid`` is a non-empty string of at most 128 characters."""
    if not isinstance(uid, str) or not uid:
        raise ValueError("uid must be a non-empty string")
    if len(uid) > MAX_UID_LENGTH:
        msg = f"uid must not be longer than {MAX_UID_LENGTH} characters"
        raise ValueError(msg)
    return uid


def validate_developer_claims(developer_claims: Any) -> dict[str, Any]:
    """Check developer claims and return them as a dict (empty if ``None``)."""
    if developer_claims is None:
        return {}
    if not isinstance(developer_claims, dict):
        raise ValueError("developer_claims must be a dict")

    reserved = sorted(RESERVED_CLAIMS.intersection(developer_claims))
    if reserved:
        msg = f"developer_claims must not contain reserved claims: {', '.join(reserved)}"
        raise ValueError(msg)

    try:
        json.dumps(developer_claims)
    except (TypeError, ValueError) as e:
        raise ValueError(f"developer_claims must be JSON serializable: {e}") from e
    return dict(developer_claims)


class CustomTokenFactory:
    """Builds and signs custom tokens."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def build_payload(
        self,
        uid: str,
        developer_claims: dict[str, Any] | None,
        service_account_email: str,
    ) -> dict[str, Any]:
        """Build the claim set of a custom token."""
        uid = validate_uid(uid)
        claims = validate_developer_claims(developer_claims)

        issued_at = int(self._clock())
        payload: dict[str, Any] = {
            "iss": service_account_email,
            "sub": service_account_email,
            "aud": CUSTOM_TOKEN_AUDIENCE,
            "iat": issued_at,
            "exp": issued_at + CUSTOM_TOKEN_LIFETIME_SECONDS,
            "uid": uid,
        }
        if claims:
            payload["claims"] = claims
        return payload

    def create_signed_custom_token(
        self,
        uid: str,
        developer_claims: dict[str, Any] | None,
        service_account_email: str,
        private_key: rsa.RSAPrivateKey,
    ) -> str:
        """Create a signed custom token for ``uid``.

        Raises:
            ValueError: If ``uid`` or ``developer_claims`` are invalid.
            TokenCreationError: If signing fails.
        """
        payload = self.build_payload(uid, developer_claims, service_account_email)
        try:
            return jwt.encode(
                payload,
                private_key,
                algorithm=ALGORITHM,
                headers={"typ": "JWT"},
            )
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            raise TokenCreationError(cause=e) from e
