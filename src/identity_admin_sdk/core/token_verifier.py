"""ID token verification for Identity Admin SDK.

Checks the header, signature and standard claims of ID tokens issued by the
identity service. Each failed check raises its own error class.
"""

from __future__ import annotations

from typing import Any

import jwt

from ..errors import (
    ExpiredIdTokenError,
    IdTokenNotYetValidError,
    IdTokenParseError,
    IdTokenVerificationError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidSubjectError,
)
from ..models import MAX_UID_LENGTH, VerifiedToken
from ..public_keys import PublicKeyManager
from ..telemetry import trace_operation
from .token_factory import ALGORITHM, CUSTOM_TOKEN_AUDIENCE

ISSUER_PREFIX = "https://securetoken.google.com/"
REQUIRED_CLAIMS = ["exp", "iat", "aud", "iss", "sub"]


class IdTokenVerifier:
    """Verifies ID tokens for a single project."""

    def __init__(
        self,
        project_id: str,
        public_key_manager: PublicKeyManager,
        *,
        clock_skew_seconds: int = 300,
    ) -> None:
        """Initialize ID token verifier.

        Args:
            project_id: Project the tokens must be issued for.
            public_key_manager: Source of signing keys.
            clock_skew_seconds: Tolerance applied to ``exp`` and ``iat``.
        """
        if not project_id:
            raise ValueError("project_id must not be empty")
        self.project_id = project_id
        self.issuer = f"{ISSUER_PREFIX}{project_id}"
        self.clock_skew_seconds = clock_skew_seconds
        self._public_key_manager = public_key_manager

    def verify(self, token: str) -> VerifiedToken:
        """Verify ``token`` and return its claims.

        Raises:
            ValueError: If ``token`` is not a non-empty string.
            IdTokenParseError: If the token is not a well-formed JWT.
            IdTokenVerificationError: If any check fails; the subclass names
                the failing check.
            PublicKeyFetchError: If the signing keys cannot be fetched.
        """
        if not isinstance(token, str) or not token:
            raise ValueError("ID token must be a non-empty string")

        with trace_operation("verify_id_token", attributes={"project_id": self.project_id}):
            header, unverified = self._parse(token)
            kid = self._check_header(header, unverified)

            key = self._public_key_manager.get_public_keys().get(kid)
            if key is None:
                raise InvalidSignatureError(
                    f"ID token has kid {kid!r} which does not match any known public key",
                    details={"kid": kid},
                )

            claims = self._decode(token, key)
            self._check_subject(claims.get("sub"))
            return VerifiedToken.from_claims(claims)

    def get_unverified_header(self, token: str) -> dict[str, Any]:
        """Get token header without verification.

        Raises:
            IdTokenParseError: If token format is invalid.
        """
        try:
            return jwt.get_unverified_header(token)
        except jwt.exceptions.InvalidTokenError as e:
            raise IdTokenParseError(f"Invalid token format: {e}", cause=e) from e

    def _parse(self, token: str) -> tuple[dict[str, Any], dict[str, Any]]:
        header = self.get_unverified_header(token)
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.exceptions.InvalidTokenError as e:
            raise IdTokenParseError(f"Invalid token payload: {e}", cause=e) from e
        return header, payload

    def _check_header(self, header: dict[str, Any], payload: dict[str, Any]) -> str:
        kid = header.get("kid")
        if not kid:
            if payload.get("aud") == CUSTOM_TOKEN_AUDIENCE:
                raise InvalidAudienceError(
                    "verify_id_token() expects an ID token, but was given a custom token"
                )
            raise IdTokenVerificationError("ID token has no 'kid' header")

        alg = header.get("alg")
        if alg != ALGORITHM:
            raise IdTokenVerificationError(
                f"ID token has incorrect algorithm. Expected {ALGORITHM!r} but got {alg!r}",
                details={"alg": alg},
            )
        return kid

    def _decode(self, token: str, key: Any) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                audience=self.project_id,
                issuer=self.issuer,
                leeway=self.clock_skew_seconds,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.exceptions.InvalidSignatureError as e:
            raise InvalidSignatureError("ID token has an invalid signature", cause=e) from e
        except jwt.exceptions.ExpiredSignatureError as e:
            raise ExpiredIdTokenError("ID token has expired", cause=e) from e
        except jwt.exceptions.ImmatureSignatureError as e:
            raise IdTokenNotYetValidError(
                "ID token is not yet valid (issued in the future)", cause=e
            ) from e
        except jwt.exceptions.InvalidAudienceError as e:
            raise InvalidAudienceError(
                f"ID token has incorrect audience. Expected {self.project_id!r}",
                cause=e,
            ) from e
        except jwt.exceptions.InvalidIssuerError as e:
            raise InvalidIssuerError(
                f"ID token has incorrect issuer. Expected {self.issuer!r}",
                cause=e,
            ) from e
        except jwt.exceptions.MissingRequiredClaimError as e:
            if e.claim == "sub":
                raise InvalidSubjectError("ID token has no 'sub' claim", cause=e) from e
            raise IdTokenVerificationError(
                f"ID token is missing the {e.claim!r} claim", cause=e
            ) from e
        except jwt.exceptions.InvalidSubjectError as e:
            raise InvalidSubjectError(f"ID token has an invalid subject: {e}", cause=e) from e
        except jwt.exceptions.InvalidTokenError as e:
            raise IdTokenVerificationError(f"Invalid ID token: {e}", cause=e) from e

    def _check_subject(self, subject: Any) -> None:
        if not isinstance(subject, str) or not subject:
            raise InvalidSubjectError("ID token has an empty or non-string 'sub' claim")
        if len(subject) > MAX_UID_LENGTH:
            raise InvalidSubjectError(
                f"ID token has a 'sub' claim longer than {MAX_UID_LENGTH} characters"
            )
