"""Unit tests for custom token signing."""

from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from identity_admin_sdk.core.token_factory import (
    CUSTOM_TOKEN_AUDIENCE,
    RESERVED_CLAIMS,
    CustomTokenFactory,
)
from identity_admin_sdk.errors import TokenCreationError

EMAIL = "signer@mock-project-id.iam.gserviceaccount.com"


def decode(token: str, key: rsa.RSAPrivateKey) -> dict[str, Any]:
    return jwt.decode(
        token,
        key.public_key(),
        algorithms=["RS256"],
        audience=CUSTOM_TOKEN_AUDIENCE,
        options={"verify_exp": False, "verify_iat": False},
    )


class TestCustomTokenFactory:
    """Tests for CustomTokenFactory."""

    def test_payload(self, rsa_private_key: rsa.RSAPrivateKey) -> None:
        factory = CustomTokenFactory(clock=lambda: 1_000_000.7)

        token = factory.create_signed_custom_token("user-1", None, EMAIL, rsa_private_key)
        payload = decode(token, rsa_private_key)

        assert payload == {
            "iss": EMAIL,
            "sub": EMAIL,
            "aud": CUSTOM_TOKEN_AUDIENCE,
            "iat": 1_000_000,
            "exp": 1_003_600,
            "uid": "user-1",
        }

    def test_header(self, rsa_private_key: rsa.RSAPrivateKey) -> None:
        token = CustomTokenFactory().create_signed_custom_token(
            "user-1", None, EMAIL, rsa_private_key
        )
        header = jwt.get_unverified_header(token)

        assert header["alg"] == "RS256"
        assert header["typ"] == "JWT"

    def test_developer_claims(self, rsa_private_key: rsa.RSAPrivateKey) -> None:
        claims = {"premium": True, "subscription": "silver"}

        token = CustomTokenFactory().create_signed_custom_token(
            "user-1", claims, EMAIL, rsa_private_key
        )

        assert decode(token, rsa_private_key)["claims"] == claims

    def test_empty_claims_omitted(self, rsa_private_key: rsa.RSAPrivateKey) -> None:
        token = CustomTokenFactory().create_signed_custom_token(
            "user-1", {}, EMAIL, rsa_private_key
        )

        assert "claims" not in decode(token, rsa_private_key)

    @pytest.mark.parametrize("uid", ["", None, 123, "x" * 129])
    def test_invalid_uid(self, rsa_private_key: rsa.RSAPrivateKey, uid: Any) -> None:
        with pytest.raises(ValueError):
            CustomTokenFactory().create_signed_custom_token(uid, None, EMAIL, rsa_private_key)

    def test_uid_at_limit(self, rsa_private_key: rsa.RSAPrivateKey) -> None:
        token = CustomTokenFactory().create_signed_custom_token(
            "x" * 128, None, EMAIL, rsa_private_key
        )
        assert decode(token, rsa_private_key)["uid"] == "x" * 128

    @pytest.mark.parametrize("claim", sorted(RESERVED_CLAIMS))
    def test_reserved_claims_rejected(
        self, rsa_private_key: rsa.RSAPrivateKey, claim: str
    ) -> None:
        with pytest.raises(ValueError, match=claim):
            CustomTokenFactory().create_signed_custom_token(
                "user-1", {claim: "value"}, EMAIL, rsa_private_key
            )

    def test_non_serializable_claims_rejected(
        self, rsa_private_key: rsa.RSAPrivateKey
    ) -> None:
        with pytest.raises(ValueError):
            CustomTokenFactory().create_signed_custom_token(
                "user-1", {"obj": object()}, EMAIL, rsa_private_key
            )

    def test_non_dict_claims_rejected(self, rsa_private_key: rsa.RSAPrivateKey) -> None:
        with pytest.raises(ValueError):
            CustomTokenFactory().create_signed_custom_token(
                "user-1", ["premium"], EMAIL, rsa_private_key  # type: ignore[arg-type]
            )

    def test_signing_failure(self) -> None:
        with pytest.raises(TokenCreationError):
            CustomTokenFactory().create_signed_custom_token(
                "user-1", None, EMAIL, "not-a-key"  # type: ignore[arg-type]
            )
