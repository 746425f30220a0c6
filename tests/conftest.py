"""
Shared test fixtures for Identity Admin SDK tests.

Provides RSA keys, service account payloads, certificate maps and
mock-transport HTTP clients. Nothing here touches the network.
"""

import datetime
import time
from typing import Any, Callable
from unittest.mock import patch

import httpx
import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from identity_admin_sdk.app import App
from identity_admin_sdk.config import AppOptions, TelemetryConfig
from identity_admin_sdk.credentials import Certificate
from identity_admin_sdk.executors import DefaultThreadManager
from identity_admin_sdk.models import AccessToken
from identity_admin_sdk.public_keys import PublicKeyManager

PROJECT_ID = "mock-project-id"
CLIENT_EMAIL = "identity-admin@mock-project-id.iam.gserviceaccount.com"
KEY_ID = "test-key-1"
ACCESS_TOKEN = "test-access-token"


def generate_rsa_key() -> rsa.RSAPrivateKey:
    """Generate a 2048-bit RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def private_key_to_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


def self_signed_certificate_pem(key: rsa.RSAPrivateKey) -> str:
    """Create a self-signed x509 certificate for ``key``."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.datetime.now(datetime.UTC)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode("utf-8")


def mock_client(
    handler: Callable[[httpx.Request], httpx.Response],
    base_url: str = "",
) -> httpx.Client:
    """Create an httpx client backed by ``handler``."""
    return httpx.Client(base_url=base_url, transport=httpx.MockTransport(handler))


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Provide an RSA key shared by the whole test session."""
    return generate_rsa_key()


@pytest.fixture(scope="session")
def other_rsa_private_key() -> rsa.RSAPrivateKey:
    """Provide a second, unrelated RSA key."""
    return generate_rsa_key()


@pytest.fixture(scope="session")
def certificate_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return self_signed_certificate_pem(rsa_private_key)


@pytest.fixture(scope="session")
def public_keys_payload(certificate_pem: str) -> dict[str, str]:
    """Provide a ``{kid: certificate}`` map as served by the key endpoint."""
    return {KEY_ID: certificate_pem}


@pytest.fixture
def service_account_info(rsa_private_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    """Provide a service account key file payload."""
    return {
        "type": "service_account",
        "project_id": PROJECT_ID,
        "private_key_id": "0123456789abcdef",
        "private_key": private_key_to_pem(rsa_private_key),
        "client_email": CLIENT_EMAIL,
        "client_id": "1234567890",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


@pytest.fixture
def refresh_token_info() -> dict[str, Any]:
    """Provide an authorized-user payload."""
    return {
        "type": "authorized_user",
        "client_id": "mock.apps.googleusercontent.com",
        "client_secret": "mock-secret",
        "refresh_token": "mock-refresh-token",
    }


@pytest.fixture
def options() -> AppOptions:
    """Provide app options with telemetry disabled."""
    return AppOptions(
        telemetry=TelemetryConfig(
            enabled=False,
            service_name="test-sdk",
            trace_requests=False,
        ),
    )


@pytest.fixture
def certificate(service_account_info: dict[str, Any]) -> Certificate:
    """Provide a certificate credential whose token refresh is stubbed."""
    credential = Certificate(service_account_info)
    with patch.object(
        credential,
        "refresh_access_token",
        return_value=AccessToken(value=ACCESS_TOKEN),
    ):
        yield credential


@pytest.fixture
def thread_manager() -> DefaultThreadManager:
    return DefaultThreadManager()


@pytest.fixture
def app(
    certificate: Certificate,
    options: AppOptions,
    thread_manager: DefaultThreadManager,
) -> App:
    """Provide an app that is deleted after the test."""
    instance = App(certificate, options, name="test-app", thread_manager=thread_manager)
    yield instance
    instance.delete()


@pytest.fixture
def public_key_manager(public_keys_payload: dict[str, str]) -> PublicKeyManager:
    """Provide a key manager serving the session certificate."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=public_keys_payload,
            headers={"Cache-Control": "public, max-age=3600"},
        )

    return PublicKeyManager(http_client=mock_client(handler))


@pytest.fixture
def id_token_factory(
    rsa_private_key: rsa.RSAPrivateKey,
) -> Callable[..., str]:
    """Provide a callable that signs ID tokens for the mock project."""

    def make(
        uid: str = "user-123",
        *,
        key: rsa.RSAPrivateKey | None = None,
        kid: str | None = KEY_ID,
        algorithm: str = "RS256",
        issued_at: int | None = None,
        lifetime: int = 3600,
        **overrides: Any,
    ) -> str:
        now = int(time.time()) if issued_at is None else issued_at
        payload: dict[str, Any] = {
            "iss": f"https://securetoken.google.com/{PROJECT_ID}",
            "aud": PROJECT_ID,
            "sub": uid,
            "iat": now,
            "exp": now + lifetime,
            "auth_time": now,
        }
        payload.update(overrides)
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {"kid": kid} if kid else {}
        if algorithm == "HS256":
            return jwt.encode(payload, "s" * 32, algorithm=algorithm, headers=headers)
        return jwt.encode(payload, key or rsa_private_key, algorithm=algorithm, headers=headers)

    return make


@pytest.fixture
def user_response() -> dict[str, Any]:
    """Provide a getAccountInfo response with one user."""
    return {
        "kind": "identitytoolkit#GetAccountInfoResponse",
        "users": [
            {
                "localId": "user-123",
                "email": "user@example.com",
                "emailVerified": True,
                "displayName": "Test User",
                "photoUrl": "https://example.com/photo.png",
                "disabled": False,
                "createdAt": "1500000000000",
                "lastLoginAt": "1500000100000",
                "providerUserInfo": [
                    {
                        "providerId": "password",
                        "rawId": "user@example.com",
                        "email": "user@example.com",
                        "displayName": "Test User",
                    }
                ],
            }
        ],
    }
