"""Credentials used to authorize calls to the identity service.

Each credential wraps a google-auth token source. The token source is built
lazily, at most once per credential, and every
:meth:`BaseCredential.refresh_access_token` call performs a fresh OAuth2
refresh through it.
"""

from __future__ import annotations

import json
import os
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from pathlib import Path
from typing import IO, Any, Union

import google.auth
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from google.auth import credentials as google_credentials
from google.auth.exceptions import DefaultCredentialsError, GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import credentials as oauth2_credentials
from google.oauth2 import service_account

from . import tasks
from .errors import AccessTokenError, CredentialError
from .models import AccessToken
from .tasks import Task
from .telemetry import get_logger, traced

IDENTITY_SCOPES = (
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/identitytoolkit",
    "https://www.googleapis.com/auth/cloud-platform",
)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

CredentialSource = Union[str, bytes, os.PathLike, IO[str], IO[bytes], dict[str, Any]]


def _read_source(source: CredentialSource) -> dict[str, Any]:
    """Turn any accepted credential source into a JSON object."""
    if isinstance(source, dict):
        return dict(source)

    if isinstance(source, os.PathLike) or (
        isinstance(source, str) and not source.lstrip().startswith("{")
    ):
        try:
            raw: str | bytes = Path(source).read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Failed to read credential file: {source}"
            raise CredentialError(msg, cause=e) from e
    elif isinstance(source, (str, bytes)):
        raw = source
    elif hasattr(source, "read"):
        raw = source.read()
    else:
        msg = f"Unsupported credential source type: {type(source).__name__}"
        raise CredentialError(msg)

    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise CredentialError("Credential payload is not valid JSON", cause=e) from e

    if not isinstance(data, dict):
        raise CredentialError("Credential payload must be a JSON object")
    return data


def _require(data: dict[str, Any], field: str, kind: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value:
        msg = f"{kind} must contain a '{field}' field"
        raise CredentialError(msg, field=field)
    return value


def _check_type(data: dict[str, Any], expected: str) -> None:
    actual = data.get("type")
    if actual is not None and actual != expected:
        msg = f"Expected credential type '{expected}', got '{actual}'"
        raise CredentialError(msg, field="type")


class BaseCredential(ABC):
    """Source of OAuth2 access tokens for the identity service."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._google_credentials: google_credentials.Credentials | None = None
        self._logger = get_logger()

    @abstractmethod
    def _create_google_credentials(self) -> google_credentials.Credentials:
        """Build the google-auth token source."""

    def get_google_credentials(self) -> google_credentials.Credentials:
        """Return the token source, building it on first use.

        A failed build is not cached; the next call tries again.
        """
        with self._lock:
            if self._google_credentials is None:
                self._google_credentials = self._create_google_credentials()
            return self._google_credentials

    def fetch_token(self, credentials: google_credentials.Credentials) -> AccessToken:
        """Perform one OAuth2 refresh against the token endpoint."""
        credentials.refresh(Request())
        if not credentials.token:
            raise AccessTokenError("Token endpoint returned no access token")
        return AccessToken(value=credentials.token, expiry=credentials.expiry)

    @traced("refresh_access_token")
    def refresh_access_token(self) -> AccessToken:
        """Fetch a new access token. Blocks on network I/O.

        Raises:
            AccessTokenError: If the refresh fails.
        """
        credentials = self.get_google_credentials()
        kind = type(self).__name__
        try:
            token = self.fetch_token(credentials)
        except AccessTokenError:
            self._logger.warning("Access token refresh failed", credential=kind)
            raise
        except (GoogleAuthError, requests.RequestException, OSError) as e:
            self._logger.warning(
                "Access token refresh failed",
                credential=kind,
                error=str(e),
            )
            raise AccessTokenError(f"Failed to obtain an access token: {e}", cause=e) from e

        self._logger.debug(
            "Access token refreshed",
            credential=kind,
            expiry_ms=token.expiry_time_millis,
        )
        return token

    def get_access_token(self, executor: Executor) -> Task[AccessToken]:
        """Fetch a new access token on ``executor``."""
        return tasks.call(self.refresh_access_token, executor)


class Certificate(BaseCredential):
    """Service account key file credential.

    Accepts a file path, the JSON text itself, a file object or an already
    parsed ``dict``. The payload is validated immediately.
    """

    def __init__(self, cert: CredentialSource) -> None:
        super().__init__()
        data = _read_source(cert)
        _check_type(data, "service_account")

        self._project_id = _require(data, "project_id", "Service account credential")
        self._service_account_email = _require(
            data, "client_email", "Service account credential"
        )
        private_key_pem = _require(data, "private_key", "Service account credential")

        try:
            private_key = serialization.load_pem_private_key(
                private_key_pem.encode("utf-8"), password=None
            )
        except (ValueError, TypeError) as e:
            raise CredentialError(
                "Failed to load the service account private key",
                field="private_key",
                cause=e,
            ) from e
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise CredentialError(
                "Service account private key must be an RSA key",
                field="private_key",
            )

        self._private_key = private_key
        self._info = data

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def service_account_email(self) -> str:
        return self._service_account_email

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        return self._private_key

    def _create_google_credentials(self) -> google_credentials.Credentials:
        info = dict(self._info)
        info.setdefault("token_uri", GOOGLE_TOKEN_URI)
        return service_account.Credentials.from_service_account_info(
            info, scopes=list(IDENTITY_SCOPES)
        )

    def __repr__(self) -> str:
        return (
            f"Certificate(project_id={self._project_id!r}, "
            f"service_account_email={self._service_account_email!r})"
        )


class ApplicationDefault(BaseCredential):
    """Credential resolved from the environment on first use."""

    def __init__(self) -> None:
        super().__init__()
        self._project_id: str | None = None

    @property
    def project_id(self) -> str | None:
        """Project reported by credential discovery; resolves on first access.

        Raises:
            CredentialError: If no application default credentials are found.
        """
        self.get_google_credentials()
        return self._project_id

    def _create_google_credentials(self) -> google_credentials.Credentials:
        try:
            credentials, project_id = google.auth.default(scopes=list(IDENTITY_SCOPES))
        except DefaultCredentialsError as e:
            raise CredentialError(
                f"Failed to resolve application default credentials: {e}",
                cause=e,
            ) from e
        self._project_id = project_id
        return credentials


class RefreshToken(BaseCredential):
    """OAuth2 refresh token credential (``authorized_user`` JSON)."""

    def __init__(self, refresh_token: CredentialSource) -> None:
        super().__init__()
        data = _read_source(refresh_token)
        _check_type(data, "authorized_user")

        self._client_id = _require(data, "client_id", "Refresh token credential")
        self._client_secret = _require(data, "client_secret", "Refresh token credential")
        self._refresh_token = _require(data, "refresh_token", "Refresh token credential")

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def client_secret(self) -> str:
        return self._client_secret

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def _create_google_credentials(self) -> google_credentials.Credentials:
        return oauth2_credentials.Credentials(
            token=None,
            refresh_token=self._refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self._client_id,
            client_secret=self._client_secret,
            scopes=list(IDENTITY_SCOPES),
        )

    def __repr__(self) -> str:
        return f"RefreshToken(client_id={self._client_id!r})"
