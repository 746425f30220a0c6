"""Identity Admin SDK blocking client.

Provides custom token signing, ID token verification and user management
for a single :class:`~identity_admin_sdk.app.App`.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Self

import httpx

from .config import DEFAULT_PUBLIC_KEYS_URL
from .core.http_executor import HTTPExecutor
from .core.token_factory import CustomTokenFactory, validate_developer_claims, validate_uid
from .core.token_verifier import IdTokenVerifier
from .credentials import Certificate
from .errors import AccessTokenError, CredentialError, InvalidCredentialError
from .http import create_http_client
from .models import CreateRequest, UpdateRequest, UserRecord, VerifiedToken
from .public_keys import PublicKeyManager, get_default_public_key_manager
from .telemetry import get_logger, trace_operation
from .user_mgt import UserManager

if TYPE_CHECKING:
    from .app import App


def check_id_token(token: Any) -> str:
    if not isinstance(token, str) or not token:
        raise ValueError("ID token must be a non-empty string")
    return token


def check_email(email: Any) -> str:
    if not isinstance(email, str) or not email:
        raise ValueError("email must be a non-empty string")
    return email


def check_request(request: Any, expected: type) -> None:
    if request is None:
        msg = f"{expected.__name__} must not be None"
        raise TypeError(msg)
    if not isinstance(request, expected):
        msg = f"Expected {expected.__name__}, got {type(request).__name__}"
        raise TypeError(msg)


def require_certificate(app: App, operation: str) -> Certificate:
    """Return the app credential if it is a service account certificate."""
    credential = app.credential
    if not isinstance(credential, Certificate):
        msg = f"Must initialize the app with a service account certificate to call {operation}()"
        raise InvalidCredentialError(msg)
    return credential


class AuthClient:
    """Blocking identity client bound to one app."""

    SERVICE_KEY = "auth"

    def __init__(
        self,
        app: App,
        *,
        public_key_manager: PublicKeyManager | None = None,
        http_client: httpx.Client | None = None,
        token_factory: CustomTokenFactory | None = None,
    ) -> None:
        """Initialize client.

        Args:
            app: App providing the credential and options.
            public_key_manager: Key cache for ID token verification.
            http_client: Client for user-management calls.
            token_factory: Custom token factory.
        """
        self._app = app
        options = app.options
        self._owns_http = http_client is None
        self._http = HTTPExecutor(http_client or create_http_client(options))
        self._user_manager = UserManager(self._http)
        self._public_key_manager = public_key_manager
        self._token_factory = token_factory or CustomTokenFactory()
        self._verifier: IdTokenVerifier | None = None
        self._lock = threading.Lock()
        self._logger = get_logger()

    @classmethod
    def for_app(cls, app: App) -> Self:
        """Return the client shared by every caller of ``app``."""
        return app.get_service(cls.SERVICE_KEY, cls)

    @property
    def app(self) -> App:
        return self._app

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http:
            self._http.close()

    def create_custom_token(
        self,
        uid: str,
        developer_claims: dict[str, Any] | None = None,
    ) -> str:
        """Create a signed custom token for ``uid``.

        Raises:
            ValueError: If ``uid`` or ``developer_claims`` are invalid.
            InvalidCredentialError: If the app has no service account certificate.
            TokenCreationError: If signing fails.
        """
        validate_uid(uid)
        validate_developer_claims(developer_claims)
        credential = require_certificate(self._app, "create_custom_token")

        with trace_operation("create_custom_token"):
            return self._token_factory.create_signed_custom_token(
                uid,
                developer_claims,
                credential.service_account_email,
                credential.private_key,
            )

    def verify_id_token(self, token: str) -> VerifiedToken:
        """Verify an ID token and return its claims.

        Raises:
            ValueError: If ``token`` is not a non-empty string.
            InvalidCredentialError: If the app has no service account certificate.
            IdTokenParseError: If the token is malformed.
            IdTokenVerificationError: If a check fails.
            PublicKeyFetchError: If the signing keys cannot be fetched.
        """
        check_id_token(token)
        return self._get_verifier().verify(token)

    def get_user(self, uid: str) -> UserRecord:
        """Look up a user by uid.

        Raises:
            UserNotFoundError: If no such user exists.
        """
        validate_uid(uid)
        return self._user_manager.get_user_by_id(uid, self._access_token())

    def get_user_by_email(self, email: str) -> UserRecord:
        """Look up a user by email.

        Raises:
            UserNotFoundError: If no such user exists.
        """
        check_email(email)
        return self._user_manager.get_user_by_email(email, self._access_token())

    def create_user(self, request: CreateRequest) -> UserRecord:
        """Create a user account and return the stored record."""
        check_request(request, CreateRequest)
        access_token = self._access_token()
        uid = self._user_manager.create_user(request, access_token)
        return self._user_manager.get_user_by_id(uid, access_token)

    def update_user(self, request: UpdateRequest) -> UserRecord:
        """Update a user account and return the stored record."""
        check_request(request, UpdateRequest)
        access_token = self._access_token()
        uid = self._user_manager.update_user(request, access_token)
        return self._user_manager.get_user_by_id(uid, access_token)

    def delete_user(self, uid: str) -> None:
        """Delete a user account.

        Raises:
            UserDeleteError: If the account could not be deleted.
        """
        validate_uid(uid)
        self._user_manager.delete_user(uid, self._access_token())

    def _access_token(self) -> str:
        try:
            return self._app.credential.refresh_access_token().value
        except CredentialError as e:
            raise AccessTokenError(f"Failed to obtain an access token: {e}", cause=e) from e

    def _get_verifier(self) -> IdTokenVerifier:
        credential = require_certificate(self._app, "verify_id_token")
        with self._lock:
            if self._verifier is None:
                options = self._app.options
                self._verifier = IdTokenVerifier(
                    credential.project_id,
                    self._public_key_manager or self._create_public_key_manager(),
                    clock_skew_seconds=options.clock_skew_seconds,
                )
            return self._verifier

    def _create_public_key_manager(self) -> PublicKeyManager:
        options = self._app.options
        if options.public_keys_url == DEFAULT_PUBLIC_KEYS_URL:
            return get_default_public_key_manager()
        return PublicKeyManager(
            options.public_keys_url,
            timeout=options.timeout,
            refresh_ahead_seconds=options.key_refresh_ahead_seconds,
        )
