"""Identity Admin SDK task-returning client.

Mirrors :class:`~identity_admin_sdk.client.AuthClient`. Arguments are checked
on the calling thread; the blocking call then runs on the app executor and
its outcome is delivered through a :class:`~identity_admin_sdk.tasks.Task`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Self, TypeVar

from . import tasks
from .client import AuthClient, check_email, check_id_token, check_request, require_certificate
from .core.token_factory import validate_developer_claims, validate_uid
from .models import AccessToken, CreateRequest, UpdateRequest, UserRecord, VerifiedToken
from .tasks import Task

if TYPE_CHECKING:
    from .app import App

T = TypeVar("T")


class AsyncAuthClient:
    """Identity client whose operations return tasks."""

    SERVICE_KEY = "auth_async"

    def __init__(
        self,
        app: App,
        *,
        auth_client: AuthClient | None = None,
        **client_kwargs: Any,
    ) -> None:
        """Initialize async client.

        Args:
            app: App providing the credential, options and executor.
            auth_client: Blocking client to delegate to.
            **client_kwargs: Passed to :class:`AuthClient` when one is created.
        """
        self._app = app
        self._owns_client = auth_client is None
        self._client = auth_client or AuthClient(app, **client_kwargs)

    @classmethod
    def for_app(cls, app: App) -> Self:
        """Return the async client shared by every caller of ``app``."""
        return app.get_service(
            cls.SERVICE_KEY,
            lambda a: cls(a, auth_client=AuthClient.for_app(a)),
        )

    @property
    def app(self) -> App:
        return self._app

    def close(self) -> None:
        """Close the blocking client if this client created it."""
        if self._owns_client:
            self._client.close()

    def _submit(self, fn: Callable[[], T]) -> Task[T]:
        return tasks.call(fn, self._app.executor)

    def get_access_token(self) -> Task[AccessToken]:
        """Fetch a fresh access token from the app credential."""
        return self._app.credential.get_access_token(self._app.executor)

    def create_custom_token(
        self,
        uid: str,
        developer_claims: dict[str, Any] | None = None,
    ) -> Task[str]:
        validate_uid(uid)
        validate_developer_claims(developer_claims)
        require_certificate(self._app, "create_custom_token")
        return self._submit(lambda: self._client.create_custom_token(uid, developer_claims))

    def verify_id_token(self, token: str) -> Task[VerifiedToken]:
        check_id_token(token)
        require_certificate(self._app, "verify_id_token")
        return self._submit(lambda: self._client.verify_id_token(token))

    def get_user(self, uid: str) -> Task[UserRecord]:
        validate_uid(uid)
        return self._submit(lambda: self._client.get_user(uid))

    def get_user_by_email(self, email: str) -> Task[UserRecord]:
        check_email(email)
        return self._submit(lambda: self._client.get_user_by_email(email))

    def create_user(self, request: CreateRequest) -> Task[UserRecord]:
        check_request(request, CreateRequest)
        return self._submit(lambda: self._client.create_user(request))

    def update_user(self, request: UpdateRequest) -> Task[UserRecord]:
        check_request(request, UpdateRequest)
        return self._submit(lambda: self._client.update_user(request))

    def delete_user(self, uid: str) -> Task[None]:
        validate_uid(uid)
        return self._submit(lambda: self._client.delete_user(uid))
