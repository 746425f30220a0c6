"""User management calls against the identity toolkit REST API."""

from __future__ import annotations

from typing import Any

import httpx

from .core.errors import ErrorFactory
from .core.http_executor import HTTPExecutor
from .errors import (
    InternalError,
    UserCreateError,
    UserDeleteError,
    UserManagementError,
    UserNotFoundError,
    UserUpdateError,
)
from .models import CreateRequest, UpdateRequest, UserRecord
from .telemetry import get_logger, trace_operation


class UserManager:
    """Issues user-management RPCs. Every call is made exactly once."""

    GET_ACCOUNT_INFO = "getAccountInfo"
    CREATE_USER = "signupNewUser"
    UPDATE_USER = "setAccountInfo"
    DELETE_USER = "deleteAccount"

    def __init__(self, http_executor: HTTPExecutor) -> None:
        self._http = http_executor
        self._logger = get_logger()

    def get_user_by_id(self, uid: str, access_token: str) -> UserRecord:
        """Look up a user by uid.

        Raises:
            UserNotFoundError: If no user has this uid.
            InternalError: If the service returns an error status.
        """
        with trace_operation("get_user", attributes={"user.uid": uid}):
            response = self._post(
                self.GET_ACCOUNT_INFO,
                {"localId": [uid]},
                access_token,
                error_cls=InternalError,
            )
            return self._single_user(response, f"No user record found for the provided uid: {uid}")

    def get_user_by_email(self, email: str, access_token: str) -> UserRecord:
        """Look up a user by email.

        Raises:
            UserNotFoundError: If no user has this email.
            InternalError: If the service returns an error status.
        """
        with trace_operation("get_user_by_email"):
            response = self._post(
                self.GET_ACCOUNT_INFO,
                {"email": [email]},
                access_token,
                error_cls=InternalError,
            )
            return self._single_user(
                response, f"No user record found for the provided email: {email}"
            )

    def create_user(self, request: CreateRequest, access_token: str) -> str:
        """Create a user account and return its uid.

        Raises:
            UserCreateError: If the account could not be created.
        """
        with trace_operation("create_user", attributes={"user.uid": request.uid}):
            response = self._post(
                self.CREATE_USER,
                request.to_payload(),
                access_token,
                error_cls=UserCreateError,
            )
            uid = response.get("localId")
            if not uid:
                raise UserCreateError("Failed to create new user: response has no localId")
            self._logger.info("User created", uid=uid)
            return uid

    def update_user(self, request: UpdateRequest, access_token: str) -> str:
        """Apply ``request`` to an existing user and return its uid.

        Raises:
            UserUpdateError: If the account could not be updated.
        """
        with trace_operation("update_user", attributes={"user.uid": request.uid}):
            response = self._post(
                self.UPDATE_USER,
                request.to_payload(),
                access_token,
                error_cls=UserUpdateError,
            )
            uid = response.get("localId")
            if not uid:
                raise UserUpdateError(f"Failed to update user: {request.uid}")
            self._logger.info("User updated", uid=uid)
            return uid

    def delete_user(self, uid: str, access_token: str) -> None:
        """Delete the user account with ``uid``.

        Raises:
            UserDeleteError: If the account could not be deleted.
        """
        with trace_operation("delete_user", attributes={"user.uid": uid}):
            response = self._post(
                self.DELETE_USER,
                {"localId": uid},
                access_token,
                error_cls=UserDeleteError,
            )
            if not response.get("kind"):
                raise UserDeleteError(f"Failed to delete user: {uid}")
            self._logger.info("User deleted", uid=uid)

    def _post(
        self,
        rpc: str,
        payload: dict[str, Any],
        access_token: str,
        *,
        error_cls: type[UserManagementError],
    ) -> dict[str, Any]:
        response = self._http.post_json(rpc, payload, access_token=access_token)
        if response.is_error:
            raise ErrorFactory.from_http_response(
                response,
                error_cls=error_cls,
                message=f"Error while calling {rpc}",
            )
        return self._parse_json(response, error_cls)

    @staticmethod
    def _parse_json(
        response: httpx.Response, error_cls: type[UserManagementError]
    ) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise error_cls(
                "Response is not valid JSON",
                status_code=response.status_code,
                cause=e,
            ) from e
        if not isinstance(body, dict):
            raise error_cls("Response is not a JSON object", status_code=response.status_code)
        return body

    @staticmethod
    def _single_user(response: dict[str, Any], not_found_message: str) -> UserRecord:
        users = response.get("users") or []
        if not users:
            raise UserNotFoundError(not_found_message)
        return UserRecord.from_response(users[0])
