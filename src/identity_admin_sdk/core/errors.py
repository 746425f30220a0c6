"""Centralized error factory for Identity Admin SDK.

Translates httpx failures and error responses into SDK errors.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import (
    IdentityAdminError,
    InternalError,
    NetworkError,
    RequestTimeoutError,
    ServerError,
    UserManagementError,
)


class ErrorFactory:
    """Centralized error creation with consistent structure.

    All errors created through this factory include:
    - Standardized error codes
    - The HTTP status code, when there was a response
    - The remote error message in ``details``
    """

    @staticmethod
    def extract_error_details(response: httpx.Response) -> dict[str, Any]:
        """Pull the remote error message out of an error response body.

        The identity toolkit reports errors as
        ``{"error": {"code": 400, "message": "EMAIL_EXISTS"}}``.
        """
        details: dict[str, Any] = {}
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                details["error"] = error.get("message")
            elif error is not None:
                details["error"] = error
                if description := body.get("error_description"):
                    details["error_description"] = description
        if "error" not in details and response.text:
            details["body"] = response.text[:512]
        return details

    @staticmethod
    def from_http_response(
        response: httpx.Response,
        *,
        error_cls: type[UserManagementError] = InternalError,
        message: str | None = None,
    ) -> UserManagementError:
        """Create SDK error from an HTTP error response.

        Args:
            response: HTTP response with an error status.
            error_cls: Error class describing the failed operation.
            message: Optional message prefix.

        Returns:
            Instance of ``error_cls`` carrying the status and remote details.
        """
        status = response.status_code
        details = ErrorFactory.extract_error_details(response)
        remote = details.get("error") or f"HTTP {status}"
        prefix = message or "User management request failed"
        return error_cls(
            f"{prefix}: {remote}",
            status_code=status,
            details=details,
        )

    @staticmethod
    def server_error(response: httpx.Response) -> ServerError:
        """Create a generic server error for a non-user-management endpoint."""
        details = ErrorFactory.extract_error_details(response)
        remote = details.get("error") or f"HTTP {response.status_code}"
        return ServerError(f"Server error: {remote}", status_code=response.status_code)

    @staticmethod
    def from_exception(exc: Exception) -> IdentityAdminError:
        """Create SDK error from exception.

        Args:
            exc: Original exception.

        Returns:
            Appropriate IdentityAdminError subclass.
        """
        if isinstance(exc, IdentityAdminError):
            return exc

        if isinstance(exc, httpx.TimeoutException):
            return RequestTimeoutError(f"Request timed out: {exc}", cause=exc)

        if isinstance(exc, httpx.ConnectError):
            return NetworkError(f"Connection failed: {exc}", cause=exc)

        if isinstance(exc, httpx.HTTPStatusError):
            return ErrorFactory.from_http_response(exc.response)

        if isinstance(exc, httpx.HTTPError):
            return NetworkError(f"HTTP error: {exc}", cause=exc)

        return NetworkError(f"Unexpected error: {exc}", cause=exc)
