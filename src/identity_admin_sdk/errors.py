"""Error classes for Identity Admin SDK.

Structured error hierarchy with stable error codes. Callers should branch on
the exception class or on ``code``, never on the message text.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for Identity Admin SDK."""

    # Credential errors (1xxx)
    CREDENTIAL_PARSE_ERROR = "CRED_1001"
    INVALID_CREDENTIAL = "CRED_1002"
    ACCESS_TOKEN_ERROR = "CRED_1003"

    # Token errors (2xxx)
    TOKEN_CREATION_FAILED = "TOKEN_2001"
    ID_TOKEN_PARSE_ERROR = "TOKEN_2002"
    ID_TOKEN_INVALID = "TOKEN_2003"
    ID_TOKEN_EXPIRED = "TOKEN_2004"
    ID_TOKEN_NOT_YET_VALID = "TOKEN_2005"
    INVALID_SIGNATURE = "TOKEN_2006"
    INVALID_AUDIENCE = "TOKEN_2007"
    INVALID_ISSUER = "TOKEN_2008"
    INVALID_SUBJECT = "TOKEN_2009"
    PUBLIC_KEY_FETCH_FAILED = "TOKEN_2010"

    # User management errors (3xxx)
    USER_NOT_FOUND = "USER_3001"
    USER_CREATE_FAILED = "USER_3002"
    USER_UPDATE_FAILED = "USER_3003"
    USER_DELETE_FAILED = "USER_3004"
    INTERNAL_ERROR = "USER_3005"

    # Network errors (4xxx)
    NETWORK_ERROR = "NET_4001"
    TIMEOUT_ERROR = "NET_4002"
    SERVER_ERROR = "NET_4003"


class IdentityAdminError(Exception):
    """Base error for Identity Admin SDK with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.status_code = status_code
        self.details = details or {}
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        """Underlying exception, if any."""
        return self.__cause__

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CredentialError(IdentityAdminError):
    """Credential payload could not be parsed."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.CREDENTIAL_PARSE_ERROR,
            details={"field": field} if field else None,
            cause=cause,
        )


class InvalidCredentialError(IdentityAdminError):
    """Operation requires a different credential type."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.INVALID_CREDENTIAL)


class AccessTokenError(IdentityAdminError):
    """Failed to obtain an OAuth2 access token."""

    def __init__(
        self,
        message: str = "Failed to obtain an access token",
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.ACCESS_TOKEN_ERROR,
            details={"cause": str(cause)} if cause else None,
            cause=cause,
        )


class TokenCreationError(IdentityAdminError):
    """Custom token could not be signed."""

    def __init__(
        self,
        message: str = "Error while creating custom token",
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.TOKEN_CREATION_FAILED, cause=cause)


class IdTokenParseError(IdentityAdminError):
    """ID token is not a well-formed JWT."""

    def __init__(
        self,
        message: str = "Error while parsing ID token",
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.ID_TOKEN_PARSE_ERROR, status_code=401, cause=cause)


class IdTokenVerificationError(IdentityAdminError):
    """ID token failed verification.

    Subclasses identify the failing check. Catch this class to handle any
    verification failure.
    """

    default_code: ErrorCode = ErrorCode.ID_TOKEN_INVALID

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            self.default_code,
            status_code=401,
            details=details,
            cause=cause,
        )


class ExpiredIdTokenError(IdTokenVerificationError):
    """ID token has expired."""

    default_code = ErrorCode.ID_TOKEN_EXPIRED


class IdTokenNotYetValidError(IdTokenVerificationError):
    """ID token was issued in the future."""

    default_code = ErrorCode.ID_TOKEN_NOT_YET_VALID


class InvalidSignatureError(IdTokenVerificationError):
    """ID token signature does not match any known public key."""

    default_code = ErrorCode.INVALID_SIGNATURE


class InvalidAudienceError(IdTokenVerificationError):
    """ID token was issued for another project."""

    default_code = ErrorCode.INVALID_AUDIENCE


class InvalidIssuerError(IdTokenVerificationError):
    """ID token has an unexpected issuer."""

    default_code = ErrorCode.INVALID_ISSUER


class InvalidSubjectError(IdTokenVerificationError):
    """ID token subject is missing or malformed."""

    default_code = ErrorCode.INVALID_SUBJECT


class PublicKeyFetchError(IdentityAdminError):
    """Public keys could not be fetched or parsed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.PUBLIC_KEY_FETCH_FAILED,
            status_code=status_code,
            cause=cause,
        )


class UserManagementError(IdentityAdminError):
    """Remote user-management API reported an error."""

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            self.default_code,
            status_code=status_code,
            details=details,
            cause=cause,
        )


class UserNotFoundError(UserManagementError):
    """No user record matches the given identifier."""

    default_code = ErrorCode.USER_NOT_FOUND


class UserCreateError(UserManagementError):
    """User account could not be created."""

    default_code = ErrorCode.USER_CREATE_FAILED


class UserUpdateError(UserManagementError):
    """User account could not be updated."""

    default_code = ErrorCode.USER_UPDATE_FAILED


class UserDeleteError(UserManagementError):
    """User account could not be deleted."""

    default_code = ErrorCode.USER_DELETE_FAILED


class InternalError(UserManagementError):
    """Unexpected response from the user-management API."""

    default_code = ErrorCode.INTERNAL_ERROR


class NetworkError(IdentityAdminError):
    """Network request failed."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.NETWORK_ERROR,
            details={"cause": str(cause)} if cause else None,
            cause=cause,
        )


class RequestTimeoutError(IdentityAdminError):
    """Request timed out."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        timeout_seconds: float | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.TIMEOUT_ERROR,
            status_code=408,
            details={"timeout_seconds": timeout_seconds} if timeout_seconds else None,
            cause=cause,
        )


class ServerError(IdentityAdminError):
    """Server-side error."""

    def __init__(
        self,
        message: str = "Server error",
        *,
        status_code: int = 500,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.SERVER_ERROR,
            status_code=status_code,
        )
