"""Identity Admin Python SDK."""

from .app import App, AppDeletedError
from .async_client import AsyncAuthClient
from .client import AuthClient
from .config import AppOptions, TelemetryConfig
from .credentials import ApplicationDefault, BaseCredential, Certificate, RefreshToken
from .errors import (
    AccessTokenError,
    CredentialError,
    ErrorCode,
    ExpiredIdTokenError,
    IdentityAdminError,
    IdTokenNotYetValidError,
    IdTokenParseError,
    IdTokenVerificationError,
    InternalError,
    InvalidAudienceError,
    InvalidCredentialError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidSubjectError,
    NetworkError,
    PublicKeyFetchError,
    RequestTimeoutError,
    ServerError,
    TokenCreationError,
    UserCreateError,
    UserDeleteError,
    UserManagementError,
    UserNotFoundError,
    UserUpdateError,
)
from .executors import BoundedThreadManager, DefaultThreadManager, ThreadManager, ThreadPools
from .models import (
    AccessToken,
    CreateRequest,
    UpdateRequest,
    UserInfo,
    UserMetadata,
    UserRecord,
    VerifiedToken,
)
from .public_keys import PublicKeyManager
from .tasks import (
    ExecutionError,
    Task,
    TaskAbortedError,
    TaskCancelledError,
    TaskStateError,
    TaskTimeoutError,
)
from .telemetry import configure_telemetry

__all__ = [
    "App",
    "AppDeletedError",
    "AuthClient",
    "AsyncAuthClient",
    "AppOptions",
    "TelemetryConfig",
    "configure_telemetry",
    "BaseCredential",
    "Certificate",
    "ApplicationDefault",
    "RefreshToken",
    "ThreadManager",
    "ThreadPools",
    "DefaultThreadManager",
    "BoundedThreadManager",
    "Task",
    "ExecutionError",
    "TaskStateError",
    "TaskTimeoutError",
    "TaskCancelledError",
    "TaskAbortedError",
    "PublicKeyManager",
    "AccessToken",
    "VerifiedToken",
    "UserRecord",
    "UserInfo",
    "UserMetadata",
    "CreateRequest",
    "UpdateRequest",
    "ErrorCode",
    "IdentityAdminError",
    "CredentialError",
    "InvalidCredentialError",
    "AccessTokenError",
    "TokenCreationError",
    "IdTokenParseError",
    "IdTokenVerificationError",
    "ExpiredIdTokenError",
    "IdTokenNotYetValidError",
    "InvalidSignatureError",
    "InvalidAudienceError",
    "InvalidIssuerError",
    "InvalidSubjectError",
    "PublicKeyFetchError",
    "UserManagementError",
    "UserNotFoundError",
    "UserCreateError",
    "UserUpdateError",
    "UserDeleteError",
    "InternalError",
    "NetworkError",
    "RequestTimeoutError",
    "ServerError",
]

__version__ = "0.1.0"
