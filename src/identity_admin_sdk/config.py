"""Configuration for Identity Admin SDK.

Uses Pydantic v2 for validation with sensible defaults.
"""

from __future__ import annotations

import os
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_USER_MANAGEMENT_URL = "https://www.googleapis.com/identitytoolkit/v3/relyingparty/"
DEFAULT_PUBLIC_KEYS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/"
    "securetoken@system.gserviceaccount.com"
)


class TelemetryConfig(BaseModel):
    """OpenTelemetry and logging configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "identity-admin-sdk"
    trace_requests: bool = True
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in levels:
            msg = f"Unsupported log level: {v}. Supported: {sorted(levels)}"
            raise ValueError(msg)
        return v.upper()


class AppOptions(BaseModel):
    """Options shared by every service of an app."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0

    # Endpoints
    user_management_url: str = DEFAULT_USER_MANAGEMENT_URL
    public_keys_url: str = DEFAULT_PUBLIC_KEYS_URL

    # ID token verification
    clock_skew_seconds: Annotated[int, Field(ge=0, le=3600)] = 300
    key_refresh_ahead_seconds: Annotated[int, Field(ge=0)] = 300

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("user_management_url", "public_keys_url")
    @classmethod
    def validate_https(cls, v: str) -> str:
        """Endpoints must be absolute https URLs."""
        if not v.startswith("https://") or len(v) <= len("https://"):
            msg = f"Endpoint must be an https URL: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("user_management_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Relative RPC names are resolved against this URL."""
        return v if v.endswith("/") else f"{v}/"

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new options with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "IDENTITY_ADMIN_") -> Self:
        """Create options from environment variables."""

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        data: dict[str, Any] = {}
        if (timeout := get_env("TIMEOUT")) is not None:
            data["timeout"] = float(timeout)
        if (connect_timeout := get_env("CONNECT_TIMEOUT")) is not None:
            data["connect_timeout"] = float(connect_timeout)
        if (url := get_env("USER_MANAGEMENT_URL")) is not None:
            data["user_management_url"] = url
        if (url := get_env("PUBLIC_KEYS_URL")) is not None:
            data["public_keys_url"] = url
        if (skew := get_env("CLOCK_SKEW_SECONDS")) is not None:
            data["clock_skew_seconds"] = int(skew)
        if (level := get_env("LOG_LEVEL")) is not None:
            data["telemetry"] = TelemetryConfig(log_level=level)

        return cls(**data)
