"""Pydantic models for Identity Admin SDK.

Frozen models for tokens, user records and user-management requests.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Self
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_UID_LENGTH = 128
MIN_PASSWORD_LENGTH = 6


class AccessToken(BaseModel):
    """OAuth2 access token produced by a single credential refresh."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1)
    expiry: datetime | None = None

    @property
    def expiry_time_millis(self) -> int | None:
        """Expiry as milliseconds since the epoch."""
        if self.expiry is None:
            return None
        expiry = self.expiry if self.expiry.tzinfo else self.expiry.replace(tzinfo=UTC)
        return int(expiry.timestamp() * 1000)

    def __repr__(self) -> str:
        return f"AccessToken(expiry={self.expiry!r})"


class VerifiedToken(BaseModel):
    """Claims of an ID token that passed verification."""

    model_config = ConfigDict(frozen=True)

    uid: str
    issuer: str
    audience: str
    issued_at: int
    expires_at: int
    claims: dict[str, Any]

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> Self:
        """Build from a decoded and verified JWT payload."""
        return cls(
            uid=claims["sub"],
            issuer=claims["iss"],
            audience=claims["aud"],
            issued_at=claims["iat"],
            expires_at=claims["exp"],
            claims=dict(claims),
        )

    @property
    def email(self) -> str | None:
        return self.claims.get("email")

    @property
    def email_verified(self) -> bool:
        return bool(self.claims.get("email_verified", False))

    @property
    def name(self) -> str | None:
        return self.claims.get("name")

    @property
    def picture(self) -> str | None:
        return self.claims.get("picture")

    @property
    def expires_at_datetime(self) -> datetime:
        """Get expiration as datetime."""
        return datetime.fromtimestamp(self.expires_at, tz=UTC)

    @property
    def issued_at_datetime(self) -> datetime:
        """Get issued at as datetime."""
        return datetime.fromtimestamp(self.issued_at, tz=UTC)


class UserInfo(BaseModel):
    """Identity-provider specific information about a user."""

    model_config = ConfigDict(frozen=True)

    uid: str | None = None
    display_name: str | None = None
    email: str | None = None
    photo_url: str | None = None
    provider_id: str | None = None

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> Self:
        return cls(
            uid=data.get("rawId"),
            display_name=data.get("displayName"),
            email=data.get("email"),
            photo_url=data.get("photoUrl"),
            provider_id=data.get("providerId"),
        )


class UserMetadata(BaseModel):
    """Account timestamps in milliseconds since the epoch."""

    model_config = ConfigDict(frozen=True)

    creation_timestamp: int = 0
    last_sign_in_timestamp: int = 0


class UserRecord(BaseModel):
    """User account as stored by the identity service."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    photo_url: str | None = None
    disabled: bool = False
    provider_data: list[UserInfo] = Field(default_factory=list)
    user_metadata: UserMetadata = Field(default_factory=UserMetadata)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> Self:
        """Build from a ``getAccountInfo`` user entry."""
        return cls(
            uid=data["localId"],
            email=data.get("email"),
            email_verified=data.get("emailVerified", False),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            disabled=data.get("disabled", False),
            provider_data=[
                UserInfo.from_response(info) for info in data.get("providerUserInfo", [])
            ],
            user_metadata=UserMetadata(
                creation_timestamp=int(data.get("createdAt", 0)),
                last_sign_in_timestamp=int(data.get("lastLoginAt", 0)),
            ),
        )

    def update_request(self) -> UpdateRequest:
        """Start an update request for this user."""
        return UpdateRequest(uid=self.uid)


def _check_uid(v: str | None) -> str | None:
    if v is not None and not 0 < len(v) <= MAX_UID_LENGTH:
        msg = f"uid must be a non-empty string with at most {MAX_UID_LENGTH} characters"
        raise ValueError(msg)
    return v


def _check_email(v: str | None) -> str | None:
    if v is not None:
        local, sep, domain = v.partition("@")
        if not (local and sep and domain):
            msg = f"Malformed email address string: {v!r}"
            raise ValueError(msg)
    return v


def _check_password(v: str | None) -> str | None:
    if v is not None and len(v) < MIN_PASSWORD_LENGTH:
        msg = f"password must be at least {MIN_PASSWORD_LENGTH} characters long"
        raise ValueError(msg)
    return v


def _check_photo_url(v: str | None) -> str | None:
    if v is not None:
        parsed = urlparse(v)
        if not (parsed.scheme and parsed.netloc):
            msg = f"Malformed photo URL string: {v!r}"
            raise ValueError(msg)
    return v


class CreateRequest(BaseModel):
    """Attributes of a user account to create.

    Only fields that are explicitly set are sent to the service.
    """

    model_config = ConfigDict(frozen=True)

    uid: str | None = None
    email: str | None = None
    email_verified: bool | None = None
    password: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    disabled: bool | None = None

    @field_validator("uid")
    @classmethod
    def validate_uid(cls, v: str | None) -> str | None:
        return _check_uid(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        return _check_password(v)

    @field_validator("photo_url")
    @classmethod
    def validate_photo_url(cls, v: str | None) -> str | None:
        return _check_photo_url(v)

    def to_payload(self) -> dict[str, Any]:
        """Convert to a ``signupNewUser`` request body."""
        wire_names = {
            "uid": "localId",
            "email": "email",
            "email_verified": "emailVerified",
            "password": "password",
            "display_name": "displayName",
            "photo_url": "photoUrl",
            "disabled": "disabled",
        }
        data = self.model_dump(exclude_none=True)
        return {wire_names[key]: value for key, value in data.items()}


class UpdateRequest(BaseModel):
    """Changes to apply to an existing user account.

    Passing ``display_name=None`` or ``photo_url=None`` explicitly removes
    that attribute. Fields that are not passed are left unchanged.
    """

    model_config = ConfigDict(frozen=True)

    uid: Annotated[str, Field(min_length=1, max_length=MAX_UID_LENGTH)]
    email: str | None = None
    email_verified: bool | None = None
    password: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    disabled: bool | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        return _check_password(v)

    @field_validator("photo_url")
    @classmethod
    def validate_photo_url(cls, v: str | None) -> str | None:
        return _check_photo_url(v)

    @model_validator(mode="after")
    def reject_null_email(self) -> Self:
        """Email can be changed but not removed."""
        if "email" in self.model_fields_set and self.email is None:
            raise ValueError("email cannot be removed from a user account")
        return self

    def with_changes(self, **changes: Any) -> Self:
        """Return a copy with additional fields set."""
        data = {key: getattr(self, key) for key in self.model_fields_set}
        data.update(changes)
        return self.__class__(**data)

    def to_payload(self) -> dict[str, Any]:
        """Convert to a ``setAccountInfo`` request body."""
        payload: dict[str, Any] = {"localId": self.uid}
        delete_attributes: list[str] = []

        if "email" in self.model_fields_set:
            payload["email"] = self.email
        if self.email_verified is not None:
            payload["emailVerified"] = self.email_verified
        if self.password is not None:
            payload["password"] = self.password
        if self.disabled is not None:
            payload["disableUser"] = self.disabled

        if "display_name" in self.model_fields_set:
            if self.display_name is None:
                delete_attributes.append("DISPLAY_NAME")
            else:
                payload["displayName"] = self.display_name
        if "photo_url" in self.model_fields_set:
            if self.photo_url is None:
                delete_attributes.append("PHOTO_URL")
            else:
                payload["photoUrl"] = self.photo_url

        if delete_attributes:
            payload["deleteAttribute"] = delete_attributes
        return payload
