"""
Domain Models

Pydantic models shared by the services and the API layer:
- LinkRecord: a resolved short link as returned by the backend
- PreviewMetadata: best-effort preview data for the destination page
- RedirectSession: snapshot of one countdown/redirect attempt
- User / SessionContext: the authenticated visitor, passed around explicitly

Backend payloads use camelCase names, so models accept both the alias
and the Python field name.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator

from myurl.core.validators import is_valid_url


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RedirectPhase(str, Enum):
    LOADING = "loading"
    READY = "ready"
    REDIRECTING = "redirecting"
    FAILED = "failed"


class FailureReason(str, Enum):
    INVALID_SHORT_CODE = "invalid_short_code"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    INACTIVE = "inactive"
    NETWORK_ERROR = "network_error"
    INVALID_LINK_DATA = "invalid_link_data"


class LinkRecord(BaseModel):
    """A short link resolved by the backend."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    short_code: str = Field(..., alias="shortCode")
    original_url: str = Field(..., alias="originalUrl")
    clicks: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator("original_url")
    @classmethod
    def _check_original_url(cls, value: str) -> str:
        if not is_valid_url(value):
            raise ValueError(f"not an absolute http(s) URL: {value!r}")
        return value

    @field_validator("created_at", "expires_at")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True when the link's expiry date is at or before ``now``."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())


class PreviewMetadata(BaseModel):
    """Preview data for a destination page. Every field is optional."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    site_name: Optional[str] = Field(default=None, alias="siteName")
    keywords: Optional[str] = None
    url: Optional[str] = None


class RedirectSession(BaseModel):
    """Read-only snapshot of a redirect controller."""

    short_code: str
    phase: RedirectPhase
    countdown_seconds: int
    seconds_remaining: int
    error_message: Optional[str] = None
    failure_reason: Optional[FailureReason] = None
    retryable: bool = False
    link: Optional[LinkRecord] = None
    metadata: Optional[PreviewMetadata] = None
    navigate_to: Optional[str] = None

    @computed_field
    @property
    def progress(self) -> float:
        """Countdown progress as a percentage."""
        elapsed = self.countdown_seconds - self.seconds_remaining
        return round(elapsed / self.countdown_seconds * 100, 2)


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Mongo-backed APIs send "_id"
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    email: str
    full_name: Optional[str] = Field(default=None, alias="fullName")
    role: str = "user"


class SessionContext(BaseModel):
    """
    Authenticated session handed to services explicitly.

    Only the session store persists it; nothing reads tokens from
    ambient global state.
    """
    model_config = ConfigDict(frozen=True)

    session_id: str
    access_token: str
    user: User
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @property
    def is_admin(self) -> bool:
        return self.user.role == "admin"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())
