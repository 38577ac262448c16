"""
API Request and Response Schemas

Pydantic models for the frontend's HTTP surface. Domain models
(RedirectSession, LinkRecord, PreviewMetadata, User) are reused as-is.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from myurl.core.models import LinkRecord, PreviewMetadata, RedirectSession, User


class RedirectSessionResponse(BaseModel):
    """A redirect session and its current state."""
    session_id: str = Field(..., description="Opaque id used to poll and control the session")
    session: RedirectSession


class CancelResponse(BaseModel):
    """Where the browser goes after cancelling."""
    navigate_to: str = Field(..., description="Host page to return to")


class MetaTag(BaseModel):
    attribute: str = Field(..., description="'name' or 'property'")
    name: str
    content: str


class PageMetaResponse(BaseModel):
    """Preview page data for a short link."""
    short_code: str
    link: LinkRecord
    metadata: PreviewMetadata
    title: str
    canonical_url: str
    tags: List[MetaTag]


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class AuthSessionResponse(BaseModel):
    """Logged-in user; the session id travels in a cookie only."""
    user: User
    is_admin: bool = False


class LogoutResponse(BaseModel):
    logged_out: bool


class ErrorDetail(BaseModel):
    detail: str
    reason: Optional[str] = None
