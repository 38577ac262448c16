"""
Custom Exceptions

This module defines the exception hierarchy of the frontend.

Link resolution errors carry:
- reason: the failure category shown to the visitor
- retryable: whether an explicit retry may re-run resolution
- user_message: human readable text for the failed view
"""

from typing import Optional, TYPE_CHECKING

from myurl.core.models import FailureReason

if TYPE_CHECKING:
    from myurl.core.models import LinkRecord


class MyUrlError(Exception):
    """Base exception for the frontend."""
    pass


class LinkResolutionError(MyUrlError):
    """Base class for failures while turning a short code into a link."""

    reason: FailureReason = FailureReason.NETWORK_ERROR
    retryable: bool = False

    def __init__(self, short_code: str, message: str):
        self.short_code = short_code
        self.user_message = message
        super().__init__(message)


class InvalidShortCodeError(LinkResolutionError):
    """Raised when the route parameter is missing or malformed."""

    reason = FailureReason.INVALID_SHORT_CODE

    def __init__(self, short_code: Optional[str]):
        super().__init__(short_code or "", "Invalid short URL")


class LinkNotFoundError(LinkResolutionError):
    """Raised when the backend has no link for a short code."""

    reason = FailureReason.NOT_FOUND

    def __init__(self, short_code: str):
        super().__init__(short_code, f"Short link '{short_code}' not found")


class LinkUnavailableError(LinkResolutionError):
    """A link exists but must not be followed. The record is kept on ``link``."""

    def __init__(self, short_code: str, message: str, link: Optional["LinkRecord"] = None):
        self.link = link
        super().__init__(short_code, message)


class LinkExpiredError(LinkUnavailableError):
    """Raised when the link's expiry date has passed."""

    reason = FailureReason.EXPIRED

    def __init__(self, short_code: str, link: Optional["LinkRecord"] = None):
        super().__init__(short_code, f"Short link '{short_code}' has expired", link)


class LinkInactiveError(LinkUnavailableError):
    """Raised when the link has been deactivated."""

    reason = FailureReason.INACTIVE

    def __init__(self, short_code: str, link: Optional["LinkRecord"] = None):
        super().__init__(short_code, f"Short link '{short_code}' is no longer active", link)


class InvalidLinkDataError(LinkResolutionError):
    """Raised when the backend answers with a record we cannot redirect to."""

    reason = FailureReason.INVALID_LINK_DATA

    def __init__(self, short_code: str, detail: str = "Invalid link data received"):
        self.detail = detail
        super().__init__(short_code, "Invalid link data received")


class NetworkError(LinkResolutionError):
    """Raised on transport failures, timeouts and transient backend errors."""

    reason = FailureReason.NETWORK_ERROR
    retryable = True

    def __init__(
        self,
        message: str = "Network error: Could not connect to server",
        short_code: str = "",
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(short_code, message)


class SessionExpiredError(MyUrlError):
    """Raised when the backend rejects the session's access token."""

    def __init__(self, message: str = "Session expired. Please login again."):
        super().__init__(message)


class AuthenticationError(MyUrlError):
    """Raised when login or signup is rejected by the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RedirectSessionNotFoundError(MyUrlError):
    """Raised when a redirect session id is unknown or already evicted."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Redirect session '{session_id}' not found")


class InvalidTransitionError(MyUrlError):
    """Raised when an action is not allowed in the session's current phase."""

    def __init__(self, action: str, phase: str):
        self.action = action
        self.phase = phase
        super().__init__(f"Cannot {action} a redirect session in phase '{phase}'")
