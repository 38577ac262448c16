"""
Link Resolver

Turns a short code into a LinkRecord by asking the backend.

Failure classification:
- InvalidShortCodeError: empty/unresolved route parameter, no network call
- LinkNotFoundError: backend has no link for the code
- LinkInactiveError / LinkExpiredError: the record exists but must not be
  followed; the record is attached to the exception
- InvalidLinkDataError: the backend answered with an unusable record
- NetworkError: transport failure or transient backend error (retryable)

The resolver holds no state between calls.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote

from pydantic import ValidationError

from myurl.core.exceptions import (
    InvalidLinkDataError,
    InvalidShortCodeError,
    LinkExpiredError,
    LinkInactiveError,
    LinkNotFoundError,
    LinkResolutionError,
    NetworkError,
)
from myurl.core.models import LinkRecord, utcnow
from myurl.core.validators import sanitize_short_code
from myurl.services.backend_client import BackendClient, BackendResponse

logger = logging.getLogger(__name__)


class LinkResolver:
    """
    Resolves short codes against ``GET /links/{short_code}``.
    """

    def __init__(self, client: BackendClient, clock: Callable[[], datetime] = utcnow):
        """
        Args:
            client: Backend API client
            clock: Returns the current time, used for expiry checks
        """
        self.client = client
        self.clock = clock

    async def resolve(self, short_code: Optional[str]) -> LinkRecord:
        """
        Resolve a short code.

        Args:
            short_code: The short code taken from the route

        Returns:
            The active, non-expired LinkRecord

        Raises:
            LinkResolutionError: One of the subclasses listed in the module docstring
        """
        code = sanitize_short_code(short_code)
        if code is None:
            raise InvalidShortCodeError(short_code)

        response = await self.client.get(f"/links/{quote(code)}")

        if not response.success:
            raise self._classify_failure(code, response)

        try:
            link = LinkRecord.model_validate(response.data)
        except ValidationError as e:
            logger.warning(f"Backend returned unusable link data for {code}: {e}")
            raise InvalidLinkDataError(code, detail=str(e)) from e

        if not link.is_active:
            raise LinkInactiveError(code, link)

        if link.is_expired(self.clock()):
            raise LinkExpiredError(code, link)

        logger.debug(f"Resolved {code} -> {link.original_url}")
        return link

    def _classify_failure(self, code: str, response: BackendResponse) -> LinkResolutionError:
        """Map a non-2xx backend response onto the resolution error taxonomy."""
        status_code = response.status_code

        if status_code in (400, 422):
            return InvalidShortCodeError(code)
        if status_code == 403:
            return LinkInactiveError(code, self._record_from_error(response))
        if status_code == 404:
            return LinkNotFoundError(code)
        if status_code == 410:
            return LinkExpiredError(code, self._record_from_error(response))

        return NetworkError(
            f"Failed to load link information ({response.message})",
            short_code=code,
            status_code=status_code,
        )

    @staticmethod
    def _record_from_error(response: BackendResponse) -> Optional[LinkRecord]:
        """Some backends still send the record along with 403/410."""
        payload = response.data
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        try:
            return LinkRecord.model_validate(payload)
        except ValidationError:
            return None
