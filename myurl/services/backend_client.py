"""
Backend API Client

Single entry point for every call to the external link backend.

Responsibilities:
- One shared httpx.AsyncClient (connection pooling, default timeout)
- Bearer token taken from an explicitly passed SessionContext
- Response normalisation into one typed envelope (BackendResponse)
- Transport failures surfaced as NetworkError
- 401 on an authenticated call surfaced as SessionExpiredError

The backend is inconsistent about response shapes: some endpoints wrap
the payload in ``{"data": ...}`` or ``{"success": true, "data": ...}``,
others return the object directly. Callers only ever see ``data``.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from myurl.core.exceptions import NetworkError, SessionExpiredError
from myurl.core.models import SessionContext

logger = logging.getLogger(__name__)

# Sentinel so callers can pass timeout=None to disable the client default
USE_CLIENT_DEFAULT: Any = httpx.USE_CLIENT_DEFAULT


class BackendResponse(BaseModel):
    """Normalised result of a backend call."""
    status_code: int
    success: bool
    data: Any = None
    message: Optional[str] = None


def unwrap_envelope(payload: Any) -> Any:
    """
    Strip the optional ``{"success", "data"}`` wrapper from a response body.

    Examples:
        unwrap_envelope({"data": {"a": 1}}) -> {"a": 1}
        unwrap_envelope({"success": True, "data": {"a": 1}}) -> {"a": 1}
        unwrap_envelope({"a": 1}) -> {"a": 1}
    """
    if isinstance(payload, dict) and isinstance(payload.get("data"), (dict, list)):
        return payload["data"]
    return payload


def extract_error_message(payload: Any, status_code: int) -> str:
    """Pick the most useful error message from a failed response body."""
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Request failed with status: {status_code}"


class BackendClient:
    """
    Async client for the link backend.

    Example:
        client = BackendClient("http://localhost:3000/api", timeout=10.0)
        response = await client.get("/links/abc123")
        if response.success:
            print(response.data["originalUrl"])
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Backend API root, e.g. http://localhost:3000/api
            timeout: Default timeout in seconds for every call
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        session: Optional[SessionContext] = None,
        timeout: Any = USE_CLIENT_DEFAULT,
    ) -> BackendResponse:
        """
        Perform a backend call and normalise the result.

        Args:
            method: HTTP method
            endpoint: Path relative to the API root
            json: Optional JSON body
            session: Authenticated session; its token is sent as a bearer token
            timeout: Per-call timeout override

        Returns:
            BackendResponse with success flag, unwrapped data and error message

        Raises:
            NetworkError: If the request could not be completed
            SessionExpiredError: If an authenticated call was rejected with 401
        """
        headers = {}
        if session is not None:
            headers["Authorization"] = f"Bearer {session.access_token}"

        logger.debug(f"API call: {method.upper()} {endpoint}")

        try:
            response = await self._client.request(
                method,
                endpoint,
                json=json,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"API timeout: {method.upper()} {endpoint}")
            raise NetworkError("Network error: the server took too long to respond", original_error=e) from e
        except httpx.RequestError as e:
            logger.warning(f"API transport error: {method.upper()} {endpoint}: {e}")
            raise NetworkError(original_error=e) from e

        if response.status_code == 401 and session is not None:
            logger.info(f"Session {session.session_id} rejected by backend")
            raise SessionExpiredError()

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.is_success:
            message = extract_error_message(payload, response.status_code)
            logger.info(f"API error: {method.upper()} {endpoint} {response.status_code} {message}")
            return BackendResponse(
                status_code=response.status_code,
                success=False,
                data=payload,
                message=message,
            )

        return BackendResponse(
            status_code=response.status_code,
            success=True,
            data=unwrap_envelope(payload),
        )

    async def get(self, endpoint: str, **kwargs: Any) -> BackendResponse:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, json: Any = None, **kwargs: Any) -> BackendResponse:
        return await self.request("POST", endpoint, json=json, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
