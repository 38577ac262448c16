"""
FastAPI Endpoints for the Redirect/Preview View

Endpoints only handle:
- Request validation and rate limiting
- Translating domain errors into HTTP responses
- Delegating to the redirect session registry and services

The view is mounted with ``POST /redirects/{short_code}``; the browser then
polls the session and posts "go", "cancel" or "retry" actions. When the
session reaches ``redirecting`` the browser performs a full navigation to
``navigate_to``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from myurl.api.schemas import (
    CancelResponse,
    ErrorDetail,
    MetaTag,
    PageMetaResponse,
    RedirectSessionResponse,
)
from myurl.core.exceptions import (
    InvalidTransitionError,
    LinkResolutionError,
    RedirectSessionNotFoundError,
)
from myurl.core.models import FailureReason, RedirectPhase
from myurl.core.rate_limit import RATE_LIMITS, limiter
from myurl.core.service_manager import get_backend_client, get_session_registry
from myurl.core.setting import settings
from myurl.services.backend_client import BackendClient
from myurl.services.link_resolver import LinkResolver
from myurl.services.metadata_enricher import MetadataEnricher
from myurl.services.page_meta import build_page_meta
from myurl.services.redirect_controller import RedirectController
from myurl.services.session_registry import RedirectSessionRegistry

router = APIRouter()

HTTP_STATUS_BY_REASON = {
    FailureReason.INVALID_SHORT_CODE: status.HTTP_400_BAD_REQUEST,
    FailureReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureReason.EXPIRED: status.HTTP_410_GONE,
    FailureReason.INACTIVE: status.HTTP_403_FORBIDDEN,
    FailureReason.NETWORK_ERROR: status.HTTP_502_BAD_GATEWAY,
    FailureReason.INVALID_LINK_DATA: status.HTTP_502_BAD_GATEWAY,
}


def _lookup(registry: RedirectSessionRegistry, session_id: str) -> RedirectController:
    try:
        return registry.get(session_id)
    except RedirectSessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _session_response(session_id: str, controller: RedirectController) -> RedirectSessionResponse:
    return RedirectSessionResponse(session_id=session_id, session=controller.session)


@router.post(
    "/redirects/{short_code}",
    response_model=RedirectSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a redirect session",
    description="Resolves a short code and starts the redirect countdown"
)
@limiter.limit(RATE_LIMITS["open_redirect"])
async def open_redirect_session(
    request: Request,  # Required for rate limiting
    short_code: str,
    countdown: Optional[int] = Query(
        default=None,
        ge=1,
        le=settings.MAX_COUNTDOWN_SECONDS,
        description="Countdown length in seconds"
    ),
    client: BackendClient = Depends(get_backend_client),
    registry: RedirectSessionRegistry = Depends(get_session_registry),
) -> RedirectSessionResponse:
    """
    Mount the redirect view for a short code.

    Resolution failures are part of the session state (phase ``failed``),
    not HTTP errors: the view renders them with a way back home.
    """
    session_id, controller = await registry.open(
        short_code,
        resolver=LinkResolver(client),
        enricher=MetadataEnricher(client),
        countdown_seconds=countdown,
    )
    return _session_response(session_id, controller)


@router.get(
    "/redirects/sessions/{session_id}",
    response_model=RedirectSessionResponse,
    summary="Poll a redirect session"
)
async def get_redirect_session(
    session_id: str,
    registry: RedirectSessionRegistry = Depends(get_session_registry),
) -> RedirectSessionResponse:
    controller = _lookup(registry, session_id)
    return _session_response(session_id, controller)


@router.post(
    "/redirects/sessions/{session_id}/go",
    response_model=RedirectSessionResponse,
    summary="Skip the countdown"
)
async def go_now(
    session_id: str,
    registry: RedirectSessionRegistry = Depends(get_session_registry),
) -> RedirectSessionResponse:
    """
    Redirect immediately. Repeating the call after the redirect started is
    harmless and returns the same state.

    Raises:
        HTTPException 404: If the session is unknown
        HTTPException 409: If the session is not ready or already redirecting
    """
    controller = _lookup(registry, session_id)
    if controller.phase not in (RedirectPhase.READY, RedirectPhase.REDIRECTING) or controller.closed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot redirect a session in phase '{controller.phase.value}'"
        )
    controller.go_now()
    return _session_response(session_id, controller)


@router.post(
    "/redirects/sessions/{session_id}/cancel",
    response_model=CancelResponse,
    summary="Cancel the redirect"
)
async def cancel_redirect(
    session_id: str,
    registry: RedirectSessionRegistry = Depends(get_session_registry),
) -> CancelResponse:
    """
    Stop the countdown and send the visitor back to the home page.

    Raises:
        HTTPException 404: If the session is unknown
        HTTPException 409: If the redirect already started or the session failed
    """
    controller = _lookup(registry, session_id)
    if not controller.cancel():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot cancel a session in phase '{controller.phase.value}'"
        )
    await registry.discard(session_id)
    return CancelResponse(navigate_to=f"{settings.FRONTEND_URL.rstrip('/')}/")


@router.post(
    "/redirects/sessions/{session_id}/retry",
    response_model=RedirectSessionResponse,
    summary="Retry a failed resolution"
)
async def retry_redirect(
    session_id: str,
    registry: RedirectSessionRegistry = Depends(get_session_registry),
) -> RedirectSessionResponse:
    """
    Raises:
        HTTPException 404: If the session is unknown
        HTTPException 409: If the session did not fail with a retryable error
    """
    controller = _lookup(registry, session_id)
    try:
        await controller.retry()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _session_response(session_id, controller)


@router.get(
    "/preview/{short_code}",
    response_model=PageMetaResponse,
    summary="Link preview data",
    description="Destination metadata and meta tags for a short link preview page"
)
@limiter.limit(RATE_LIMITS["preview"])
async def get_link_preview(
    request: Request,  # Required for rate limiting
    short_code: str,
    client: BackendClient = Depends(get_backend_client),
) -> PageMetaResponse:
    """
    Raises:
        HTTPException 400/403/404/410: If the link cannot be followed
        HTTPException 502: If the backend failed or sent unusable data
    """
    try:
        link = await LinkResolver(client).resolve(short_code)
    except LinkResolutionError as e:
        raise HTTPException(
            status_code=HTTP_STATUS_BY_REASON[e.reason],
            detail=ErrorDetail(detail=e.user_message, reason=e.reason.value).model_dump()
        )

    metadata = await MetadataEnricher(client).enrich(link.original_url)
    page_meta = build_page_meta(link.short_code, link, metadata)

    return PageMetaResponse(
        short_code=link.short_code,
        link=link,
        metadata=metadata,
        title=page_meta.title,
        canonical_url=page_meta.url,
        tags=[
            MetaTag(attribute=attribute, name=name, content=content)
            for attribute, name, content in page_meta.tags()
        ],
    )
