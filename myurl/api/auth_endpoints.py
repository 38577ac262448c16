"""
FastAPI Endpoints for Authentication

The browser never sees the backend access token. Login and signup store a
SessionContext server-side and answer with an httponly session cookie;
every authenticated route resolves the cookie back into a SessionContext.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from myurl.api.schemas import AuthSessionResponse, LoginRequest, LogoutResponse, SignupRequest
from myurl.core.exceptions import AuthenticationError, NetworkError, SessionExpiredError
from myurl.core.models import SessionContext
from myurl.core.rate_limit import RATE_LIMITS, limiter
from myurl.core.service_manager import get_backend_client, get_session_store
from myurl.core.setting import settings
from myurl.services.auth_service import AuthService
from myurl.services.backend_client import BackendClient
from myurl.services.session_store import SessionStore

router = APIRouter(prefix="/auth")


def get_auth_service(
    client: BackendClient = Depends(get_backend_client),
    store: SessionStore = Depends(get_session_store),
) -> AuthService:
    return AuthService(client, store)


async def get_current_session(
    session_id: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    store: SessionStore = Depends(get_session_store),
) -> Optional[SessionContext]:
    """Session bound to the request cookie, or None when logged out."""
    if not session_id:
        return None
    return await store.load(session_id)


def _set_session_cookie(response: Response, context: SessionContext) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=context.session_id,
        max_age=settings.AUTH_SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
    )


def _auth_failed(e: AuthenticationError) -> HTTPException:
    code = e.status_code if e.status_code in (400, 401, 409, 422) else status.HTTP_401_UNAUTHORIZED
    return HTTPException(status_code=code, detail=str(e))


@router.post(
    "/login",
    response_model=AuthSessionResponse,
    summary="Log in"
)
@limiter.limit(RATE_LIMITS["auth"])
async def login(
    request: Request,  # Required for rate limiting
    response: Response,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthSessionResponse:
    """
    Raises:
        HTTPException 401: If the credentials are rejected
        HTTPException 502: If the backend is unreachable
    """
    try:
        context = await auth.login(body.email, body.password)
    except AuthenticationError as e:
        raise _auth_failed(e)
    except NetworkError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    _set_session_cookie(response, context)
    return AuthSessionResponse(user=context.user, is_admin=context.is_admin)


@router.post(
    "/signup",
    response_model=AuthSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account"
)
@limiter.limit(RATE_LIMITS["auth"])
async def signup(
    request: Request,  # Required for rate limiting
    response: Response,
    body: SignupRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthSessionResponse:
    try:
        context = await auth.signup(body.full_name, body.email, body.password)
    except AuthenticationError as e:
        raise _auth_failed(e)
    except NetworkError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    _set_session_cookie(response, context)
    return AuthSessionResponse(user=context.user, is_admin=context.is_admin)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Log out"
)
async def logout(
    response: Response,
    session_id: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    auth: AuthService = Depends(get_auth_service),
) -> LogoutResponse:
    logged_out = await auth.logout(session_id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return LogoutResponse(logged_out=logged_out)


@router.get(
    "/me",
    response_model=AuthSessionResponse,
    summary="Current user"
)
async def me(
    context: Optional[SessionContext] = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthSessionResponse:
    """
    Raises:
        HTTPException 401: If there is no session or the backend expired it
        HTTPException 502: If the backend is unreachable
    """
    if context is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")

    try:
        user = await auth.current_user(context)
    except SessionExpiredError as e:
        # The stored session is gone, drop the stale cookie as well
        expired = JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": str(e)})
        expired.delete_cookie(settings.SESSION_COOKIE_NAME)
        return expired
    except AuthenticationError as e:
        raise _auth_failed(e)
    except NetworkError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return AuthSessionResponse(user=user, is_admin=user.role == "admin")
