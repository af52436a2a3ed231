import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from elitetime.api.dependencies import get_session_token
from elitetime.core.config import settings
from elitetime.core.database import get_async_session
from elitetime.core.request_context import get_request_context
from elitetime.schemas.auth.auth_schema import LoginRequest, LoginResponse, MeResponse
from elitetime.schemas.auth.user_schema import SafeUser
from elitetime.services.auth.auth_service import AuthService
from elitetime.services.auth.session_service import SessionService
from elitetime.services.directory.ldap_client import DirectoryClient, get_directory_client
from elitetime.utils.rate_limiter import check_login_rate_limit

router = APIRouter()
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        domain=settings.COOKIE_DOMAIN,
        path="/",
    )


def _clear_session_cookie(response: Response):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        domain=settings.COOKIE_DOMAIN,
        path="/",
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    session: AsyncSession = Depends(get_async_session),
    directory: DirectoryClient = Depends(get_directory_client),
    _: None = Depends(check_login_rate_limit),
):
    """Authenticate against the directory and open a cookie session."""
    try:
        req_context = get_request_context(request)
        auth_service = AuthService(session, directory)
        user, user_session = await auth_service.login(
            username=login_data.username,
            password=login_data.password,
            ip_address=req_context["ip_address"],
        )
        _set_session_cookie(response, user_session.session_token)
        return LoginResponse(user=SafeUser.model_validate(user, from_attributes=True))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors de la connexion")


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_async_session),
    directory: DirectoryClient = Depends(get_directory_client),
):
    await AuthService(session, directory).logout(get_session_token(request))
    _clear_session_cookie(response)
    return {"success": True}


@router.get("/me", response_model=MeResponse)
async def me(request: Request, session: AsyncSession = Depends(get_async_session)):
    """Current user, or ``{"user": null}`` without a valid session."""
    user = await SessionService(session).get_user(get_session_token(request))
    return MeResponse(user=SafeUser.model_validate(user, from_attributes=True) if user else None)
