from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse


class BaseAppException(HTTPException):
    """HTTPException carrying extra JSON fields for the error body."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.extra = extra or {}


class ValidationError(BaseAppException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class UnauthenticatedError(BaseAppException):
    def __init__(self, detail: str = "Non authentifié"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(BaseAppException):
    def __init__(self, detail: str = "Accès refusé"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidOperationError(BaseAppException):
    def __init__(self, detail: str = "Opération non autorisée"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RateLimitedError(BaseAppException):
    def __init__(self, reset_time: float, retry_after: int, detail: str = "Trop de requêtes"):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            extra={"resetTime": reset_time},
            headers={"Retry-After": str(retry_after)},
        )


class TooSoonError(BaseAppException):
    def __init__(self, remaining_minutes: int, detail: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail or f"Veuillez patienter {remaining_minutes} minute(s) avant la prochaine synchronisation",
            extra={"remainingMinutes": remaining_minutes},
        )
        self.remaining_minutes = remaining_minutes


class UnexpectedError(BaseAppException):
    def __init__(self, detail: str = "Erreur interne du serveur", details: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            extra={"details": details} if details else None,
        )


class AccessDenied(Exception):
    """Navigation guard outcome that the caller turns into a redirect."""

    def __init__(self, reason: str, redirect_to: str):
        super().__init__(reason)
        self.reason = reason
        self.redirect_to = redirect_to


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": exc.detail}
    body.update(getattr(exc, "extra", None) or {})
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def access_denied_handler(request: Request, exc: AccessDenied) -> RedirectResponse:
    return RedirectResponse(
        url=exc.redirect_to,
        status_code=status.HTTP_303_SEE_OTHER,
        headers={"X-Access-Reason": exc.reason},
    )
