"""Authentication middleware and utilities."""

import secrets
from typing import Optional

from fastapi import HTTPException, Header, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import settings
from app.core.logging import setup_logger

logger = setup_logger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware to check the shared Ai-Token when one is configured."""

    def __init__(self, app: ASGIApp, auth_token: Optional[str] = None):
        super().__init__(app)
        self.auth_token = settings.AUTH_TOKEN if auth_token is None else auth_token
        # Endpoints that don't require authentication
        self.excluded_paths = {"/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        """Process the request and check authentication."""
        if not self.auth_token:
            return await call_next(request)

        # Skip authentication for excluded paths
        if request.url.path in self.excluded_paths:
            logger.debug(
                f"Skipping authentication for excluded path: {request.url.path}"
            )
            return await call_next(request)

        auth_token = request.headers.get("Ai-Token")

        if not auth_token:
            logger.warning(f"Missing Ai-Token header for path: {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Missing Ai-Token header"},
            )

        if not secrets.compare_digest(auth_token, self.auth_token):
            logger.warning(f"Invalid Ai-Token for path: {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Invalid authentication token"},
            )

        logger.debug(f"Authentication successful for path: {request.url.path}")
        return await call_next(request)


async def get_user_id(
    user_id: str = Header(..., alias="User-Id", description="User identifier")
) -> str:
    """
    FastAPI dependency to extract and validate user_id from request headers.

    Args:
        user_id: User identifier from 'User-Id' header

    Returns:
        str: The user ID

    Raises:
        HTTPException: If User-Id header is missing or invalid
    """
    if not user_id or not user_id.strip():
        logger.warning("Invalid or empty User-Id header provided")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid User-Id header",
        )

    logger.debug(f"Extracted user_id: {user_id}")
    return user_id.strip()


async def get_optional_user_id(
    user_id: Optional[str] = Header(
        default=None,
        alias="User-Id",
        description="User identifier; conversations are only persisted when set",
    )
) -> Optional[str]:
    """Like :func:`get_user_id`, but anonymous requests are allowed."""
    if user_id is None or not user_id.strip():
        return None
    return user_id.strip()
