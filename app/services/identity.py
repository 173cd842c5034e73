"""Email/password identity via the Firebase Identity Toolkit REST API."""

from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.exceptions import ConfigurationError, IdentityError
from app.core.logging import setup_logger

logger = setup_logger(__name__)


class IdentitySession(BaseModel):
    """Tokens returned after a successful sign-in or sign-up."""

    user_id: str = Field(..., description="Provider user identifier (localId)")
    email: str = Field(..., description="Account email")
    id_token: str = Field(..., description="Short-lived ID token")
    refresh_token: str = Field(..., description="Token used to refresh the session")
    expires_in: int = Field(..., description="ID token lifetime in seconds")


class IdentityClient:
    """Thin async client for the two account endpoints the app uses."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def sign_in(self, email: str, password: str) -> IdentitySession:
        """Sign in an existing account."""
        data = await self._post("accounts:signInWithPassword", email, password, 401)
        logger.info(f"User signed in: {data.get('localId')}")
        return self._to_session(data)

    async def sign_up(self, email: str, password: str) -> IdentitySession:
        """Create a new account and sign it in."""
        data = await self._post("accounts:signUp", email, password, 400)
        logger.info(f"User signed up: {data.get('localId')}")
        return self._to_session(data)

    async def _post(
        self, endpoint: str, email: str, password: str, failure_status: int
    ) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("FIREBASE_API_KEY is not configured")

        url = f"{self.base_url}/{endpoint}"
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url, params={"key": self.api_key}, json=payload
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider request failed: {e}")
            raise IdentityError(
                "Identity provider unavailable", status_code=502
            ) from e

        if response.is_success:
            return response.json()

        code = _error_code(response)
        logger.warning(f"Identity provider rejected {endpoint}: {code}")
        raise IdentityError(code, status_code=failure_status, details={"code": code})

    @staticmethod
    def _to_session(data: Dict[str, Any]) -> IdentitySession:
        return IdentitySession(
            user_id=data["localId"],
            email=data.get("email", ""),
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken", ""),
            expires_in=int(data.get("expiresIn", 3600)),
        )


def _error_code(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"Identity provider error ({response.status_code})"


def create_identity_client(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> IdentityClient:
    """Build a client from application settings."""
    return IdentityClient(
        api_key=settings.FIREBASE_API_KEY,
        base_url=settings.IDENTITY_API_URL,
        transport=transport,
    )
