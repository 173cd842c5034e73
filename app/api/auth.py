"""Email/password sign-in and sign-up endpoints."""

from fastapi import APIRouter, Depends, status

from app.dependencies.get_identity_client import get_identity_client
from app.schemas.auth import CredentialsRequest
from app.services.identity import IdentityClient, IdentitySession

router = APIRouter(tags=["auth"], prefix="/auth")


@router.post(
    "/sign-in",
    status_code=status.HTTP_200_OK,
    response_model=IdentitySession,
    summary="Sign in with email and password",
)
async def sign_in(
    request: CredentialsRequest,
    identity_client: IdentityClient = Depends(get_identity_client),
) -> IdentitySession:
    """
    Sign in an existing account with the identity provider.

    The returned `user_id` is the value to send as the `User-Id` header on
    chat requests whose history should be kept.
    """
    return await identity_client.sign_in(request.email, request.password)


@router.post(
    "/sign-up",
    status_code=status.HTTP_201_CREATED,
    response_model=IdentitySession,
    summary="Create an account with email and password",
)
async def sign_up(
    request: CredentialsRequest,
    identity_client: IdentityClient = Depends(get_identity_client),
) -> IdentitySession:
    """Create a new account and return its session tokens."""
    return await identity_client.sign_up(request.email, request.password)
