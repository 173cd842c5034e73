"""Dependency injection function for the identity provider client."""

from app.services.identity import IdentityClient, create_identity_client


def get_identity_client() -> IdentityClient:
    """Get identity client configured from settings."""
    return create_identity_client()
