"""Request models for email/password authentication."""

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Email and password submitted to sign in or sign up."""

    email: str = Field(..., min_length=3, description="Account email")
    password: str = Field(..., min_length=6, description="Account password")
