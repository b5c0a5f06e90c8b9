"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    An authenticated principal (identity) supplied by the Auth Service.

    Populated either from verified JWT claims or from the Auth Service's
    user lookup. Immutable for the lifetime of the session.
    """

    id: str = Field(..., description="User ID (UUID from Supabase)")
    email: str = Field(default="", description="User's email address")
    email_verified: bool = Field(default=False, description="Whether email is verified")

    created_at: Optional[datetime] = Field(None, description="Account creation time")
    last_sign_in: Optional[datetime] = Field(None, description="Last sign-in time")

    role: str = Field(default="user", description="User role")

    model_config = {
        "frozen": True,  # Make immutable for safety
        "extra": "ignore",  # Ignore extra fields from JWT
    }


class NavigationOutcome(BaseModel):
    """
    Result of an auth action as seen by the front end.

    Callers redirect to ``url`` when present and otherwise display ``error``.
    """

    error: Optional[str] = Field(None, description="Human-readable error message")
    url: Optional[str] = Field(None, description="Where the browser should go next")
