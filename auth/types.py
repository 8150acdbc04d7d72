"""Pydantic models for auth domain."""

from datetime import datetime

from pydantic import BaseModel, Field


class Session(BaseModel):
    """
    An active user session, as written by the external auth service.

    Only read here; creating, extending and revoking sessions is the auth
    service's job.
    """

    token: str = Field(..., description="Session token (opaque string)")
    user_id: str = Field(..., min_length=1)
    is_admin: bool = False
    created_at: datetime
    expires_at: datetime
