"""User data model for FIVLO."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from fivlo.models.constants import DEFAULT_TIMEZONE


class User(BaseModel):
    """User model for FIVLO.

    `coins` is the cached wallet balance. The reward ledger is the source of truth;
    the balance only changes together with a ledger append.
    """

    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(None, description="User display name")
    timezone: str = Field(DEFAULT_TIMEZONE, description="IANA timezone used for calendar days")
    is_premium: bool = Field(False, description="Whether the user has a paid plan")
    coins: int = Field(0, ge=0, description="Cached coin balance")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")
