"""Category data model for FIVLO."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Category(BaseModel):
    """User-owned task category (name + display color)."""

    id: str = Field(..., description="Unique category identifier")
    user_id: str = Field(..., description="User ID who owns this category")
    name: str = Field(..., description="Category name")
    color: str = Field(..., description="Display color (hex)")
    icon: Optional[str] = Field(None, description="Optional icon name")
    sort_order: int = Field(0, description="Display order")
    is_default: bool = Field(False, description="Whether this is the user's default category")
    is_active: bool = Field(True, description="Soft-delete flag")
    created_at: datetime = Field(..., description="Category creation timestamp")
