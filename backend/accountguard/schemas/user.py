"""
User response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PublicUser(BaseModel):
    """User information returned to clients (never includes the password hash)."""
    id: str = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    role: str = Field(..., description="Role identifier")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")
    is_active: bool = Field(default=True, description="Account status")
    last_login: Optional[datetime] = Field(None, description="Last successful login")
