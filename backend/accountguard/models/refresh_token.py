"""
Refresh token record for the revocation index (auth_db.refresh_tokens).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RefreshTokenRecord(BaseModel):
    """
    Bookkeeping for one issued refresh token, keyed by its token ID.
    """
    token_id: str = Field(..., alias="_id", description="Random token ID embedded in the JWT")
    user_id: str = Field(..., description="Owning subject")
    generation: int = Field(default=0, description="Subject token generation at issuance")
    revoked: bool = Field(default=False, description="Revoked tokens are rejected on use")
    revoked_at: Optional[datetime] = Field(None, description="When the token was revoked")
    created_at: datetime = Field(..., description="Issue time (UTC)")
    expires_at: datetime = Field(..., description="Expiry time (UTC)")

    class Config:
        populate_by_name = True
