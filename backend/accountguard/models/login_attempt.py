"""
Login attempt model for the append-only ledger (auth_db.login_attempts).
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LoginAttempt(BaseModel):
    """
    One login attempt. Never updated once written; only the retention sweep deletes it.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    email: str = Field(..., description="Email the attempt was made against")
    user_id: Optional[str] = Field(None, description="Subject ID, present only if resolved")
    ip_address: str = Field(..., description="Source IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    successful: bool = Field(..., description="Whether the attempt succeeded")
    attempted_at: datetime = Field(..., description="When the attempt happened (UTC)")

    class Config:
        populate_by_name = True
        frozen = True
