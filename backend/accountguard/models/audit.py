"""
Audit event model for auth_db.audit_logs.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Security-relevant actions written to the audit trail."""
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET = "PASSWORD_RESET"
    SESSIONS_REVOKED = "SESSIONS_REVOKED"


class AuditEvent(BaseModel):
    """
    One audit trail entry.
    """
    user_id: Optional[str] = Field(None, description="Acting or affected subject")
    action: AuditAction = Field(..., description="What happened")
    resource_type: str = Field(..., description="Kind of resource (AUTH, USER)")
    resource_id: Optional[str] = Field(None, description="Resource identifier")
    details: dict[str, Any] = Field(default_factory=dict, description="Internal reason and context")
    ip_address: Optional[str] = Field(None, description="Source IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    created_at: Optional[datetime] = Field(None, description="Set by the sink when written")

    class Config:
        use_enum_values = True
