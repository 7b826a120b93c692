"""
Account-protection schemas: lockout decisions, risk assessments and login stats.

None of these are persisted; they are derived from the login attempt ledger.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PasswordStrength(BaseModel):
    """Result of a password strength check."""
    valid: bool = Field(..., description="Whether every rule passed")
    reason: Optional[str] = Field(None, description="First rule violated")


class LockoutDecision(BaseModel):
    """Progressive lockout status computed from recent failures."""
    locked: bool = Field(..., description="Whether login is currently refused")
    unlock_at: Optional[datetime] = Field(
        None, description="End of the applicable lock, from the most recent failure"
    )
    attempts: int = Field(..., description="Failed attempts inside the lockout window")


class RiskAction(str, Enum):
    ALLOW = "allow"
    CHALLENGE = "challenge"
    BLOCK = "block"


class RiskAssessment(BaseModel):
    """Additive anomaly score for a login attempt."""
    score: int = Field(..., ge=0, le=100, description="0-100, higher is riskier")
    factors: list[str] = Field(default_factory=list, description="Contributing factors in evaluation order")
    action: RiskAction = Field(..., description="Recommended action")


class FailingSource(BaseModel):
    ip: str = Field(..., description="Source IP address")
    count: int = Field(..., description="Failed attempts from this source")


class LoginStats(BaseModel):
    """Login attempt aggregation for monitoring."""
    total_attempts: int = Field(..., description="All attempts in the window")
    successful_attempts: int = Field(..., description="Successful attempts in the window")
    failed_attempts: int = Field(..., description="Failed attempts in the window")
    top_failing_ips: list[FailingSource] = Field(
        default_factory=list,
        description="Up to 10 sources, by failures descending then IP ascending",
    )


class CleanupResponse(BaseModel):
    message: str = Field(..., description="Human-readable summary")
    deleted_count: int = Field(..., description="Login attempts removed")


class RevokeSessionsResponse(BaseModel):
    user_id: str = Field(..., description="Subject whose sessions were revoked")
    revoked_tokens: int = Field(..., description="Tracked refresh tokens marked revoked")
