"""
Immutable policy values for lockout, risk scoring and token lifetimes.

Built once from Settings and passed into the services at construction,
so tests can swap thresholds without touching process-wide state.
"""
from datetime import timedelta
from typing import Literal, Optional

from pydantic import BaseModel, Field

from accountguard.config import Settings


class LockoutTier(BaseModel):
    """One threshold/duration pair of the progressive lockout table."""
    threshold: int = Field(..., ge=1, description="Failed attempts needed to enter the tier")
    duration_minutes: int = Field(..., ge=1, description="Lock duration from the last failure")

    class Config:
        frozen = True

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)


DEFAULT_LOCKOUT_TIERS = (
    LockoutTier(threshold=3, duration_minutes=1),
    LockoutTier(threshold=5, duration_minutes=5),
    LockoutTier(threshold=8, duration_minutes=15),
    LockoutTier(threshold=10, duration_minutes=60),
)


class LockoutPolicy(BaseModel):
    tiers: tuple[LockoutTier, ...] = DEFAULT_LOCKOUT_TIERS
    window_hours: int = 24
    # "first_match" returns the lowest qualifying tier; "highest" escalates.
    tier_selection: Literal["first_match", "highest"] = "first_match"

    class Config:
        frozen = True

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.window_hours)

    @property
    def ordered_tiers(self) -> tuple[LockoutTier, ...]:
        return tuple(sorted(self.tiers, key=lambda tier: tier.threshold))


class RiskPolicy(BaseModel):
    failure_window_minutes: int = 60
    failure_weight: int = 10
    failure_cap: int = 30

    known_ip_window_days: int = 30
    unknown_ip_weight: int = 25

    known_agent_window_days: int = 7
    known_agent_sample: int = 10
    known_agent_minimum: int = 3
    unknown_agent_weight: int = 15
    browser_tokens: tuple[str, ...] = ("chrome", "firefox", "safari", "edge", "opera")

    # Half-open [start, end) range of local hours considered normal.
    usual_hours_start: int = 6
    usual_hours_end: int = 22
    unusual_hour_weight: int = 10
    local_timezone: Optional[str] = None

    challenge_threshold: int = 40
    block_threshold: int = 70
    block_high_risk_logins: bool = False

    class Config:
        frozen = True


class TokenPolicy(BaseModel):
    access_token_minutes: int = 15
    refresh_token_days: int = 7
    revoke_on_rotation: bool = False
    password_reset_minutes: int = 60

    class Config:
        frozen = True

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_token_days)

    @property
    def password_reset_ttl(self) -> timedelta:
        return timedelta(minutes=self.password_reset_minutes)


class AuthPolicy(BaseModel):
    """Bundle of every policy the orchestrator needs."""
    lockout: LockoutPolicy = LockoutPolicy()
    risk: RiskPolicy = RiskPolicy()
    tokens: TokenPolicy = TokenPolicy()
    attempt_retention_days: int = 30

    class Config:
        frozen = True

    @property
    def attempt_retention(self) -> timedelta:
        return timedelta(days=self.attempt_retention_days)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthPolicy":
        return cls(
            lockout=LockoutPolicy(
                window_hours=settings.lockout_window_hours,
                tier_selection=settings.lockout_tier_selection,
            ),
            risk=RiskPolicy(
                local_timezone=settings.risk_local_timezone,
                block_high_risk_logins=settings.risk_block_high_risk_logins,
            ),
            tokens=TokenPolicy(
                access_token_minutes=settings.jwt_access_token_expire_minutes,
                refresh_token_days=settings.jwt_refresh_token_expire_days,
                revoke_on_rotation=settings.refresh_token_revoke_on_rotation,
                password_reset_minutes=settings.password_reset_token_expire_minutes,
            ),
            attempt_retention_days=settings.login_attempt_retention_days,
        )
