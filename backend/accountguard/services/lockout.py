"""
Progressive lockout evaluation.

The decision is recomputed from the ledger on every call and never stored.
"""
from datetime import datetime
from typing import Optional, Sequence

from accountguard.core.policy import LockoutPolicy, LockoutTier
from accountguard.core.timeutils import utcnow
from accountguard.models.login_attempt import LoginAttempt
from accountguard.schemas.protection import LockoutDecision
from accountguard.services.login_ledger import LoginAttemptLedger


def select_tier(failure_count: int, policy: LockoutPolicy) -> Optional[LockoutTier]:
    """
    Pick the lockout tier for *failure_count*.

    Tiers are walked in ascending threshold order. With "first_match" the walk
    stops at the first satisfied threshold, i.e. the lowest qualifying tier;
    with "highest" the last satisfied one wins.
    """
    selected = None
    for tier in policy.ordered_tiers:
        if failure_count >= tier.threshold:
            if policy.tier_selection == "first_match":
                return tier
            selected = tier
    return selected


def evaluate_lockout(
    failures: Sequence[LoginAttempt],
    policy: LockoutPolicy,
    now: Optional[datetime] = None,
) -> LockoutDecision:
    """
    Turn recent failures (newest first) into a lockout decision.

    The unlock time counts from the most recent failure, not the first.
    """
    now = now or utcnow()
    failure_count = len(failures)

    tier = select_tier(failure_count, policy)
    if tier is None:
        return LockoutDecision(locked=False, attempts=failure_count)

    last_failure = failures[0].attempted_at if failures else now
    unlock_at = last_failure + tier.duration
    return LockoutDecision(
        locked=unlock_at > now,
        unlock_at=unlock_at,
        attempts=failure_count,
    )


class LockoutEvaluator:
    """Reads the ledger window and applies the lockout policy."""

    def __init__(self, ledger: LoginAttemptLedger, policy: LockoutPolicy):
        self.ledger = ledger
        self.policy = policy

    async def check(self, email: str, now: Optional[datetime] = None) -> LockoutDecision:
        now = now or utcnow()
        failures = await self.ledger.recent_failures(email, self.policy.window, now=now)
        return evaluate_lockout(failures, self.policy, now)
