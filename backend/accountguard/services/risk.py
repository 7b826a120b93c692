"""
Login risk scoring from IP, device and time-of-day history.
"""
import re
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from accountguard.core.policy import RiskPolicy
from accountguard.core.timeutils import utcnow
from accountguard.schemas.protection import RiskAction, RiskAssessment
from accountguard.services.login_ledger import LoginAttemptLedger

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def _normalize_agent(user_agent: str) -> str:
    return _NON_ALPHANUMERIC.sub("", user_agent.lower())


def browsers_match(current: str, known: str, browser_tokens: Iterable[str]) -> bool:
    """True if both user agents mention the same browser family."""
    current = _normalize_agent(current)
    known = _normalize_agent(known)
    return any(token in current and token in known for token in browser_tokens)


def action_for_score(score: int, policy: RiskPolicy) -> RiskAction:
    if score >= policy.block_threshold:
        return RiskAction.BLOCK
    if score >= policy.challenge_threshold:
        return RiskAction.CHALLENGE
    return RiskAction.ALLOW


class RiskAssessor:
    """
    Additive anomaly score for a login attempt.

    Factors are independent, each capped on its own, then summed and
    clamped to 0-100. Factor descriptions keep evaluation order.
    """

    def __init__(self, ledger: LoginAttemptLedger, policy: RiskPolicy):
        self.ledger = ledger
        self.policy = policy
        self._timezone: Optional[tzinfo] = (
            ZoneInfo(policy.local_timezone) if policy.local_timezone else None
        )

    async def assess(
        self,
        email: str,
        ip_address: str,
        user_agent: Optional[str] = None,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        """
        Score a login attempt.

        Args:
            email: Email the attempt is made against
            ip_address: Source IP of the attempt
            user_agent: Client user agent, if any
            user_id: Resolved subject; IP and device history need it
            now: Evaluation time (defaults to the current time)

        Returns:
            RiskAssessment with score, factors and recommended action
        """
        policy = self.policy
        now = now or utcnow()
        score = 0
        factors: list[str] = []

        failures = await self.ledger.recent_failures(
            email, timedelta(minutes=policy.failure_window_minutes), now=now
        )
        if failures:
            score += min(len(failures) * policy.failure_weight, policy.failure_cap)
            factors.append(f"{len(failures)} recent failed attempts")

        if user_id:
            known_ips = await self.ledger.known_ip_addresses(
                user_id, now - timedelta(days=policy.known_ip_window_days)
            )
            # No history yet means nothing to compare against
            if known_ips and ip_address not in known_ips:
                score += policy.unknown_ip_weight
                factors.append("Unusual IP address")

        if user_id and user_agent:
            known_agents = await self.ledger.recent_user_agents(
                user_id,
                now - timedelta(days=policy.known_agent_window_days),
                limit=policy.known_agent_sample,
            )
            if len(known_agents) >= policy.known_agent_minimum and not any(
                browsers_match(user_agent, known, policy.browser_tokens)
                for known in known_agents
            ):
                score += policy.unknown_agent_weight
                factors.append("Unusual device/browser")

        hour = now.astimezone(self._timezone).hour
        if not policy.usual_hours_start <= hour < policy.usual_hours_end:
            score += policy.unusual_hour_weight
            factors.append("Unusual login time")

        score = max(0, min(score, 100))
        return RiskAssessment(
            score=score,
            factors=factors,
            action=action_for_score(score, policy),
        )
