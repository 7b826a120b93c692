"""
Service layer for authentication and account protection.
"""
from accountguard.services.auth_service import AuthService
from accountguard.services.audit_service import AuditService
from accountguard.services.lockout import LockoutEvaluator, evaluate_lockout
from accountguard.services.login_ledger import LoginAttemptLedger
from accountguard.services.risk import RiskAssessor
from accountguard.services.token_service import TokenService

__all__ = [
    "AuthService",
    "AuditService",
    "LockoutEvaluator",
    "evaluate_lockout",
    "LoginAttemptLedger",
    "RiskAssessor",
    "TokenService",
]
