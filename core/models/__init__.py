"""
AuraLock Core Models

Deterministic trust scoring.
"""

from core.models.zk_score import (
    ZKScoreEngine,
    allows_banking_access,
    calculate_zk_score,
    describe_risk,
    risk_tier_for,
    security_recommendations,
)

__all__ = [
    "ZKScoreEngine",
    "calculate_zk_score",
    "risk_tier_for",
    "describe_risk",
    "security_recommendations",
    "allows_banking_access",
]
