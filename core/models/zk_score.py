"""
AuraLock ZKScore Engine

Deterministic composition of the three behavioral statistics into a
trust score in [0, 1] and a discrete risk tier.

Architecture:
    blink rate      -> triangular curve around 17.5/min     (weight 0.3)
    typing speed    -> piecewise curve peaking at 50 WPM    (weight 0.3)
    swipe stability -> used directly, clamped               (weight 0.4)

Tiers (evaluated high to low):
    score >= 0.8 -> Low
    score >= 0.6 -> Medium
    score >= 0.4 -> High
    otherwise    -> Critical

Pure arithmetic: no state, no randomness, identical inputs always give
identical outputs.
"""

import math
from typing import List, Tuple

from core.schemas.outputs import RiskTier, ZKScore, ZKScoreResponse


# =============================================================================
# Constants
# =============================================================================

# Blink normalization: 1.0 at the ideal rate, 0.0 at +/- tolerance
IDEAL_BLINK_RATE = 17.5
BLINK_TOLERANCE = 5.0

# Typing normalization (WPM)
MIN_NORMAL_TYPING_SPEED = 40.0
OPTIMAL_TYPING_SPEED = 50.0
MAX_NORMAL_TYPING_SPEED = 60.0
MAX_ACCEPTABLE_TYPING_SPEED = 80.0

# Weights
BLINK_WEIGHT = 0.3
TYPING_WEIGHT = 0.3
SWIPE_WEIGHT = 0.4

# Lower bounds of each tier, highest first
TIER_THRESHOLDS: Tuple[Tuple[float, RiskTier], ...] = (
    (0.8, RiskTier.LOW),
    (0.6, RiskTier.MEDIUM),
    (0.4, RiskTier.HIGH),
)

RISK_DESCRIPTIONS = {
    RiskTier.LOW: "Low Risk - Normal behavioral patterns detected",
    RiskTier.MEDIUM: "Medium Risk - Slight behavioral deviations detected",
    RiskTier.HIGH: "High Risk - Significant behavioral changes detected",
    RiskTier.CRITICAL: "Critical Risk - Unusual behavioral patterns detected",
}

# Tiers allowed into the banking feature
BANKING_ACCESS_TIERS = frozenset({RiskTier.LOW, RiskTier.MEDIUM})


# =============================================================================
# Normalization
# =============================================================================

def _clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp to [lower, upper]; NaN maps to lower."""
    if math.isnan(value):
        return lower
    return max(lower, min(upper, value))


def normalize_blink_rate(blink_rate: float) -> float:
    deviation = abs(blink_rate - IDEAL_BLINK_RATE)
    return _clamp(1.0 - deviation / BLINK_TOLERANCE)


def normalize_typing_speed(typing_speed: float) -> float:
    """
    Three-piece typing curve.

    [40, 60]  -> 1 - |t - 50| / 10
    < 40      -> t / 40, clamped
    (60, 80]  -> 1 - (t - 60) / 20
    > 80      -> 0
    """
    if math.isnan(typing_speed):
        return 0.0

    if MIN_NORMAL_TYPING_SPEED <= typing_speed <= MAX_NORMAL_TYPING_SPEED:
        max_deviation = MAX_NORMAL_TYPING_SPEED - OPTIMAL_TYPING_SPEED
        return 1.0 - abs(typing_speed - OPTIMAL_TYPING_SPEED) / max_deviation

    if typing_speed < MIN_NORMAL_TYPING_SPEED:
        return _clamp(typing_speed / MIN_NORMAL_TYPING_SPEED)

    if typing_speed <= MAX_ACCEPTABLE_TYPING_SPEED:
        span = MAX_ACCEPTABLE_TYPING_SPEED - MAX_NORMAL_TYPING_SPEED
        return 1.0 - (typing_speed - MAX_NORMAL_TYPING_SPEED) / span

    return 0.0


def normalize_swipe_stability(swipe_stability: float) -> float:
    return _clamp(swipe_stability)


# =============================================================================
# Score & Tier
# =============================================================================

def calculate_zk_score(
    blink_rate: float,
    typing_speed: float,
    swipe_stability: float
) -> float:
    """Weighted trust score in [0, 1]."""
    score = (
        normalize_blink_rate(blink_rate) * BLINK_WEIGHT
        + normalize_typing_speed(typing_speed) * TYPING_WEIGHT
        + normalize_swipe_stability(swipe_stability) * SWIPE_WEIGHT
    )
    return _clamp(score)


def risk_tier_for(score: float) -> RiskTier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return RiskTier.CRITICAL


def describe_risk(score: float) -> str:
    return RISK_DESCRIPTIONS[risk_tier_for(score)]


def security_recommendations(score: float) -> List[str]:
    """Cumulative recommendations; empty for a low-risk score."""
    recommendations: List[str] = []
    if score < 0.8:
        recommendations.append("Consider additional authentication factors")
    if score < 0.6:
        recommendations.append("Monitor for suspicious activity")
        recommendations.append("Consider temporary access restrictions")
    if score < 0.4:
        recommendations.append("Immediate security review recommended")
        recommendations.append("Consider account lockout")
    return recommendations


def allows_banking_access(score: float) -> bool:
    return risk_tier_for(score) in BANKING_ACCESS_TIERS


# =============================================================================
# Engine
# =============================================================================

class ZKScoreEngine:
    """
    Stateless scoring engine.

    Holds no mutable state; an instance exists so the engine can be
    injected alongside the collectors.
    """

    def evaluate(
        self,
        blink_rate: float,
        typing_speed: float,
        swipe_stability: float
    ) -> ZKScore:
        value = calculate_zk_score(blink_rate, typing_speed, swipe_stability)
        return ZKScore(value=value, risk_tier=risk_tier_for(value))

    def respond(self, score: ZKScore) -> ZKScoreResponse:
        """Attach user-facing guidance to a score."""
        return ZKScoreResponse(
            zk_score=score.value,
            risk_level=score.risk_tier,
            description=describe_risk(score.value),
            recommendations=security_recommendations(score.value),
            banking_access=allows_banking_access(score.value),
        )
