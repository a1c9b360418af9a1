"""
RiskVault Risk Classification Engine

Pure, deterministic mapping from three revealed measurements to a risk
level, a recommendation string and a systemic-risk flag.

The three outputs are derived independently: a submission can score High
while its recommendation is the maintenance default.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

UINT32_MAX = 2**32 - 1


class RiskLevel(str, Enum):
    """Fixed four-category risk taxonomy."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class SystemicRiskFlag(str, Enum):
    """Systemic-risk indicator."""
    NONE = "None"
    POTENTIAL = "Potential"
    HIGH = "High"


IMMEDIATE_REMEDIATION = "Immediate remediation required; Conduct full security audit"
ENHANCE_MONITORING = "Enhance monitoring; Update incident response plan"
REGULAR_MAINTENANCE = "Regular maintenance; Staff training recommended"

# (threshold, level) checked in descending order, strict greater-than
LEVEL_THRESHOLDS = (
    (100, RiskLevel.CRITICAL),
    (70, RiskLevel.HIGH),
    (40, RiskLevel.MEDIUM),
)


@dataclass(frozen=True)
class Classification:
    """Result of classifying one revealed measurement triple."""
    score: int
    risk_level: RiskLevel
    recommendations: str
    systemic_risk_flag: SystemicRiskFlag

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "risk_level": self.risk_level.value,
            "recommendations": self.recommendations,
            "systemic_risk_flag": self.systemic_risk_flag.value,
        }


def _check_uint32(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0 or value > UINT32_MAX:
        raise ValueError(f"{name} must fit in an unsigned 32-bit integer")
    return value


def risk_score(breaches: int, response_time_minutes: int, vulnerabilities: int) -> int:
    """
    Weighted score: breaches*3 + response_time*2 + vulnerabilities*5.

    Computed with unbounded integers, so uint32 extremes never wrap around
    into a low score. A fixed-width uint32 evaluation wraps instead: with
    inputs (0, 2**31, 0) it yields 2**32 mod 2**32 == 0 and classifies as Low,
    where this function returns 2**32 and Critical. Scores only differ from
    the fixed-width result once breaches*3 + response_time*2 +
    vulnerabilities*5 exceeds UINT32_MAX.
    """
    return breaches * 3 + response_time_minutes * 2 + vulnerabilities * 5


def risk_level_for(score: int) -> RiskLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score > threshold:
            return level
    return RiskLevel.LOW


def recommendations_for(breaches: int, response_time_minutes: int, vulnerabilities: int) -> str:
    if breaches > 5 or response_time_minutes > 120 or vulnerabilities > 10:
        return IMMEDIATE_REMEDIATION
    if breaches > 2 or response_time_minutes > 60 or vulnerabilities > 5:
        return ENHANCE_MONITORING
    return REGULAR_MAINTENANCE


def systemic_flag_for(breaches: int, response_time_minutes: int) -> SystemicRiskFlag:
    # vulnerabilities do not contribute to systemic risk
    if breaches > 10 and response_time_minutes > 180:
        return SystemicRiskFlag.HIGH
    if breaches > 5 and response_time_minutes > 120:
        return SystemicRiskFlag.POTENTIAL
    return SystemicRiskFlag.NONE


def classify(breaches: int, response_time_minutes: int, vulnerabilities: int) -> Classification:
    """
    Classify a revealed measurement triple.

    Args:
        breaches: Breach attempts (uint32)
        response_time_minutes: Incident response time in minutes (uint32)
        vulnerabilities: Open vulnerability count (uint32)

    Returns:
        Classification with score, level, recommendations and systemic flag

    Raises:
        ValueError: If an input is not a uint32
    """
    _check_uint32("breaches", breaches)
    _check_uint32("response_time_minutes", response_time_minutes)
    _check_uint32("vulnerabilities", vulnerabilities)

    score = risk_score(breaches, response_time_minutes, vulnerabilities)
    return Classification(
        score=score,
        risk_level=risk_level_for(score),
        recommendations=recommendations_for(breaches, response_time_minutes, vulnerabilities),
        systemic_risk_flag=systemic_flag_for(breaches, response_time_minutes),
    )
