"""
threat.py

Threat-level classification and advisory recommendations derived from
detection stats.

Public functions:
    classify_threat(stats: DetectionStats) -> ThreatLevel
    build_recommendations(stats, level, total=None) -> list[Recommendation]

Example:
    >>> classify_threat(DetectionStats(malicious=1, harmless=99))
    <ThreatLevel.MEDIUM: 'MEDIUM'>
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import List, Optional

from .stats import DetectionStats

# Thresholds (percentages are of the total vendor count)
HIGH_MALICIOUS_COUNT = 2
HIGH_MALICIOUS_PCT = 2.0
MEDIUM_SUSPICIOUS_COUNT = 2
MEDIUM_SUSPICIOUS_PCT = 5.0
UNKNOWN_UNDETECTED_RATIO = 0.5
INCOMPLETE_UNDETECTED_RATIO = 0.3


class ThreatLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Recommendation:
    severity: str  # critical | warning | info | success | error
    message: str
    action: str

    def to_dict(self) -> dict:
        return asdict(self)


PRIMARY_RECOMMENDATIONS = {
    ThreatLevel.HIGH: Recommendation(
        "critical",
        "This URL has been flagged as malicious by multiple security vendors.",
        "Do not visit this URL. It may contain malware or be a phishing site.",
    ),
    ThreatLevel.MEDIUM: Recommendation(
        "warning",
        "This URL shows suspicious activity.",
        "Exercise caution. Consider using additional security measures if you need to visit this site.",
    ),
    ThreatLevel.UNKNOWN: Recommendation(
        "info",
        "This URL hasn't been thoroughly analyzed yet.",
        "Proceed with caution. The site's safety cannot be fully determined.",
    ),
    ThreatLevel.LOW: Recommendation(
        "success",
        "This URL appears to be safe based on current analysis.",
        "You can proceed, but always maintain good security practices.",
    ),
}


def classify_threat(stats: DetectionStats) -> ThreatLevel:
    """Map detection stats to a threat level. First matching rule wins."""
    total = stats.total

    if stats.malicious >= HIGH_MALICIOUS_COUNT or stats.malicious_pct >= HIGH_MALICIOUS_PCT:
        return ThreatLevel.HIGH
    if (stats.malicious > 0
            or stats.suspicious > MEDIUM_SUSPICIOUS_COUNT
            or stats.suspicious_pct > MEDIUM_SUSPICIOUS_PCT):
        return ThreatLevel.MEDIUM
    if stats.undetected > total * UNKNOWN_UNDETECTED_RATIO:
        return ThreatLevel.UNKNOWN
    return ThreatLevel.LOW


def build_recommendations(stats: DetectionStats, level: ThreatLevel,
                          total: Optional[int] = None) -> List[Recommendation]:
    """
    Primary recommendation for the level followed by conditional notes.

    `total` is the total reported alongside the stats by the caller; when it
    is not given the computed sum of the four counts is used.
    """
    if total is None:
        total = stats.total

    recommendations = [PRIMARY_RECOMMENDATIONS[ThreatLevel(level)]]

    if stats.suspicious > 0:
        recommendations.append(Recommendation(
            "warning",
            f"{stats.suspicious} security vendors flagged this URL as suspicious.",
            "Review the detailed scan results before proceeding.",
        ))

    if stats.undetected > total * INCOMPLETE_UNDETECTED_RATIO:
        recommendations.append(Recommendation(
            "info",
            "Many security vendors haven't analyzed this URL yet.",
            "Consider waiting for more comprehensive analysis.",
        ))

    return recommendations
