"""
reputation.py

Heuristic 0-100 reputation score built from the threat level, domain
metadata and the vendor detection ratio (higher = more trustworthy).

Public functions:
    parse_domain_age(text: str) -> DomainAge | None
    score_reputation(level, domain_info, stats=None, positives=None, total=None) -> int
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from .stats import DetectionStats
from .threat import ThreatLevel
from .whois_lookup import DomainInfo

LEADING_INT_RE = re.compile(r"\s*(\d+)")
UNKNOWN_AGE = "Unknown"

BASE_SCORES = {
    ThreatLevel.HIGH: 20,
    ThreatLevel.MEDIUM: 50,
    ThreatLevel.UNKNOWN: 60,
    ThreatLevel.LOW: 90,
}

PENALTY_PRIVATE = 15
PENALTY_PROXY = 20
PENALTY_REDIRECTS = 15
PENALTY_NO_SSL = 25
PENALTY_UNKNOWN_AGE = 20

# (upper bound in months, penalty) checked in order
MONTH_AGE_PENALTIES = ((3, 25), (6, 15), (12, 10))
PENALTY_UNDER_ONE_YEAR = 10
BONUS_OLD_DOMAIN = 10
OLD_DOMAIN_YEARS = 5

# (detection percentage lower bound, score ceiling) checked in order
DETECTION_CEILINGS = ((25.0, 30), (10.0, 50), (0.0, 70))
MAJORITY_DETECTION_PCT = 50.0
MAJORITY_DETECTION_SCORE = 10


@dataclass(frozen=True)
class DomainAge:
    value: int
    unit: str  # "months" or "years"


def parse_domain_age(text: Optional[str]) -> Optional[DomainAge]:
    """
    Read the leading integer of an age string and the unit it is scored in.

    Text that mentions months is scored in months even when it also names
    years, so "2 years, 3 months" reads as 2 months. Returns None for
    "Unknown", empty text, or text without a leading integer and unit.
    """
    if not text or text == UNKNOWN_AGE:
        return None
    lowered = text.lower()
    if "month" in lowered:
        unit = "months"
    elif "year" in lowered:
        unit = "years"
    else:
        return None
    match = LEADING_INT_RE.match(text)
    if not match:
        return None
    return DomainAge(value=int(match.group(1)), unit=unit)


def _age_adjustment(text: Optional[str]) -> int:
    if not text or text == UNKNOWN_AGE:
        return -PENALTY_UNKNOWN_AGE
    age = parse_domain_age(text)
    if age is None:
        return 0
    if age.unit == "months":
        for bound, penalty in MONTH_AGE_PENALTIES:
            if age.value < bound:
                return -penalty
        return 0
    if age.value < 1:
        return -PENALTY_UNDER_ONE_YEAR
    if age.value > OLD_DOMAIN_YEARS:
        return BONUS_OLD_DOMAIN
    return 0


def _detection_override(score: int, positives: Union[int, float], total: Union[int, float]) -> int:
    if not total or total <= 0:
        return score
    pct = positives / total * 100.0
    if pct > MAJORITY_DETECTION_PCT:
        return MAJORITY_DETECTION_SCORE
    for bound, ceiling in DETECTION_CEILINGS:
        if pct > bound:
            return min(score, ceiling)
    return score


def score_reputation(level: ThreatLevel, domain_info: DomainInfo,
                     stats: Optional[DetectionStats] = None,
                     positives: Optional[Union[int, float]] = None,
                     total: Optional[Union[int, float]] = None) -> int:
    """
    Compute the reputation score.

    positives/total default to stats.malicious and stats.total; pass them
    explicitly when the caller holds an upstream-reported total.
    """
    score = BASE_SCORES[ThreatLevel(level)]

    # 1) domain flags
    if domain_info.is_private:
        score -= PENALTY_PRIVATE
    if domain_info.is_proxy:
        score -= PENALTY_PROXY
    if domain_info.redirects:
        score -= PENALTY_REDIRECTS
    if not domain_info.has_ssl:
        score -= PENALTY_NO_SSL

    # 2) domain age
    score += _age_adjustment(domain_info.domain_age)

    # 3) detection ratio caps the score
    if stats is not None:
        if positives is None:
            positives = stats.malicious
        if total is None:
            total = stats.total
    if positives is not None and total is not None:
        score = _detection_override(score, positives, total)

    return int(max(0, min(100, score)))
