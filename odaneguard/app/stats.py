"""
stats.py

Detection tallies returned by the malware-scan service and the tagged
analysis result wrapping them.

Public objects:
    DetectionStats       four-count vendor tally with derived percentages
    AnalysisResult       success | pending | error result of one analysis fetch
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from odaneguard.errors import MalformedUpstreamError

STAT_FIELDS = ("malicious", "suspicious", "harmless", "undetected")


@dataclass(frozen=True)
class DetectionStats:
    malicious: int = 0
    suspicious: int = 0
    harmless: int = 0
    undetected: int = 0

    def __post_init__(self):
        for name in STAT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise MalformedUpstreamError(
                    "Malformed detection stats",
                    details=f"{name} must be a non-negative integer, got {value!r}",
                )

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "DetectionStats":
        """Build from an upstream stats object. Missing counts are treated as 0."""
        if raw is None or not isinstance(raw, Mapping):
            raise MalformedUpstreamError("Malformed detection stats", details="stats must be an object")
        values = {}
        for name in STAT_FIELDS:
            value = raw.get(name, 0)
            if value is None:
                value = 0
            # JSON numbers sometimes arrive as floats (e.g. 3.0)
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            values[name] = value
        return cls(**values)

    @property
    def total(self) -> int:
        return self.malicious + self.suspicious + self.harmless + self.undetected

    def _pct(self, count: int) -> float:
        total = self.total
        if total == 0:
            return 0.0
        return count / total * 100.0

    @property
    def malicious_pct(self) -> float:
        return self._pct(self.malicious)

    @property
    def suspicious_pct(self) -> float:
        return self._pct(self.suspicious)

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in STAT_FIELDS}


class AnalysisStatus(str, Enum):
    SUCCESS = "success"
    PENDING = "pending"
    ERROR = "error"


@dataclass(frozen=True)
class AnalysisResult:
    status: AnalysisStatus
    analysis_id: Optional[str] = None
    stats: Optional[DetectionStats] = None
    scan_date: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, analysis_id: str, stats: DetectionStats, scan_date: Optional[str]) -> "AnalysisResult":
        return cls(AnalysisStatus.SUCCESS, analysis_id=analysis_id, stats=stats, scan_date=scan_date)

    @classmethod
    def pending(cls, analysis_id: str) -> "AnalysisResult":
        return cls(AnalysisStatus.PENDING, analysis_id=analysis_id, message="Analysis still in progress")

    @classmethod
    def error(cls, message: str, analysis_id: Optional[str] = None) -> "AnalysisResult":
        return cls(AnalysisStatus.ERROR, analysis_id=analysis_id, message=message)

    @property
    def is_success(self) -> bool:
        return self.status is AnalysisStatus.SUCCESS

    @property
    def is_pending(self) -> bool:
        return self.status is AnalysisStatus.PENDING
