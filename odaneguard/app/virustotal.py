"""
virustotal.py

Thin client for the VirusTotal v3 URL-analysis endpoints.

Usage:
    client = VirusTotalClient.from_env()
    analysis_id = client.submit_url("http://example.com")
    result = client.get_analysis(analysis_id)   # AnalysisResult
"""

import datetime
import logging
from typing import Optional

import requests

from odaneguard import config
from odaneguard.errors import ConfigError, MalformedUpstreamError, UpstreamError
from .stats import AnalysisResult, DetectionStats

logger = logging.getLogger("virustotal")

PENDING_STATUSES = ("queued", "in-progress")


def _iso_from_epoch(value) -> Optional[str]:
    if value is None:
        return None
    try:
        ts = datetime.datetime.fromtimestamp(int(value), tz=datetime.timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return ts.isoformat().replace("+00:00", "Z")


class VirusTotalClient:

    def __init__(self, api_key: Optional[str], session: Optional[requests.Session] = None,
                 base_url: str = config.VIRUSTOTAL_BASE_URL, timeout: Optional[float] = None):
        if not api_key:
            logger.error("VirusTotal API key not found in environment variables")
            raise ConfigError(
                "API configuration error",
                details="VirusTotal API key is not configured. Please check your environment variables.",
            )
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else config.http_timeout()

    @classmethod
    def from_env(cls, session: Optional[requests.Session] = None) -> "VirusTotalClient":
        return cls(config.virustotal_api_key(), session=session)

    def _headers(self) -> dict:
        return {"x-apikey": self.api_key, "accept": "application/json"}

    def _json(self, resp, what: str) -> dict:
        if not resp.ok:
            logger.error("VirusTotal %s failed: %s %s", what, resp.status_code, resp.text)
            raise UpstreamError(f"VirusTotal {what} failed: {resp.reason}", upstream_status=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise MalformedUpstreamError(f"Malformed VirusTotal {what} response", details=str(e)) from e
        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            raise MalformedUpstreamError(f"Malformed VirusTotal {what} response", details="missing 'data' object")
        return body["data"]

    def submit_url(self, url: str) -> str:
        """Submit a URL for scanning and return the analysis id."""
        try:
            resp = self.session.post(f"{self.base_url}/urls", headers=self._headers(),
                                     data={"url": url}, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"VirusTotal submission failed: {e}") from e

        data = self._json(resp, "submission")
        analysis_id = data.get("id")
        if not analysis_id:
            raise MalformedUpstreamError("Malformed VirusTotal submission response", details="missing analysis id")
        logger.info("Submitted %s to VirusTotal (analysis %s)", url, analysis_id)
        return analysis_id

    def get_analysis(self, analysis_id: str) -> AnalysisResult:
        """Fetch an analysis. Returns a pending result while VirusTotal is still scanning."""
        try:
            resp = self.session.get(f"{self.base_url}/analyses/{analysis_id}",
                                    headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"VirusTotal analysis failed: {e}") from e

        data = self._json(resp, "analysis")
        attrs = data.get("attributes")
        if not isinstance(attrs, dict):
            raise MalformedUpstreamError("Malformed VirusTotal analysis response", details="missing attributes")

        if attrs.get("status") in PENDING_STATUSES:
            logger.info("Analysis %s still in progress", analysis_id)
            return AnalysisResult.pending(analysis_id)

        stats = DetectionStats.from_mapping(attrs.get("stats"))
        return AnalysisResult.success(analysis_id, stats, _iso_from_epoch(attrs.get("date")))
