"""
scanner.py
Orchestration of a scan: submit to VirusTotal, then turn a finished analysis
into the verdict payload (threat level, recommendations, domain info and
reputation score).
"""

import datetime
import logging
import re
from typing import Callable, Optional

from odaneguard.errors import InvalidInputError, MissingInputError, UpstreamError
from .reputation import score_reputation
from .stats import AnalysisResult
from .threat import build_recommendations, classify_threat
from .virustotal import VirusTotalClient
from .whois_lookup import DomainInfo, get_domain_info

logger = logging.getLogger("scanner")

EMAIL_RE = re.compile(r"^[^@\s]+@([A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+)$")

DomainLookup = Callable[[str], DomainInfo]


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def pending_payload(result: AnalysisResult, url: str) -> dict:
    return {
        "status": "pending",
        "message": result.message or "Analysis still in progress",
        "analysis_id": result.analysis_id,
        "url": url,
    }


def build_verdict(url: str, result: AnalysisResult, domain_info: DomainInfo) -> dict:
    """Verdict for a finished analysis. Only success results are accepted."""
    if not result.is_success or result.stats is None:
        raise ValueError(f"cannot build a verdict from a {result.status.value} analysis")

    stats = result.stats
    level = classify_threat(stats)
    recommendations = build_recommendations(stats, level)
    reputation = score_reputation(level, domain_info, stats=stats)

    logger.info("Verdict for %s: %s (%d/%d, reputation %d)",
                url, level.value, stats.malicious, stats.total, reputation)

    verdict = {
        "status": "success",
        "is_malicious": stats.malicious > 0,
        "positives": stats.malicious,
        "total": stats.total,
        "stats": stats.to_dict(),
        "scan_date": result.scan_date or _now_iso(),
        "url": url,
        "analysis_id": result.analysis_id,
        "threat_level": level.value,
        "recommendations": [r.to_dict() for r in recommendations],
        "reputation_score": reputation,
    }
    verdict.update(domain_info.to_dict())
    return verdict


def _resolve(result: AnalysisResult, url: str, lookup: Optional[DomainLookup]) -> dict:
    if result.is_pending:
        return pending_payload(result, url)
    if not result.is_success:
        raise UpstreamError(result.message or "VirusTotal analysis failed")
    lookup = lookup or get_domain_info
    return build_verdict(url, result, lookup(url))


def check_analysis(analysis_id: str, url: str, client: Optional[VirusTotalClient] = None,
                   lookup: Optional[DomainLookup] = None) -> dict:
    """Fetch an existing analysis; pending payload while VirusTotal is still working."""
    if not analysis_id or not url:
        raise MissingInputError("Analysis ID and URL are required")
    client = client or VirusTotalClient.from_env()
    return _resolve(client.get_analysis(analysis_id), url, lookup)


def start_url_scan(url: str, client: Optional[VirusTotalClient] = None,
                   lookup: Optional[DomainLookup] = None) -> dict:
    """Submit a URL and check its analysis once."""
    url = (url or "").strip()
    if not url:
        raise MissingInputError("URL is required")
    client = client or VirusTotalClient.from_env()
    analysis_id = client.submit_url(url)
    return _resolve(client.get_analysis(analysis_id), url, lookup)


def email_domain(address: str) -> str:
    match = EMAIL_RE.match((address or "").strip())
    if not match:
        raise InvalidInputError("Invalid email address", details=f"{address!r} is not an email address")
    return match.group(1).lower()


def scan_email(address: str, client: Optional[VirusTotalClient] = None,
               lookup: Optional[DomainLookup] = None) -> dict:
    """Scan the sender domain of an email address."""
    address = (address or "").strip()
    if not address:
        raise MissingInputError("Email address is required")
    domain = email_domain(address)
    result = start_url_scan(f"http://{domain}", client=client, lookup=lookup)
    result.update({"email": address, "domain": domain})
    return result
