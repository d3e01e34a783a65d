"""
Quick local smoke test: classify a few canned detection tallies, score them
against the fallback domain record, and (when VIRUSTOTAL_API_KEY is set)
run one live URL scan, polling until the analysis finishes.

Run: python3 tools/run_local_smoke.py [url]
"""
import json
import sys

from odaneguard import config
from odaneguard.app.reputation import score_reputation
from odaneguard.app.scanner import check_analysis, start_url_scan
from odaneguard.app.stats import DetectionStats
from odaneguard.app.threat import build_recommendations, classify_threat
from odaneguard.app.whois_lookup import FALLBACK_DOMAIN_INFO
from odaneguard.poller import poll_until_complete

SAMPLES = [
    DetectionStats(malicious=2, harmless=98),
    DetectionStats(malicious=1, harmless=99),
    DetectionStats(harmless=10, undetected=90),
    DetectionStats(harmless=100),
]


def main():
    for stats in SAMPLES:
        level = classify_threat(stats)
        print(json.dumps({
            "stats": stats.to_dict(),
            "threat_level": level.value,
            "recommendations": [r.severity for r in build_recommendations(stats, level)],
            "reputation_fallback": score_reputation(level, FALLBACK_DOMAIN_INFO, stats=stats),
        }))

    if not config.virustotal_api_key():
        print("VIRUSTOTAL_API_KEY not set; skipping live scan")
        return

    url = sys.argv[1] if len(sys.argv) > 1 else "http://example.com"
    result = start_url_scan(url)
    if result["status"] == "pending":
        outcome = poll_until_complete(lambda: check_analysis(result["analysis_id"], url))
        print("poll outcome:", outcome.state.value, "after", outcome.attempts, "attempt(s)")
        result = outcome.payload or {"status": outcome.state.value, "message": outcome.message}
    print(json.dumps(result, indent=2))


if __name__ == '__main__':
    main()
