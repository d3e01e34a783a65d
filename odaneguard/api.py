"""Main Flask API for OdaneGuard.

Run: python -m odaneguard.api
"""

import logging
from flask import Flask, request, jsonify, abort
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import redis as redis_lib
from werkzeug.exceptions import HTTPException

from odaneguard import __version__, config
from odaneguard.errors import InvalidInputError, MissingInputError, PdfParseError, ScanError
from odaneguard.app.scanner import check_analysis, scan_email, start_url_scan
from odaneguard.app.reputation import score_reputation
from odaneguard.app.threat import ThreatLevel
from odaneguard.app.whois_lookup import DomainInfo, whois_lookup
from odaneguard.pdf_scanner import pdf_parse_failure_payload, scan_pdf

# Logging
logging.basicConfig(level=config.log_level())
logger = logging.getLogger("api")

# Flask app
app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = config.max_upload_bytes()

# Rate limiter: prefer Redis storage in production when REDIS_URL is set
REDIS_URL = config.redis_url()
if REDIS_URL:
    try:
        redis_lib.from_url(REDIS_URL).ping()
        limiter = Limiter(app=app, key_func=get_remote_address,
                          default_limits=["60 per minute"], storage_uri=REDIS_URL)
        logger.info("Using Redis at %s for rate limiting", REDIS_URL)
    except redis_lib.RedisError:
        logger.exception("Failed to connect to Redis, falling back to in-memory limiter")
        limiter = Limiter(app=app, key_func=get_remote_address, default_limits=["60 per minute"])
else:
    limiter = Limiter(app=app, key_func=get_remote_address, default_limits=["60 per minute"])

if config.service_api_key():
    logger.info("API key enabled")


def require_api_key() -> None:
    api_key = config.service_api_key()
    if not api_key:
        return
    key = request.headers.get("X-API-Key") or request.args.get("api_key")
    if not key or key != api_key:
        abort(401, description="Invalid or missing API key")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.errorhandler(ScanError)
def handle_scan_error(e: ScanError):
    logger.warning("%s: %s", e.code, e.message)
    return jsonify(e.to_dict()), e.status_code


@app.errorhandler(Exception)
def handle_unexpected(e: Exception):
    if isinstance(e, HTTPException):
        return jsonify({"message": e.description, "error": e.name}), e.code
    logger.exception("Unhandled error: %s", e)
    return jsonify({
        "message": "Internal server error",
        "error": str(e),
        "details": "An error occurred while processing the request. Please try again later.",
    }), 500


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok", "version": __version__})


@app.route("/check-url", methods=["POST"])
@limiter.limit("30 per minute")
def check_url():
    require_api_key()
    url = str(_json_body().get("input") or "").strip()
    if not url:
        raise MissingInputError("URL is required")
    logger.info("Checking URL: %s", url)
    return jsonify(start_url_scan(url)), 200


@app.route("/check-analysis", methods=["POST"])
@limiter.limit("60 per minute")
def check_analysis_route():
    require_api_key()
    data = _json_body()
    analysis_id = str(data.get("analysis_id") or "").strip()
    url = str(data.get("url") or "").strip()
    if not analysis_id or not url:
        raise MissingInputError("Analysis ID and URL are required")
    return jsonify(check_analysis(analysis_id, url)), 200


@app.route("/check-email", methods=["POST"])
@limiter.limit("30 per minute")
def check_email():
    require_api_key()
    address = str(_json_body().get("input") or "").strip()
    if not address:
        raise MissingInputError("Email address is required")
    logger.info("Checking email: %s", address)
    return jsonify(scan_email(address)), 200


@app.route("/check-pdf", methods=["POST"])
@limiter.limit("10 per minute")
def check_pdf():
    require_api_key()
    upload = request.files.get("file")
    if upload is None:
        logger.info("No file provided in request")
        return jsonify({"status": "error", "message": "No file provided"}), 400

    data = upload.read()
    logger.info("File received: %s, size: %d bytes", upload.filename, len(data))
    try:
        result = scan_pdf(data)
    except PdfParseError as e:
        return jsonify(pdf_parse_failure_payload(e.message)), 400
    return jsonify(result), 200


@app.route("/whois", methods=["POST"])
@limiter.limit("30 per minute")
def whois_route():
    require_api_key()
    domain = str(_json_body().get("domain") or "").strip()
    if not domain:
        raise MissingInputError("Domain is required")
    return jsonify(whois_lookup(domain).to_dict()), 200


@app.route("/reputation", methods=["POST"])
def reputation():
    """Score an already-fetched verdict: {threat_level, domain_info, positives, total}."""
    require_api_key()
    data = _json_body()
    try:
        level = ThreatLevel(str(data.get("threat_level", "")).upper())
    except ValueError:
        raise InvalidInputError("threat_level must be one of HIGH, MEDIUM, LOW, UNKNOWN")

    domain_info = data.get("domain_info")
    if domain_info is not None and not isinstance(domain_info, dict):
        raise InvalidInputError("domain_info must be an object")
    try:
        positives = float(data["positives"]) if data.get("positives") is not None else None
        total = float(data["total"]) if data.get("total") is not None else None
    except (TypeError, ValueError):
        raise InvalidInputError("positives/total must be numbers")

    score = score_reputation(level, DomainInfo.from_mapping(domain_info), positives=positives, total=total)
    return jsonify({"reputation_score": score, "threat_level": level.value}), 200


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=config.port(), debug=False)
