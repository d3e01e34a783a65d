"""
config.py

Environment-driven settings for OdaneGuard.

Values are read when the helper is called (not at import time) so that
deployments and tests can change the environment without reloading modules.
"""

import os
from typing import Optional

VIRUSTOTAL_BASE_URL = "https://www.virustotal.com/api/v3"
WHOISXML_URL = "https://www.whoisxmlapi.com/whoisserver/WhoisService"

DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_POLL_TIMEOUT = 120.0
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_API_PORT = 5050


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def virustotal_api_key() -> Optional[str]:
    return os.getenv("VIRUSTOTAL_API_KEY") or None


def whoisxml_api_key() -> Optional[str]:
    return os.getenv("WHOISXML_API_KEY") or None


def whois_provider() -> str:
    """Either 'whoisxml' (default) or 'python-whois'."""
    return (os.getenv("WHOIS_PROVIDER") or "whoisxml").strip().lower()


def ssl_probe_enabled() -> bool:
    return _env_bool("SSL_PROBE_ENABLED", True)


def http_timeout() -> float:
    return _env_float("HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)


def poll_interval() -> float:
    return _env_float("POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL)


def poll_timeout() -> float:
    return _env_float("POLL_TIMEOUT_SECONDS", DEFAULT_POLL_TIMEOUT)


def redis_url() -> Optional[str]:
    return os.getenv("REDIS_URL") or None


def service_api_key() -> Optional[str]:
    return os.getenv("ODANEGUARD_API_KEY") or None


def log_level() -> str:
    return (os.getenv("LOG_LEVEL") or "INFO").upper()


def max_upload_bytes() -> int:
    return int(_env_float("ODANEGUARD_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES))


def port(default: int = DEFAULT_API_PORT) -> int:
    return int(_env_float("PORT", default))


def backend_url() -> str:
    return os.getenv("BACKEND_URL") or "http://127.0.0.1:5050"
