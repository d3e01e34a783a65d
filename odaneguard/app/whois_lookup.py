"""
whois_lookup.py

Domain registration lookup (WhoisXML API or python-whois) and the
DomainInfo record rendered next to every verdict.

Public functions:
    whois_lookup(domain: str, session=None) -> WhoisRecord
    get_domain_info(url_or_domain: str, session=None, now=None, probe_ssl=None) -> DomainInfo
    format_domain_age(creation_date, now=None) -> str

get_domain_info never raises: any lookup failure yields FALLBACK_DOMAIN_INFO.
"""

import datetime
import logging
from dataclasses import dataclass, field, asdict, replace
from typing import Any, List, Optional, Union
from urllib.parse import urlparse

import requests
import whois

from odaneguard import config
from odaneguard.errors import ConfigError, InvalidInputError, MalformedUpstreamError, UpstreamError
from . import ssl_check

logger = logging.getLogger("whois_lookup")

UNKNOWN = "Unknown"
REDIRECT_NS_MARKERS = ("redirect", "forward")
SSL_NS_MARKERS = ("cloudflare",)


@dataclass(frozen=True)
class Registrant:
    organization: str = UNKNOWN
    country: str = UNKNOWN
    state: str = UNKNOWN
    country_code: str = UNKNOWN


@dataclass(frozen=True)
class WhoisRecord:
    registrar_name: str = UNKNOWN
    creation_date: str = UNKNOWN
    expiration_date: str = UNKNOWN
    updated_date: str = UNKNOWN
    name_servers: List[str] = field(default_factory=list)
    status: List[str] = field(default_factory=list)
    registrant: Registrant = field(default_factory=Registrant)
    has_ssl: bool = False
    is_private: bool = False
    is_proxy: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DomainInfo:
    domain_age: str = UNKNOWN
    registrar: str = UNKNOWN
    creation_date: str = UNKNOWN
    expiration_date: str = UNKNOWN
    location: str = UNKNOWN
    country: str = UNKNOWN
    ip_address: str = UNKNOWN
    has_ssl: bool = False
    redirects: bool = False
    is_private: bool = False
    is_proxy: bool = False
    name_servers: List[str] = field(default_factory=list)
    domain_status: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_mapping(cls, raw: Optional[dict]) -> "DomainInfo":
        """
        Build from a JSON body; unknown keys are ignored, missing ones default.

        Raises InvalidInputError when a known field has the wrong JSON type
        (text fields must be strings, flags booleans, lists lists of strings).
        """
        if not raw:
            return FALLBACK_DOMAIN_INFO
        known = {}
        for name, f in cls.__dataclass_fields__.items():
            value = raw.get(name)
            if value is None:
                continue
            if f.type is bool:
                ok = isinstance(value, bool)
            elif f.type is str:
                ok = isinstance(value, str)
            else:
                ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
            if not ok:
                raise InvalidInputError(f"domain_info.{name} has the wrong type",
                                        details=f"got {type(value).__name__}")
            known[name] = value
        return cls(**known)


# Returned whenever the registration lookup fails; a valid "insufficient data" state.
FALLBACK_DOMAIN_INFO = DomainInfo()


def extract_domain(url_or_domain: str) -> str:
    value = (url_or_domain or "").strip()
    parsed = urlparse(value if "://" in value else "http://" + value)
    host = parsed.hostname
    if not host:
        raise ValueError(f"no hostname in {url_or_domain!r}")
    return host.lower()


def _text(value: Any) -> str:
    if value is None or value == "":
        return UNKNOWN
    return str(value)


def _derive_flags(record: WhoisRecord) -> WhoisRecord:
    org = record.registrant.organization.lower()
    has_ssl = any(m in ns.lower() for ns in record.name_servers for m in SSL_NS_MARKERS)
    return replace(record, has_ssl=has_ssl, is_private="privacy" in org, is_proxy="proxy" in org)


def _parse_whoisxml(data: Any) -> WhoisRecord:
    if not isinstance(data, dict):
        raise MalformedUpstreamError("Malformed WHOIS response", details="body is not a JSON object")
    rec = data.get("WhoisRecord") or {}
    if not isinstance(rec, dict):
        raise MalformedUpstreamError("Malformed WHOIS response", details="WhoisRecord is not an object")

    registrant = rec.get("registrant") or {}
    name_servers = (rec.get("nameServers") or {}).get("hostNames") or []
    status = rec.get("status") or []
    if isinstance(status, str):
        # WhoisXML returns a single space separated string for some TLDs
        status = status.split()

    record = WhoisRecord(
        registrar_name=_text(rec.get("registrarName")),
        creation_date=_text(rec.get("createdDate")),
        expiration_date=_text(rec.get("expiresDate")),
        updated_date=_text(rec.get("updatedDate")),
        name_servers=[str(ns) for ns in name_servers],
        status=[str(s) for s in status],
        registrant=Registrant(
            organization=_text(registrant.get("organization")),
            country=_text(registrant.get("country")),
            state=_text(registrant.get("state")),
            country_code=_text(registrant.get("countryCode")),
        ),
    )
    return _derive_flags(record)


def _whoisxml_lookup(domain: str, session=None) -> WhoisRecord:
    api_key = config.whoisxml_api_key()
    if not api_key:
        logger.error("WHOIS XML API key not found")
        raise ConfigError("API configuration error", details="WHOISXML_API_KEY is not configured.")

    http = session or requests
    params = {"apiKey": api_key, "domainName": domain, "outputFormat": "JSON"}
    try:
        resp = http.get(config.WHOISXML_URL, params=params, timeout=config.http_timeout())
    except requests.RequestException as e:
        raise UpstreamError(f"WHOIS lookup failed: {e}") from e

    if not resp.ok:
        logger.error("WHOIS lookup failed: %s %s", resp.status_code, resp.text)
        raise UpstreamError(f"WHOIS lookup failed: {resp.reason}", upstream_status=resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedUpstreamError("Malformed WHOIS response", details=str(e)) from e
    return _parse_whoisxml(data)


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _date_text(value: Any) -> str:
    value = _first(value)
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    return _text(value)


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


def _python_whois_lookup(domain: str) -> WhoisRecord:
    try:
        w = whois.whois(domain)
    except Exception as e:
        raise UpstreamError(f"WHOIS lookup failed: {e}") from e

    record = WhoisRecord(
        registrar_name=_text(w.get("registrar")),
        creation_date=_date_text(w.get("creation_date")),
        expiration_date=_date_text(w.get("expiration_date")),
        updated_date=_date_text(w.get("updated_date")),
        name_servers=sorted({ns.lower() for ns in _as_list(w.get("name_servers"))}),
        status=_as_list(w.get("status")),
        registrant=Registrant(
            organization=_text(w.get("org")),
            country=_text(w.get("country")),
            state=_text(w.get("state")),
            country_code=_text(w.get("country")),
        ),
    )
    return _derive_flags(record)


def whois_lookup(domain: str, session=None) -> WhoisRecord:
    """
    Look up registration metadata for a bare domain.

    Raises ConfigError, UpstreamError or MalformedUpstreamError.
    """
    if config.whois_provider() == "python-whois":
        return _python_whois_lookup(domain)
    return _whoisxml_lookup(domain, session=session)


def _parse_date(value: Union[str, datetime.datetime, datetime.date, None]) -> Optional[datetime.date]:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not value or value == UNKNOWN:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.datetime.fromisoformat(text).date()
    except ValueError:
        pass
    # WhoisXML sometimes answers "2009-05-12 08:53:20 UTC"
    try:
        return datetime.datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def format_domain_age(creation_date, now: Optional[datetime.datetime] = None) -> str:
    """Human-readable age from whole calendar months, e.g. "2 years, 3 months"."""
    created = _parse_date(creation_date)
    if created is None:
        return UNKNOWN
    now = now or datetime.datetime.now(datetime.timezone.utc)

    total_months = (now.year - created.year) * 12 + (now.month - created.month)
    total_months = max(0, total_months)

    if total_months < 12:
        return _plural(total_months, "month")
    years, months = divmod(total_months, 12)
    age = _plural(years, "year")
    if months > 0:
        age += ", " + _plural(months, "month")
    return age


def get_domain_info(url_or_domain: str, session=None, now: Optional[datetime.datetime] = None,
                    probe_ssl: Optional[bool] = None) -> DomainInfo:
    """Registration metadata for the URL's host, or FALLBACK_DOMAIN_INFO on any failure."""
    try:
        domain = extract_domain(url_or_domain)
        record = whois_lookup(domain, session=session)
    except Exception as e:
        # any lookup failure degrades to the fallback record
        logger.warning("Error fetching domain info for %s: %s", url_or_domain, e)
        return FALLBACK_DOMAIN_INFO

    redirects = any(m in ns.lower() for ns in record.name_servers for m in REDIRECT_NS_MARKERS)

    has_ssl = record.has_ssl
    if probe_ssl is None:
        probe_ssl = config.ssl_probe_enabled()
    if not has_ssl and probe_ssl:
        has_ssl = ssl_check.has_valid_certificate(domain)

    return DomainInfo(
        domain_age=format_domain_age(record.creation_date, now=now),
        registrar=record.registrar_name,
        creation_date=record.creation_date,
        expiration_date=record.expiration_date,
        location=record.registrant.country,
        country=record.registrant.country_code,
        ip_address=record.name_servers[0] if record.name_servers else UNKNOWN,
        has_ssl=has_ssl,
        redirects=redirects,
        is_private=record.is_private,
        is_proxy=record.is_proxy,
        name_servers=list(record.name_servers),
        domain_status=list(record.status),
    )
