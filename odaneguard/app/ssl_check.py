"""
ssl_check.py

Live TLS certificate probe used to confirm SSL support for a domain.

Public functions:
    check_ssl(domain: str) -> dict
    has_valid_certificate(domain: str) -> bool
"""

import datetime
import logging
import socket
import ssl
from typing import Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

logger = logging.getLogger("ssl_check")

PROBE_TIMEOUT = 5  # seconds


def _get_certificate(domain: str, port: int = 443, timeout: int = PROBE_TIMEOUT) -> Optional[bytes]:
    """Fetch the server's certificate in DER form, or None if the handshake fails."""
    ctx = ssl.create_default_context()
    try:
        with socket.create_connection((domain, port), timeout=timeout) as sock:
            with ctx.wrap_socket(sock, server_hostname=domain) as conn:
                return conn.getpeercert(True)
    except (OSError, ssl.SSLError) as e:
        logger.debug("TLS handshake with %s failed: %s", domain, e)
        return None


def _common_name(cert: x509.Certificate) -> Optional[str]:
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    return attrs[0].value if attrs else None


def check_ssl(domain: str) -> dict:
    """
    Probe the domain's certificate.

    Returns dict:
    {
      "domain": "example.com",
      "cert_valid": True,
      "expiry_days": 120,
      "expired": False,
      "self_signed": False,
      "common_name": "example.com",
      "explanation": "..."
    }
    """
    result = {
        "domain": domain,
        "cert_valid": False,
        "expiry_days": None,
        "expired": None,
        "self_signed": None,
        "common_name": None,
        "explanation": "",
    }

    der_cert = _get_certificate(domain)
    if not der_cert:
        result["explanation"] = "Unable to retrieve certificate"
        return result

    try:
        cert = x509.load_der_x509_certificate(der_cert)
    except ValueError as e:
        result["explanation"] = f"Certificate parse error: {e}"
        return result

    now = datetime.datetime.now(datetime.timezone.utc)
    days_left = (cert.not_valid_after_utc - now).days
    expired = days_left < 0
    self_signed = cert.issuer == cert.subject

    result.update({
        "expiry_days": days_left,
        "expired": expired,
        "self_signed": self_signed,
        "common_name": _common_name(cert),
        # the default context already verified the chain and hostname
        "cert_valid": not expired and not self_signed,
        "explanation": "Certificate verified" if not expired else "Certificate expired",
    })
    return result


def has_valid_certificate(domain: str) -> bool:
    return bool(check_ssl(domain).get("cert_valid"))
