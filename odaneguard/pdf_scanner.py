# pdf_scanner.py
"""
PDF scanner: extract text from an uploaded PDF and list the URLs it embeds.

Primary function:
    scan_pdf(data: bytes) -> dict
"""

import datetime
import io
import logging
import re
from typing import List

import pdfplumber

from odaneguard.app.threat import Recommendation, ThreatLevel
from odaneguard.errors import PdfParseError

logger = logging.getLogger("pdf_scanner")

URL_RE = re.compile(r"https?://\S+")


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def extract_pdf_text(data: bytes) -> str:
    """Plain text of every page. Raises PdfParseError if the document cannot be read."""
    if not data:
        raise PdfParseError("Failed to parse PDF file", details="empty file")
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        logger.error("Error parsing PDF: %s", e)
        raise PdfParseError("Failed to parse PDF file", details=str(e)) from e
    text = "\n".join(pages)
    logger.info("PDF parsed successfully, extracted %d characters of text", len(text))
    return text


def extract_urls(text: str) -> List[str]:
    return URL_RE.findall(text or "")


def scan_pdf(data: bytes) -> dict:
    text = extract_pdf_text(data)
    urls = extract_urls(text)
    logger.info("Found %d URLs in PDF", len(urls))

    if urls:
        level = ThreatLevel.MEDIUM
        rec = Recommendation(
            "warning",
            f"Found {len(urls)} URLs in the PDF that may be suspicious.",
            "Be cautious when clicking any links in this document.",
        )
        message = f"PDF contains {len(urls)} URLs that may be suspicious"
    else:
        level = ThreatLevel.LOW
        rec = Recommendation(
            "success",
            "No suspicious content detected in the PDF.",
            "You can proceed, but always maintain good security practices.",
        )
        message = "No suspicious content detected"

    return {
        "status": "success",
        "is_malicious": bool(urls),
        "positives": 0,
        "total": 0,
        "scan_date": _now_iso(),
        "threat_level": level.value,
        "recommendations": [rec.to_dict()],
        "message": message,
        "urls": urls,
        "is_pdf": True,
    }


def pdf_parse_failure_payload(message: str = "Failed to parse PDF file") -> dict:
    """Safe-default verdict returned (with HTTP 400) when the PDF cannot be parsed."""
    return {
        "status": "error",
        "message": message,
        "is_malicious": False,
        "positives": 0,
        "total": 0,
        "scan_date": _now_iso(),
        "threat_level": ThreatLevel.UNKNOWN.value,
        "recommendations": [Recommendation(
            "error",
            "Failed to parse the PDF file.",
            "Please try a different PDF file or ensure the file is not corrupted.",
        ).to_dict()],
        "is_pdf": True,
    }
