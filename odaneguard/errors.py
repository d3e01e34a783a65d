"""
errors.py

Exception taxonomy shared by the scanner modules and the HTTP API.

Every ScanError carries the HTTP status and a short machine-readable code so
the API error handler can turn it into a JSON body without inspecting types.
"""

from typing import Optional


class ScanError(Exception):
    status_code = 500
    code = "SCAN_FAILED"

    def __init__(self, message: str, details: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if code:
            self.code = code

    def to_dict(self) -> dict:
        body = {"message": self.message, "error": self.code}
        if self.details:
            body["details"] = self.details
        return body


class MissingInputError(ScanError):
    status_code = 400
    code = "MISSING_INPUT"


class ConfigError(ScanError):
    """A required service credential or setting is absent."""
    status_code = 500
    code = "MISSING_API_KEY"


class UpstreamError(ScanError):
    """Third-party API answered with a non-2xx status or could not be reached."""
    status_code = 500
    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, upstream_status: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message, details=details)
        self.upstream_status = upstream_status


class MalformedUpstreamError(ScanError):
    status_code = 500
    code = "MALFORMED_UPSTREAM"


class PdfParseError(ScanError):
    status_code = 400
    code = "PDF_PARSE_FAILED"


class InvalidInputError(ScanError):
    status_code = 400
    code = "INVALID_INPUT"
