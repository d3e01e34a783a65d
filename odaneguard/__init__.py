"""OdaneGuard: phishing and URL-reputation scanner."""

__version__ = "1.0"
