"""
Error Taxonomy

Exceptions shared by the collectors, the context layer and the analysis
service. Provider errors carry the HTTP/API status code and the raw response
body so callers can log them verbatim.
"""

from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Provider credentials or required settings are missing."""


class NotFoundError(Exception):
    """A lookup (e.g. a location) produced no acceptable match."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(message)
        self.suggestion = suggestion

    def __str__(self) -> str:
        base = super().__str__()
        if self.suggestion:
            return f"{base}. {self.suggestion}"
        return base


class UpstreamError(Exception):
    """Non-2xx or malformed response from an upstream data provider."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class GenerativeProviderError(Exception):
    """Completion failed or returned output we cannot use."""


class AnalysisCancelled(Exception):
    """The caller asked for the running analysis to stop."""


class InvalidInputError(ValueError):
    """Caller supplied a value the pipeline cannot work with."""
