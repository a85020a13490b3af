"""Utility modules for the SEO Opportunity Engine."""

from .config import Settings, get_settings
from .domain import registrable_domain, matches_domain
from .resilience import resilient_call

__all__ = [
    "Settings",
    "get_settings",
    # Domains
    "registrable_domain",
    "matches_domain",
    # Fallbacks
    "resilient_call",
]
