"""
Domain Utilities

A registrable domain is a URL's hostname with a leading "www." removed.
It is the unit of identity when comparing SERP entries against the client
and its competitors.
"""

from typing import Optional
from urllib.parse import urlparse
import logging

from src.errors import InvalidInputError

logger = logging.getLogger(__name__)


def registrable_domain(url: Optional[str]) -> str:
    """
    Derive the registrable domain from a URL or bare hostname.

    Examples:
        "https://www.abcroofing.com/contact" -> "abcroofing.com"
        "abcroofing.com"                     -> "abcroofing.com"

    Raises:
        InvalidInputError: If no hostname can be derived.
    """
    if not url or not url.strip():
        raise InvalidInputError("Cannot derive a domain from an empty URL")

    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"http://{candidate}"

    try:
        hostname = urlparse(candidate).hostname
    except ValueError as e:
        raise InvalidInputError(f"Cannot derive a domain from URL {url!r}: {e}") from e

    if not hostname:
        raise InvalidInputError(f"Cannot derive a domain from URL {url!r}")

    hostname = hostname.lower().rstrip(".")
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def matches_domain(domain: str, entry_domain: Optional[str], entry_url: Optional[str]) -> bool:
    """Check whether a SERP entry (domain and/or url) belongs to `domain`."""
    for value in (entry_domain, entry_url):
        if not value:
            continue
        try:
            if registrable_domain(value) == domain:
                return True
        except InvalidInputError:
            logger.debug(f"Skipping unparseable SERP entry value: {value!r}")
    return False
