"""
Conversion Rate Estimator

Estimates the percentage of organic visitors that become customers for a
business type.

Primary: ask Claude for a single percentage for the industry and scope.
Fallback: a static industry table (local rates run above national ones).

Fallback lookup order:
1. Normalise: lowercase, strip punctuation, strip a trailing
   services/service/company/shop/store
2. Exact industry key, then the longest industry key contained in the text
3. Synonym table ("lawyer" -> legal, "vet" -> veterinary, ...)
4. "default product" if the text mentions product/goods/shop/store,
   else "default service"
"""

import logging
import re
from typing import Dict, Optional, TYPE_CHECKING

from src.errors import GenerativeProviderError
from src.models import Scope
from src.utils.resilience import resilient_call

if TYPE_CHECKING:
    from src.analyzer.client import ClaudeClient

logger = logging.getLogger(__name__)


MIN_RATE = 0.1
MAX_RATE = 10.0


CONVERSION_SYSTEM_PROMPT = """You are a digital marketing analyst with benchmark data on website conversion rates by industry.
You answer with a single number and nothing else."""


CONVERSION_RATE_PROMPT = """What is the typical website conversion rate (visitor to paying customer) for a {business_type} business targeting {scope_label} search traffic?

Local businesses typically convert about 30% better than national ones because local searchers are closer to a purchase decision.

Reply with ONLY the percentage as a number between 0.1 and 10, for example: 3.5"""


# industry -> {scope: percent}
INDUSTRY_CONVERSION_RATES: Dict[str, Dict[str, float]] = {
    # Home services
    "roofing": {"local": 4.2, "national": 2.2},
    "plumbing": {"local": 3.8, "national": 1.8},
    "home improvement": {"local": 3.5, "national": 1.5},
    "landscaping": {"local": 4.0, "national": 2.0},
    "electrician": {"local": 3.7, "national": 1.7},
    "hvac": {"local": 4.1, "national": 2.1},
    "pest control": {"local": 4.5, "national": 2.3},
    "cleaning": {"local": 4.0, "national": 2.0},
    "painting": {"local": 3.6, "national": 1.8},
    "flooring": {"local": 3.2, "national": 1.6},
    "remodeling": {"local": 3.4, "national": 1.6},
    "construction": {"local": 2.8, "national": 1.4},
    "moving": {"local": 4.3, "national": 2.4},
    "locksmith": {"local": 5.5, "national": 2.8},
    "garage door": {"local": 4.4, "national": 2.2},
    "pool": {"local": 3.3, "national": 1.7},
    "tree": {"local": 4.1, "national": 2.0},
    "solar": {"local": 2.5, "national": 1.3},
    # Health
    "dental": {"local": 5.2, "national": 3.2},
    "medical": {"local": 4.6, "national": 2.6},
    "chiropractic": {"local": 5.0, "national": 2.7},
    "physical therapy": {"local": 4.7, "national": 2.5},
    "veterinary": {"local": 5.1, "national": 2.8},
    "optometry": {"local": 4.4, "national": 2.4},
    "dermatology": {"local": 4.3, "national": 2.4},
    "med spa": {"local": 3.9, "national": 2.1},
    "fitness": {"local": 3.8, "national": 2.0},
    "salon": {"local": 4.6, "national": 2.3},
    # Professional services
    "legal": {"local": 4.8, "national": 2.8},
    "accounting": {"local": 4.0, "national": 2.3},
    "insurance": {"local": 3.4, "national": 1.9},
    "real estate": {"local": 2.9, "national": 1.5},
    "mortgage": {"local": 3.1, "national": 1.8},
    "financial advisor": {"local": 3.3, "national": 1.9},
    "marketing": {"local": 3.0, "national": 1.8},
    "consulting": {"local": 3.2, "national": 1.9},
    "software": {"local": 2.6, "national": 1.9},
    "education": {"local": 3.6, "national": 2.2},
    # Automotive & hospitality
    "automotive": {"local": 3.3, "national": 1.3},
    "auto repair": {"local": 4.5, "national": 2.0},
    "restaurant": {"local": 5.0, "national": 2.5},
    "hotel": {"local": 3.6, "national": 2.2},
    "travel": {"local": 2.8, "national": 1.9},
    "wedding": {"local": 3.2, "national": 1.7},
    "photography": {"local": 3.5, "national": 1.8},
    # Retail
    "ecommerce": {"local": 3.0, "national": 2.5},
    "furniture": {"local": 2.4, "national": 1.6},
    "jewelry": {"local": 2.2, "national": 1.4},
    "clothing": {"local": 2.8, "national": 2.1},
    # Defaults
    "default service": {"local": 3.0, "national": 1.0},
    "default product": {"local": 2.5, "national": 1.8},
}


INDUSTRY_SYNONYMS: Dict[str, str] = {
    "lawyer": "legal",
    "attorney": "legal",
    "law firm": "legal",
    "law": "legal",
    "vet": "veterinary",
    "animal hospital": "veterinary",
    "dentist": "dental",
    "orthodontist": "dental",
    "doctor": "medical",
    "clinic": "medical",
    "chiropractor": "chiropractic",
    "physiotherapy": "physical therapy",
    "optometrist": "optometry",
    "eye care": "optometry",
    "gym": "fitness",
    "personal trainer": "fitness",
    "hair": "salon",
    "barber": "salon",
    "spa": "med spa",
    "plumber": "plumbing",
    "roofer": "roofing",
    "roof": "roofing",
    "electrical": "electrician",
    "heating": "hvac",
    "air conditioning": "hvac",
    "cooling": "hvac",
    "lawn": "landscaping",
    "gardening": "landscaping",
    "maid": "cleaning",
    "janitorial": "cleaning",
    "exterminator": "pest control",
    "painter": "painting",
    "contractor": "construction",
    "builder": "construction",
    "handyman": "home improvement",
    "renovation": "remodeling",
    "movers": "moving",
    "realtor": "real estate",
    "property": "real estate",
    "cpa": "accounting",
    "bookkeeping": "accounting",
    "tax": "accounting",
    "mechanic": "auto repair",
    "car": "automotive",
    "cafe": "restaurant",
    "bakery": "restaurant",
    "catering": "restaurant",
    "saas": "software",
    "agency": "marketing",
    "seo": "marketing",
    "tutoring": "education",
    "school": "education",
    "online store": "ecommerce",
    "apparel": "clothing",
    "fashion": "clothing",
}


PRODUCT_MARKERS = ("product", "goods", "shop", "store")

_SUFFIX_PATTERN = re.compile(r"\s+(?:services|service|company|shop|store)$")
_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")


def _clean(business_type: str) -> str:
    cleaned = _PUNCTUATION_PATTERN.sub(" ", business_type.lower())
    return re.sub(r"\s+", " ", cleaned).strip()


def normalize_business_type(business_type: str) -> str:
    """Lowercase, strip punctuation and a trailing generic suffix."""
    return _SUFFIX_PATTERN.sub("", _clean(business_type)).strip()


def _find_industry(business_type: str) -> str:
    cleaned = _clean(business_type)
    normalized = normalize_business_type(business_type)

    if normalized in INDUSTRY_CONVERSION_RATES:
        return normalized

    for industry in sorted(INDUSTRY_CONVERSION_RATES, key=len, reverse=True):
        if industry.startswith("default"):
            continue
        if re.search(rf"\b{re.escape(industry)}s?\b", normalized):
            return industry

    for synonym in sorted(INDUSTRY_SYNONYMS, key=len, reverse=True):
        if re.search(rf"\b{re.escape(synonym)}s?\b", normalized):
            return INDUSTRY_SYNONYMS[synonym]

    if any(marker in cleaned for marker in PRODUCT_MARKERS):
        return "default product"
    return "default service"


def get_fallback_conversion_rate(business_type: str, scope: Scope) -> float:
    """Static table lookup; always succeeds."""
    industry = _find_industry(business_type)
    rate = INDUSTRY_CONVERSION_RATES[industry][Scope(scope).value]
    logger.info(f"Fallback conversion rate for '{business_type}' ({industry}): {rate}%")
    return rate


def parse_conversion_rate(text: str) -> float:
    """
    Parse a completion into a percentage.

    Raises:
        GenerativeProviderError: If the text is not a number in (0.1, 10]
    """
    value = text.strip().rstrip(".").replace("%", "").strip()
    try:
        rate = float(value)
    except ValueError:
        raise GenerativeProviderError(f"Conversion rate is not numeric: {text!r}")

    if not MIN_RATE < rate <= MAX_RATE:
        raise GenerativeProviderError(f"Conversion rate out of range: {rate}")
    return rate


class ConversionRateEstimator:
    """
    Estimates industry conversion rates.

    Without a Claude client the static table is used directly.
    """

    def __init__(self, claude_client: Optional["ClaudeClient"] = None):
        self.claude_client = claude_client

    async def estimate(self, business_type: str, scope: Scope) -> float:
        """Conversion rate in percent, within (0, 10]."""
        scope = Scope(scope)
        if self.claude_client is None:
            return get_fallback_conversion_rate(business_type, scope)

        return await resilient_call(
            lambda: self._ask_claude(business_type, scope),
            lambda: get_fallback_conversion_rate(business_type, scope),
            label=f"Conversion rate estimate for '{business_type}'",
        )

    async def _ask_claude(self, business_type: str, scope: Scope) -> float:
        scope_label = "local" if scope == Scope.LOCAL else "national"
        text = await self.claude_client.complete(
            CONVERSION_RATE_PROMPT.format(business_type=business_type, scope_label=scope_label),
            system=CONVERSION_SYSTEM_PROMPT,
            max_tokens=16,
            temperature=0.0,
        )
        rate = parse_conversion_rate(text)
        logger.info(f"Claude conversion rate for '{business_type}' ({scope_label}): {rate}%")
        return rate


async def get_industry_conversion_rate(
    business_type: str,
    scope: Scope,
    claude_client: Optional["ClaudeClient"] = None,
) -> float:
    """Convenience wrapper around ConversionRateEstimator.estimate."""
    return await ConversionRateEstimator(claude_client).estimate(business_type, scope)
