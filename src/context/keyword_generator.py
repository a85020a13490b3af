"""
Keyword Generator

Builds the seed keyword list for an analysis:

1. (local only) Ask Claude for 15-20 neighbouring locations
2. Ask Claude for 30-40 base keywords for the industry and scope
3. Cross six service phrases with every neighbouring location, in both
   "service location" and "location service" order
4. Union, dedupe (exact string), cap at 50

Generation is best-effort. If any completion fails the generator returns an
empty list and the caller continues with whatever seeds it has.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, TYPE_CHECKING

from src.models import Scope
from src.utils.resilience import resilient_call

if TYPE_CHECKING:
    from src.analyzer.client import ClaudeClient

logger = logging.getLogger(__name__)


MAX_KEYWORDS = 50
MAX_BASE_KEYWORDS = 40
MAX_NEIGHBORING_LOCATIONS = 20


# =============================================================================
# PROMPTS
# =============================================================================


KEYWORD_SYSTEM_PROMPT = """You are an SEO keyword researcher for small and mid-sized businesses.
You return plain lists with no commentary, numbering or explanations."""


NEIGHBORING_LOCATIONS_PROMPT = """List 15-20 cities, towns and neighborhoods near {location} where a {business_type} business based in {location} would find customers.

Return ONLY the location names as a single comma-separated list."""


LOCAL_KEYWORDS_PROMPT = """Generate 30-40 search keywords that potential customers in {location} type into Google when looking for a {business_type}.

Focus on local buying intent: services, problems, emergency needs, pricing and "near me" phrasing.
Return ONLY the keywords, one per line, lowercase."""


NATIONAL_KEYWORDS_PROMPT = """Generate 30-40 search keywords that potential customers across the country type into Google when looking for a {business_type}.

Focus on national commercial intent: products, services, comparisons, pricing and reviews. Do not include city or state names.
Return ONLY the keywords, one per line, lowercase."""


# Service phrase templates crossed with each neighbouring location
SERVICE_PHRASES = (
    "{t}",
    "{t} services",
    "{t} company",
    "{t} near me",
    "best {t}",
    "affordable {t}",
)


@dataclass
class KeywordPlan:
    """Intermediate products of keyword generation."""
    base_keywords: List[str] = field(default_factory=list)
    neighboring_locations: List[str] = field(default_factory=list)
    location_patterns: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)


# =============================================================================
# PARSING HELPERS
# =============================================================================


_LIST_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def parse_location_list(text: str) -> List[str]:
    """Split a comma-separated completion into location names."""
    locations: List[str] = []
    for part in text.replace("\n", ",").split(","):
        name = _LIST_PREFIX.sub("", part).strip().strip('"\'').rstrip(".").strip()
        if name and name not in locations:
            locations.append(name)
    return locations


def parse_keyword_list(text: str) -> List[str]:
    """Parse a one-per-line (or comma-separated) completion into keywords."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) <= 1:
        lines = text.split(",")

    keywords: List[str] = []
    for line in lines:
        keyword = _LIST_PREFIX.sub("", line).strip().strip('"\'').rstrip(".,").strip().lower()
        keyword = re.sub(r"\s+", " ", keyword)
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    return keywords


def build_location_patterns(business_type: str, locations: List[str]) -> List[str]:
    """Cross every service phrase with every location, in both word orders."""
    term = business_type.strip().lower()
    patterns: List[str] = []
    for location in locations:
        loc = location.strip().lower()
        if not loc:
            continue
        for template in SERVICE_PHRASES:
            service = template.format(t=term)
            patterns.append(f"{service} {loc}")
            patterns.append(f"{loc} {service}")
    return patterns


def dedupe(keywords: List[str], limit: int = MAX_KEYWORDS) -> List[str]:
    """Exact-string dedupe preserving first occurrence, truncated to `limit`."""
    return list(dict.fromkeys(keywords))[:limit]


# =============================================================================
# GENERATOR
# =============================================================================


class KeywordGenerator:
    """
    Generates candidate keywords for a (business type, location, scope).

    Usage:
        generator = KeywordGenerator(claude_client)
        keywords = await generator.generate("roofing", "Chicago, IL", Scope.LOCAL)
    """

    def __init__(self, claude_client: "ClaudeClient", max_keywords: int = MAX_KEYWORDS):
        self.claude_client = claude_client
        self.max_keywords = max_keywords

    async def generate(self, business_type: str, location: str, scope: Scope) -> List[str]:
        """Return up to `max_keywords` unique keywords ([] on generative failure)."""
        plan = await self.generate_plan(business_type, location, scope)
        return plan.keywords

    async def generate_plan(self, business_type: str, location: str, scope: Scope) -> KeywordPlan:
        """Like `generate`, but keeps the intermediate lists."""
        scope = Scope(scope)
        plan = await resilient_call(
            lambda: self._build_plan(business_type, location, scope),
            KeywordPlan,
            label=f"Keyword generation for '{business_type}'",
        )
        logger.info(
            f"Generated {len(plan.keywords)} keywords for '{business_type}' "
            f"({scope.value}, {len(plan.neighboring_locations)} neighbouring locations)"
        )
        return plan

    async def _build_plan(self, business_type: str, location: str, scope: Scope) -> KeywordPlan:
        plan = KeywordPlan()

        if scope == Scope.LOCAL:
            plan.neighboring_locations = await self._neighboring_locations(business_type, location)

        plan.base_keywords = await self._base_keywords(business_type, location, scope)
        plan.location_patterns = build_location_patterns(business_type, plan.neighboring_locations)
        plan.keywords = dedupe(plan.base_keywords + plan.location_patterns, self.max_keywords)
        return plan

    async def _neighboring_locations(self, business_type: str, location: str) -> List[str]:
        text = await self.claude_client.complete(
            NEIGHBORING_LOCATIONS_PROMPT.format(location=location, business_type=business_type),
            system=KEYWORD_SYSTEM_PROMPT,
        )
        return parse_location_list(text)[:MAX_NEIGHBORING_LOCATIONS]

    async def _base_keywords(self, business_type: str, location: str, scope: Scope) -> List[str]:
        template = LOCAL_KEYWORDS_PROMPT if scope == Scope.LOCAL else NATIONAL_KEYWORDS_PROMPT
        text = await self.claude_client.complete(
            template.format(location=location, business_type=business_type),
            system=KEYWORD_SYSTEM_PROMPT,
        )
        return parse_keyword_list(text)[:MAX_BASE_KEYWORDS]


async def generate_keywords(
    claude_client: "ClaudeClient",
    business_type: str,
    location: str,
    scope: Scope = Scope.LOCAL,
) -> List[str]:
    """Convenience wrapper around KeywordGenerator.generate."""
    return await KeywordGenerator(claude_client).generate(business_type, location, scope)
