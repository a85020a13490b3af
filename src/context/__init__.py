"""
Context Package

Turns caller input into provider-ready context:
- Free-text location -> DataForSEO location code
- Business type + location -> seed keywords (Claude)

Usage:
    from src.context import LocationResolver, KeywordGenerator

    location = await LocationResolver(dataforseo_client).resolve("Austin, TX")
    keywords = await KeywordGenerator(claude_client).generate("roofing", "Austin, TX", Scope.LOCAL)
"""

from .location_resolver import LocationResolver, LocationTaxonomy, build_taxonomy, find_best_match
from .keyword_generator import KeywordGenerator, KeywordPlan, generate_keywords

__all__ = [
    # Locations
    "LocationResolver",
    "LocationTaxonomy",
    "build_taxonomy",
    "find_best_match",

    # Keywords
    "KeywordGenerator",
    "KeywordPlan",
    "generate_keywords",
]
