"""
Scoring Module for the SEO Opportunity Engine

1. **Conversion Rate** (percent, 0-10]
   Claude estimate per industry and scope, with a static industry table
   as fallback.

2. **SEO Opportunity**
   Traffic, customer and revenue projection plus cumulative ranking
   buckets for the client and every competitor.

Example Usage:
    from src.scoring import calculate_seo_opportunity, ConversionRateEstimator

    report = await calculate_seo_opportunity(
        aggregated,
        customer_value=500,
        business_type="roofing",
        scope=Scope.LOCAL,
        conversion_estimator=ConversionRateEstimator(claude_client),
    )
    report.potential_revenue
"""

from .conversion import (
    ConversionRateEstimator,
    get_fallback_conversion_rate,
    get_industry_conversion_rate,
    normalize_business_type,
)
from .opportunity import (
    ScoringPolicy,
    calculate_seo_opportunity,
    count_ranking_bucket,
    generate_local_insights,
    generate_national_insights,
)

__all__ = [
    # Conversion
    "ConversionRateEstimator",
    "get_fallback_conversion_rate",
    "get_industry_conversion_rate",
    "normalize_business_type",

    # Opportunity
    "ScoringPolicy",
    "calculate_seo_opportunity",
    "count_ranking_bucket",
    "generate_local_insights",
    "generate_national_insights",
]
