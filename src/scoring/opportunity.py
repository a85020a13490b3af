"""
SEO Opportunity Calculator

Turns aggregated keyword data into the opportunity report:

    potential_traffic   = floor(total_search_volume × CTR)
    potential_customers = floor(potential_traffic × conversion_rate / 100)
    potential_revenue   = potential_customers × customer_value

CTR is 0.35 for local analyses and 0.30 for national ones.

Ranking buckets are cumulative: a keyword at rank 2 counts toward top3,
top10, top50 and top100. Unranked keywords count as rank 101 and fall
outside every bucket.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from src.models import (
    NOT_RANKED,
    AggregatedKeywordData,
    CompetitorRanking,
    KeywordRecord,
    LocalInsights,
    NationalInsights,
    RankingBucket,
    Report,
    ReportKeyword,
    Scope,
)
from .conversion import ConversionRateEstimator

logger = logging.getLogger(__name__)


UNRANKED_POSITION = 101


LOCAL_RECOMMENDED_ACTIONS = [
    "Optimize Google Business Profile",
    "Build local citations",
    "Get more customer reviews",
    "Create location-specific content",
    "Optimize for 'near me' searches",
]

NATIONAL_RECOMMENDED_ACTIONS = [
    "Create comprehensive content for high-volume keywords",
    "Build a strong backlink profile",
    "Improve technical SEO",
    "Optimize for featured snippets",
    "Develop a content calendar for consistent publishing",
]


@dataclass(frozen=True)
class ScoringPolicy:
    """Tunable multipliers and thresholds for the opportunity report."""
    ctr_local: float = 0.35
    ctr_national: float = 0.30

    # Local insights
    local_pack_fallback_share: float = 0.4
    near_me_fallback_share: float = 0.3
    local_strength_top10_threshold: int = 10
    maps_factor_near_me_threshold: int = 10

    # National insights
    national_difficulty_top10_threshold: int = 15
    content_gap_share: float = 0.6
    backlink_share: float = 0.4

    local_actions: List[str] = field(default_factory=lambda: list(LOCAL_RECOMMENDED_ACTIONS))
    national_actions: List[str] = field(default_factory=lambda: list(NATIONAL_RECOMMENDED_ACTIONS))

    @classmethod
    def from_settings(cls, settings) -> "ScoringPolicy":
        return cls(ctr_local=settings.CTR_LOCAL, ctr_national=settings.CTR_NATIONAL)

    def ctr_for(self, scope: Scope) -> float:
        return self.ctr_local if Scope(scope) == Scope.LOCAL else self.ctr_national


def count_ranking_bucket(ranks: Iterable[Optional[int]]) -> RankingBucket:
    """Cumulative top3/top10/top50/top100 counts; `total` is every rank seen."""
    top3 = top10 = top50 = top100 = total = 0
    for rank in ranks:
        total += 1
        position = rank or UNRANKED_POSITION
        if position <= 3:
            top3 += 1
        if position <= 10:
            top10 += 1
        if position <= 50:
            top50 += 1
        if position <= 100:
            top100 += 1
    return RankingBucket(top3=top3, top10=top10, top50=top50, top100=top100, total=total)


def generate_local_insights(
    keyword_data: List[KeywordRecord],
    current_rankings: RankingBucket,
    policy: ScoringPolicy,
) -> LocalInsights:
    """Heuristic local-SEO insights."""
    count = len(keyword_data)

    local_pack_opportunities = (
        sum(1 for kw in keyword_data if kw.has_local_pack)
        or math.floor(count * policy.local_pack_fallback_share)
    )
    near_me_searches = (
        sum(1 for kw in keyword_data if "near me" in kw.keyword.lower())
        or math.floor(count * policy.near_me_fallback_share)
    )

    return LocalInsights(
        local_pack_opportunities=local_pack_opportunities,
        near_me_searches=near_me_searches,
        local_competitor_strength=(
            "Low" if current_rankings.top10 < policy.local_strength_top10_threshold else "High"
        ),
        google_maps_ranking_factor=(
            "High" if near_me_searches > policy.maps_factor_near_me_threshold else "Medium"
        ),
        recommended_actions=list(policy.local_actions),
    )


def generate_national_insights(
    keyword_data: List[KeywordRecord],
    current_rankings: RankingBucket,
    policy: ScoringPolicy,
) -> NationalInsights:
    """Heuristic national-SEO insights."""
    count = len(keyword_data)
    return NationalInsights(
        competitive_difficulty=(
            "High" if current_rankings.top10 < policy.national_difficulty_top10_threshold else "Medium"
        ),
        content_gaps=math.floor(count * policy.content_gap_share),
        backlink_opportunities=math.floor(count * policy.backlink_share),
        recommended_actions=list(policy.national_actions),
    )


async def calculate_seo_opportunity(
    aggregated: AggregatedKeywordData,
    customer_value: float,
    business_type: str,
    scope: Scope,
    conversion_estimator: Optional[ConversionRateEstimator] = None,
    policy: Optional[ScoringPolicy] = None,
) -> Report:
    """
    Build the SEO opportunity report.

    Args:
        aggregated: Output of the keyword aggregator
        customer_value: Revenue per customer
        business_type: Industry, used for the conversion rate
        scope: local or national
        conversion_estimator: Estimator (static table when omitted)
        policy: Multipliers and thresholds

    Returns:
        Report
    """
    scope = Scope(scope)
    policy = policy or ScoringPolicy()
    conversion_estimator = conversion_estimator or ConversionRateEstimator()

    keyword_data = aggregated.keyword_data

    conversion_rate = await conversion_estimator.estimate(business_type, scope)

    total_search_volume = sum(kw.search_volume for kw in keyword_data)
    potential_traffic = math.floor(total_search_volume * policy.ctr_for(scope))
    potential_customers = math.floor(potential_traffic * conversion_rate / 100)
    potential_revenue = potential_customers * customer_value

    current_rankings = count_ranking_bucket(kw.client_rank for kw in keyword_data)

    competitor_rankings = [
        CompetitorRanking(
            name=competitor.name,
            url=competitor.url,
            source=competitor.source,
            rankings=count_ranking_bucket(
                kw.competitor_ranks.get(competitor.url) for kw in keyword_data
            ),
        )
        for competitor in aggregated.competitors
    ]

    if scope == Scope.LOCAL:
        insights = generate_local_insights(keyword_data, current_rankings, policy)
    else:
        insights = generate_national_insights(keyword_data, current_rankings, policy)

    logger.info(
        f"Opportunity: {total_search_volume} searches -> {potential_traffic} visits -> "
        f"{potential_customers} customers at {conversion_rate}% (${potential_revenue:,.2f})"
    )

    return Report(
        total_search_volume=total_search_volume,
        potential_traffic=potential_traffic,
        conversion_rate=conversion_rate,
        potential_customers=potential_customers,
        potential_revenue=potential_revenue,
        current_rankings=current_rankings,
        competitor_rankings=competitor_rankings,
        analysis_scope=scope,
        analysis_insights=insights,
        keyword_data=[
            ReportKeyword(
                keyword=kw.keyword,
                search_volume=kw.search_volume,
                client_rank=kw.client_rank if kw.client_rank else NOT_RANKED,
                competitor_ranks=dict(kw.competitor_ranks),
                is_local=kw.is_local,
            )
            for kw in keyword_data
        ],
    )
