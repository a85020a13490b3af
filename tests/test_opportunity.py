"""
Tests for the SEO opportunity report.

These tests verify:
- Exact traffic / customer / revenue arithmetic
- Cumulative, monotonic ranking buckets
- Local and national insight heuristics
- Report projection ("Not ranked", camelCase output)
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.models import (
    NOT_RANKED,
    AggregatedKeywordData,
    Competitor,
    CompetitorSource,
    KeywordRecord,
    LocalInsights,
    NationalInsights,
    RankingBucket,
    Scope,
)
from src.scoring import (
    ScoringPolicy,
    calculate_seo_opportunity,
    count_ranking_bucket,
    generate_local_insights,
    generate_national_insights,
)


RIVAL = Competitor("Rival Roofing", "https://rivalroofing.com", CompetitorSource.GOOGLE_MAPS)


def record(keyword, volume, client_rank=None, rival_rank=None, **kwargs):
    return KeywordRecord(
        keyword=keyword,
        search_volume=volume,
        client_rank=client_rank,
        competitor_ranks={RIVAL.url: rival_rank},
        is_local=kwargs.pop("is_local", False),
        **kwargs,
    )


def aggregated(records, scope=Scope.LOCAL):
    return AggregatedKeywordData(
        client_url="https://acmeroofing.com",
        competitors=[RIVAL],
        keyword_data=records,
        analysis_scope=scope,
    )


def fixed_rate(rate):
    estimator = MagicMock()
    estimator.estimate = AsyncMock(return_value=rate)
    return estimator


class TestRankingBuckets:
    """Test cumulative bucket counting."""

    def test_cumulative_counts(self):
        bucket = count_ranking_bucket([1, 3, 4, 10, 11, 50, 51, 100, 101, None])

        assert bucket == RankingBucket(top3=2, top10=4, top50=6, top100=8, total=10)

    def test_monotonic(self):
        bucket = count_ranking_bucket([2, 7, 30, 80, None, 15, 1])

        assert bucket.top3 <= bucket.top10 <= bucket.top50 <= bucket.top100 <= bucket.total

    def test_empty(self):
        assert count_ranking_bucket([]) == RankingBucket()

    def test_zero_rank_counts_as_unranked(self):
        assert count_ranking_bucket([0]).top100 == 0


class TestCalculateSeoOpportunity:
    """Test the report arithmetic and projection."""

    @pytest.mark.asyncio
    async def test_local_arithmetic(self):
        data = aggregated([record("roofers near me", 1000, 2), record("roof repair", 1000)])

        report = await calculate_seo_opportunity(data, 500, "roofing", Scope.LOCAL, fixed_rate(4.2))

        assert report.total_search_volume == 2000
        assert report.potential_traffic == 700
        assert report.conversion_rate == 4.2
        assert report.potential_customers == 29
        assert report.potential_revenue == 14500

    @pytest.mark.asyncio
    async def test_national_arithmetic_floors(self):
        data = aggregated([record("metal roofing", 999)], Scope.NATIONAL)

        report = await calculate_seo_opportunity(data, 1200.0, "roofing", Scope.NATIONAL, fixed_rate(2.2))

        # 999 * 0.30 = 299.7 -> 299; 299 * 2.2% = 6.578 -> 6
        assert report.potential_traffic == 299
        assert report.potential_customers == 6
        assert report.potential_revenue == 7200.0

    @pytest.mark.asyncio
    async def test_static_rate_without_estimator(self):
        data = aggregated([record("roof repair", 10000)])

        report = await calculate_seo_opportunity(data, 100, "roofing", Scope.LOCAL)

        assert report.conversion_rate == 4.2
        assert report.potential_customers == 147

    @pytest.mark.asyncio
    async def test_custom_policy_ctr(self):
        data = aggregated([record("roof repair", 1000)])

        report = await calculate_seo_opportunity(
            data, 100, "roofing", Scope.LOCAL, fixed_rate(10.0), ScoringPolicy(ctr_local=0.5)
        )

        assert report.potential_traffic == 500
        assert report.potential_customers == 50

    @pytest.mark.asyncio
    async def test_rankings_for_client_and_competitors(self):
        data = aggregated([
            record("a", 10, client_rank=1, rival_rank=12),
            record("b", 10, client_rank=45, rival_rank=2),
            record("c", 10, rival_rank=99),
        ])

        report = await calculate_seo_opportunity(data, 100, "roofing", Scope.LOCAL, fixed_rate(3.0))

        assert report.current_rankings == RankingBucket(top3=1, top10=1, top50=2, top100=2, total=3)
        rival = report.competitor_rankings[0]
        assert rival.url == RIVAL.url
        assert rival.source == CompetitorSource.GOOGLE_MAPS
        assert rival.rankings == RankingBucket(top3=1, top10=1, top50=2, top100=3, total=3)

    @pytest.mark.asyncio
    async def test_report_projection(self):
        data = aggregated([record("roofers near me", 100, 4, is_local=True), record("roof repair", 50)])

        report = await calculate_seo_opportunity(data, 100, "roofing", Scope.LOCAL, fixed_rate(3.0))
        output = report.to_dict()

        assert output["keywordData"][0] == {
            "keyword": "roofers near me",
            "searchVolume": 100,
            "clientRank": 4,
            "competitorRanks": {RIVAL.url: None},
            "isLocal": True,
        }
        assert output["keywordData"][1]["clientRank"] == NOT_RANKED
        assert output["analysisScope"] == "local"
        assert output["competitorRankings"][0]["source"] == "Google Maps"
        assert output["competitorRankings"][0]["top100"] == 0
        assert "localPackOpportunities" in output["analysisInsights"]

    @pytest.mark.asyncio
    async def test_empty_keyword_data(self):
        report = await calculate_seo_opportunity(aggregated([]), 100, "roofing", Scope.LOCAL, fixed_rate(4.2))

        assert report.total_search_volume == 0
        assert report.potential_revenue == 0
        assert report.current_rankings.total == 0


class TestInsights:
    """Test local and national insight heuristics."""

    def test_local_counts(self):
        records = [
            record("roofers near me", 10, has_local_pack=True, local_intent=8),
            record("roof repair near me", 10, has_local_pack=True, local_intent=8),
            record("metal roofing", 10, has_local_pack=False, local_intent=3),
        ]

        insights = generate_local_insights(records, count_ranking_bucket([None] * 3), ScoringPolicy())

        assert isinstance(insights, LocalInsights)
        assert insights.local_pack_opportunities == 2
        assert insights.near_me_searches == 2
        assert insights.local_competitor_strength == "Low"
        assert insights.google_maps_ranking_factor == "Medium"
        assert len(insights.recommended_actions) == 5

    def test_local_fallback_shares(self):
        records = [record(f"metal roofing {i}", 10) for i in range(10)]

        insights = generate_local_insights(records, count_ranking_bucket([None] * 10), ScoringPolicy())

        assert insights.local_pack_opportunities == 4
        assert insights.near_me_searches == 3

    def test_local_high_thresholds(self):
        records = [record(f"roofer near me {i}", 10) for i in range(11)]

        insights = generate_local_insights(records, count_ranking_bucket([1] * 11), ScoringPolicy())

        assert insights.local_competitor_strength == "High"
        assert insights.google_maps_ranking_factor == "High"

    def test_national(self):
        records = [record(f"kw {i}", 10) for i in range(10)]

        insights = generate_national_insights(records, count_ranking_bucket([None] * 10), ScoringPolicy())

        assert isinstance(insights, NationalInsights)
        assert insights.competitive_difficulty == "High"
        assert insights.content_gaps == 6
        assert insights.backlink_opportunities == 4
        assert insights.recommended_actions[0] == "Create comprehensive content for high-volume keywords"

    def test_national_medium_difficulty(self):
        bucket = count_ranking_bucket([5] * 15)

        insights = generate_national_insights([], bucket, ScoringPolicy())

        assert insights.competitive_difficulty == "Medium"
