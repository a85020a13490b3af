"""
SEO Analysis Service

Runs one opportunity analysis end to end:
1. Keyword generation (Claude) when the caller supplies no seed keywords
2. Competitor detection (DataForSEO) when the caller supplies no competitors
3. Keyword aggregation (volumes + rankings)
4. Opportunity scoring

Progress is reported through an optional `progress_callback(stage, percent)`.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from src.analyzer.client import ClaudeClient
from src.collector.aggregator import KeywordAggregator
from src.collector.client import DataForSEOClient
from src.collector.competitors import detect_competitors
from src.collector.rankings import DomainRankingFetcher, Sleep
from src.context.keyword_generator import KeywordGenerator
from src.context.location_resolver import LocationResolver
from src.errors import InvalidInputError
from src.models import AggregatedKeywordData, Competitor, Report, Scope
from src.scoring.conversion import ConversionRateEstimator
from src.scoring.opportunity import ScoringPolicy, calculate_seo_opportunity
from src.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[str, int], None]

# stage -> percent complete
PROGRESS_STAGES = {
    "generating_keywords": 10,
    "detecting_competitors": 20,
    "fetching_keyword_data": 30,
    "calculating_opportunity": 80,
    "complete": 100,
}


@dataclass
class AnalysisRequest:
    """Caller input for one analysis."""
    client_url: str
    business_type: str
    customer_value: float
    scope: Union[Scope, str] = Scope.LOCAL
    location: Optional[str] = None
    competitor_urls: List[Union[str, Competitor]] = field(default_factory=list)
    seed_keywords: List[str] = field(default_factory=list)

    def validate(self) -> None:
        """
        Raises:
            InvalidInputError: On missing or inconsistent fields
        """
        if not self.client_url or not self.client_url.strip():
            raise InvalidInputError("client_url is required")
        if not self.business_type or not self.business_type.strip():
            raise InvalidInputError("business_type is required")
        if self.customer_value < 0:
            raise InvalidInputError("customer_value must not be negative")
        try:
            self.scope = Scope(self.scope)
        except ValueError:
            raise InvalidInputError(f"Unknown analysis scope: {self.scope!r}")
        if self.scope == Scope.LOCAL and not (self.location and self.location.strip()):
            raise InvalidInputError("location is required for a local analysis")


@dataclass
class AnalysisResult:
    """Report plus the keyword data it was computed from."""
    report: Report
    keyword_data: AggregatedKeywordData
    claude_usage: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report": self.report.to_dict(),
            "keywordData": self.keyword_data.to_dict(),
            "claudeUsage": dict(self.claude_usage),
        }


def _report_progress(callback: Optional[ProgressCallback], stage: str) -> None:
    percent = PROGRESS_STAGES[stage]
    logger.info(f"Analysis progress: {stage} ({percent}%)")
    if callback is not None:
        callback(stage, percent)


def _build_claude_client(settings: Settings) -> Optional[ClaudeClient]:
    if not settings.ANTHROPIC_API_KEY:
        logger.warning(
            "ANTHROPIC_API_KEY not set; keyword generation is skipped and "
            "conversion rates come from the industry table"
        )
        return None
    return ClaudeClient.from_settings(settings)


async def run_seo_analysis(
    request: AnalysisRequest,
    settings: Optional[Settings] = None,
    dataforseo_client: Optional[DataForSEOClient] = None,
    claude_client: Optional[ClaudeClient] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Optional[Sleep] = None,
) -> AnalysisResult:
    """
    Run a complete SEO opportunity analysis.

    Args:
        request: What to analyse
        settings: Application settings (defaults to get_settings())
        dataforseo_client: Existing client; one is created (and closed) otherwise
        claude_client: Existing Claude client; built from settings otherwise
        progress_callback: Called with (stage, percent) as the analysis advances
        cancel_event: Set to stop ranking polls with AnalysisCancelled
        sleep: Sleep function for ranking polls

    Returns:
        AnalysisResult

    Raises:
        InvalidInputError: Bad request
        ConfigurationError: Missing DataForSEO credentials
        NotFoundError: Location or competitors not found
        UpstreamError: DataForSEO failure
        AnalysisCancelled: cancel_event was set
    """
    request.validate()
    settings = settings or get_settings()
    scope = Scope(request.scope)
    location = request.location if scope == Scope.LOCAL else (request.location or settings.DEFAULT_LOCATION)

    owns_client = dataforseo_client is None
    client = dataforseo_client or DataForSEOClient.from_settings(settings)
    if claude_client is None:
        claude_client = _build_claude_client(settings)

    logger.info(
        f"Starting {scope.value} SEO analysis for {request.client_url} "
        f"({request.business_type}, {location})"
    )

    try:
        resolver = LocationResolver.from_settings(client, settings)

        # 1. Seed keywords
        seed_keywords = list(request.seed_keywords)
        if not seed_keywords:
            _report_progress(progress_callback, "generating_keywords")
            if claude_client is not None:
                generator = KeywordGenerator(claude_client, max_keywords=settings.MAX_GENERATED_KEYWORDS)
                seed_keywords = await generator.generate(request.business_type, location, scope)

        # 2. Competitors
        competitors = list(request.competitor_urls)
        if not competitors:
            _report_progress(progress_callback, "detecting_competitors")
            competitors = await detect_competitors(
                client,
                resolver,
                request.client_url,
                request.business_type,
                scope,
                location=location,
                national_location=settings.DEFAULT_LOCATION,
                language_code=settings.LANGUAGE_CODE,
            )

        # 3. Keyword data
        _report_progress(progress_callback, "fetching_keyword_data")
        aggregator = KeywordAggregator(
            client,
            resolver,
            DomainRankingFetcher.from_settings(client, settings, sleep=sleep),
            ranked_keywords_per_competitor=settings.RANKED_KEYWORDS_PER_COMPETITOR,
            ranking_keyword_limit=settings.RANKING_KEYWORD_LIMIT,
            language_code=settings.LANGUAGE_CODE,
        )
        keyword_data = await aggregator.fetch(
            request.client_url,
            competitors,
            seed_keywords,
            scope,
            location,
            cancel_event=cancel_event,
        )

        # 4. Opportunity
        _report_progress(progress_callback, "calculating_opportunity")
        report = await calculate_seo_opportunity(
            keyword_data,
            request.customer_value,
            request.business_type,
            scope,
            conversion_estimator=ConversionRateEstimator(claude_client),
            policy=ScoringPolicy.from_settings(settings),
        )

        _report_progress(progress_callback, "complete")
    finally:
        if owns_client:
            await client.close()

    claude_usage = claude_client.get_usage_summary() if claude_client is not None else {}
    if claude_usage:
        logger.info(
            f"Claude usage: {claude_usage['total_calls']} calls, "
            f"${claude_usage['estimated_cost']:.4f}"
        )

    return AnalysisResult(report=report, keyword_data=keyword_data, claude_usage=claude_usage)
