"""
Keyword Aggregation

Combines seed keywords, competitor ranked keywords, bulk search volume and
SERP rankings into one deduplicated per-keyword dataset.

Execution strategy:
- Competitor ranked-keyword calls run in parallel
- One bulk volume call covers the full keyword union
- Ranking lookups (slow, rate-limited SERP tasks) cover only the top 50
  keywords by volume; every other keyword is left unranked

Any provider failure before the records are assembled aborts the run.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from src.context.location_resolver import LocationResolver
from src.errors import UpstreamError
from src.models import AggregatedKeywordData, Competitor, KeywordRecord, Scope
from src.utils.domain import registrable_domain
from .keywords import get_keyword_data, get_ranked_keywords
from .rankings import DomainRankingFetcher

logger = logging.getLogger(__name__)


RANKED_KEYWORDS_PER_COMPETITOR = 10
RANKING_KEYWORD_LIMIT = 50

LOCAL_MARKERS = ("near me", "local", "in ", "near ")
LOCAL_INTENT_HIGH = 8
LOCAL_INTENT_LOW = 3


def is_local_keyword(keyword: str) -> bool:
    """Whether a keyword carries local search intent."""
    text = keyword.lower()
    return any(marker in text for marker in LOCAL_MARKERS)


def merge_ranked_keywords(results: Sequence[List[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
    """Merge per-competitor ranked keywords; first competitor wins on duplicates."""
    merged: Dict[str, Dict[str, Any]] = {}
    for ranked_keywords in results:
        for kw in ranked_keywords:
            keyword = kw.get("keyword")
            if keyword and keyword not in merged:
                merged[keyword] = kw
    return merged


def _normalize_competitors(competitors: Sequence[Union[str, Competitor]]) -> List[Competitor]:
    return [c if isinstance(c, Competitor) else Competitor.from_url(c) for c in competitors]


class KeywordAggregator:
    """
    Builds the aggregated keyword dataset for a client and its competitors.

    Usage:
        aggregator = KeywordAggregator(client, resolver, DomainRankingFetcher(client))
        data = await aggregator.fetch(
            "https://client.com",
            ["https://rival.com"],
            seed_keywords,
            Scope.LOCAL,
            "Chicago, IL",
        )
    """

    def __init__(
        self,
        client,  # DataForSEOClient
        location_resolver: LocationResolver,
        ranking_fetcher: Optional[DomainRankingFetcher] = None,
        ranked_keywords_per_competitor: int = RANKED_KEYWORDS_PER_COMPETITOR,
        ranking_keyword_limit: int = RANKING_KEYWORD_LIMIT,
        language_code: str = "en",
    ):
        self.client = client
        self.location_resolver = location_resolver
        self.ranking_fetcher = ranking_fetcher or DomainRankingFetcher(client)
        self.ranked_keywords_per_competitor = ranked_keywords_per_competitor
        self.ranking_keyword_limit = ranking_keyword_limit
        self.language_code = language_code

    async def fetch(
        self,
        client_url: str,
        competitors: Sequence[Union[str, Competitor]],
        seed_keywords: Sequence[str],
        scope: Union[Scope, str] = Scope.LOCAL,
        location: str = "United States",
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AggregatedKeywordData:
        """
        Fetch and combine keyword data.

        Args:
            client_url: The client's website
            competitors: Competitor URLs or Competitor objects
            seed_keywords: Keywords to analyse before competitor keywords are merged in
            scope: local or national
            location: Free-text location
            cancel_event: Optional cancellation token for ranking polls

        Returns:
            AggregatedKeywordData sorted by search volume (desc)

        Raises:
            UpstreamError: When a provider call fails (wrapped with context)
            NotFoundError: When the location cannot be resolved
        """
        scope = Scope(scope)
        logger.info(f"Fetching keyword data from DataForSEO for {client_url} ({scope.value})")

        try:
            return await self._fetch(client_url, competitors, seed_keywords, scope, location, cancel_event)
        except UpstreamError as e:
            logger.error(f"Error fetching data from DataForSEO: {e}")
            raise UpstreamError(
                f"Failed to fetch keyword data: {e}",
                status_code=e.status_code,
                response=e.response,
            ) from e

    async def _fetch(
        self,
        client_url: str,
        competitors: Sequence[Union[str, Competitor]],
        seed_keywords: Sequence[str],
        scope: Scope,
        location: str,
        cancel_event: Optional[asyncio.Event],
    ) -> AggregatedKeywordData:
        location_code = await self.location_resolver.resolve(location)

        # 1. Domains
        client_domain = registrable_domain(client_url)
        competitor_list = _normalize_competitors(competitors)
        competitor_domains = [c.domain for c in competitor_list]

        # 2. Competitor ranked keywords (parallel), first occurrence wins
        logger.info(f"Fetching ranked keywords for {len(competitor_list)} competitors...")
        ranked_results = await asyncio.gather(*[
            get_ranked_keywords(
                self.client,
                domain,
                location_code.code,
                limit=self.ranked_keywords_per_competitor,
                language_code=self.language_code,
            )
            for domain in competitor_domains
        ], return_exceptions=True)
        # Every fetch has settled by now; surface the first failure
        for result in ranked_results:
            if isinstance(result, BaseException):
                raise result
        ranked_by_keyword = merge_ranked_keywords(ranked_results)

        # 3. Union with seeds
        all_keywords = list(dict.fromkeys([*seed_keywords, *ranked_by_keyword.keys()]))
        logger.info(f"Combined keywords for analysis: {len(all_keywords)}")

        # 4. Bulk search volume
        volume_data = await get_keyword_data(
            self.client, all_keywords, location_code.code, language_code=self.language_code
        )
        bulk_by_keyword = {item["keyword"]: item for item in volume_data}

        # 5. Top N by volume for ranking lookups
        by_volume = sorted(volume_data, key=lambda item: item.get("search_volume") or 0, reverse=True)
        top_keywords = [item["keyword"] for item in by_volume[:self.ranking_keyword_limit]]
        top_set = set(top_keywords)
        logger.info(f"Selected top {len(top_keywords)} keywords by search volume for ranking analysis")

        # 6. Rankings for client + competitors
        all_domains = list(dict.fromkeys([client_domain, *competitor_domains]))
        rankings = await self.ranking_fetcher.get_domain_rankings(
            all_domains, top_keywords, location_code.code, cancel_event=cancel_event
        )

        # 7. Records
        records = [
            self._build_record(
                keyword,
                ranked_by_keyword.get(keyword),
                bulk_by_keyword.get(keyword),
                rankings,
                keyword in top_set,
                client_domain,
                competitor_list,
                scope,
            )
            for keyword in all_keywords
        ]

        # 8. Highest volume first
        records.sort(key=lambda r: r.search_volume, reverse=True)

        return AggregatedKeywordData(
            client_url=client_url,
            competitors=competitor_list,
            keyword_data=records,
            analysis_scope=scope,
        )

    @staticmethod
    def _build_record(
        keyword: str,
        ranked: Optional[Dict[str, Any]],
        bulk: Optional[Dict[str, Any]],
        rankings: Dict[str, Dict[str, Optional[int]]],
        was_looked_up: bool,
        client_domain: str,
        competitors: List[Competitor],
        scope: Scope,
    ) -> KeywordRecord:
        ranked = ranked or {}
        bulk = bulk or {}

        search_volume = ranked.get("search_volume") or bulk.get("search_volume") or 0
        keyword_difficulty = ranked.get("keyword_difficulty") or bulk.get("keyword_difficulty") or 0
        cpc = ranked.get("cpc") or bulk.get("cpc") or 0.0

        client_rank = rankings.get(client_domain, {}).get(keyword) if was_looked_up else None
        competitor_ranks = {
            c.url: (rankings.get(c.domain, {}).get(keyword) if was_looked_up else None)
            for c in competitors
        }

        is_local = is_local_keyword(keyword)

        if scope == Scope.LOCAL:
            scope_fields: Dict[str, Any] = {
                "has_local_pack": is_local,
                "local_intent": LOCAL_INTENT_HIGH if is_local else LOCAL_INTENT_LOW,
            }
        else:
            scope_fields = {
                "keyword_difficulty": keyword_difficulty,
                "cpc": cpc,
            }

        return KeywordRecord(
            keyword=keyword,
            search_volume=int(search_volume),
            client_rank=client_rank,
            competitor_ranks=competitor_ranks,
            is_local=is_local,
            **scope_fields,
        )


async def fetch_keyword_data(
    client,  # DataForSEOClient
    client_url: str,
    competitor_urls: Sequence[Union[str, Competitor]],
    keywords: Sequence[str],
    analysis_scope: Union[Scope, str] = Scope.LOCAL,
    location: str = "United States",
    location_resolver: Optional[LocationResolver] = None,
    ranking_fetcher: Optional[DomainRankingFetcher] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AggregatedKeywordData:
    """Functional entry point for KeywordAggregator.fetch."""
    if location_resolver is None:
        location_resolver = LocationResolver(client)

    aggregator = KeywordAggregator(client, location_resolver, ranking_fetcher)
    return await aggregator.fetch(
        client_url, competitor_urls, keywords, analysis_scope, location, cancel_event
    )
