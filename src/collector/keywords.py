"""
Keyword Fetchers

- Ranked keywords: what a single domain already ranks for
  (dataforseo_labs/google/ranked_keywords/live)
- Search volume: bulk volume lookup for arbitrary keywords
  (keywords_data/clickstream_data/dataforseo_search_volume/live)

The volume fetcher returns exactly one entry per input keyword, in input
order. Keywords the provider does not return get volume 0.
"""

import logging
from typing import Any, Dict, List

from .client import iter_result_items

logger = logging.getLogger(__name__)


RANKED_KEYWORDS_ENDPOINT = "dataforseo_labs/google/ranked_keywords/live"
SEARCH_VOLUME_ENDPOINT = "keywords_data/clickstream_data/dataforseo_search_volume/live"

# Provider limit per search-volume call
MAX_KEYWORDS_PER_VOLUME_CALL = 1000


async def get_ranked_keywords(
    client,  # DataForSEOClient
    domain: str,
    location_code: int,
    limit: int = 50,
    language_code: str = "en",
) -> List[Dict[str, Any]]:
    """
    Fetch keywords a domain currently ranks for.

    Args:
        client: DataForSEO API client
        domain: Target domain (registrable, no scheme)
        location_code: DataForSEO location code
        limit: Maximum keywords to return
        language_code: Language code

    Returns:
        List of {keyword, search_volume, keyword_difficulty, cpc, rank, url, domain}

    Raises:
        UpstreamError: On provider failure
    """
    response = await client.post(RANKED_KEYWORDS_ENDPOINT, [{
        "target": domain,
        "location_code": location_code,
        "language_code": language_code,
        "limit": limit,
    }])

    ranked = []
    for item in iter_result_items(response):
        keyword_data = item.get("keyword_data") or {}
        keyword_info = keyword_data.get("keyword_info") or {}
        serp_element = item.get("ranked_serp_element") or {}
        serp_item = serp_element.get("serp_item") or {}

        keyword = keyword_data.get("keyword") or ""
        if not keyword:
            continue

        ranked.append({
            "keyword": keyword,
            "search_volume": int(keyword_info.get("search_volume") or 0),
            "keyword_difficulty": serp_element.get("keyword_difficulty") or 0,
            "cpc": round(float(keyword_info.get("cpc") or 0), 2),
            "rank": serp_item.get("rank_absolute") or 0,
            "url": serp_item.get("url") or "",
            "domain": serp_item.get("domain") or "",
        })

    logger.info(f"Ranked keywords for {domain}: {len(ranked)}")
    return ranked[:limit]


async def get_keyword_data(
    client,  # DataForSEOClient
    keywords: List[str],
    location_code: int,
    language_code: str = "en",
) -> List[Dict[str, Any]]:
    """
    Fetch monthly search volume for arbitrary keywords.

    Args:
        client: DataForSEO API client
        keywords: Keywords to look up
        location_code: DataForSEO location code
        language_code: Language code

    Returns:
        One {keyword, search_volume} per input keyword, in input order

    Raises:
        UpstreamError: On provider failure
    """
    if not keywords:
        return []

    logger.info(f"Fetching search volume data for {len(keywords)} keywords from DataForSEO")

    volumes: Dict[str, int] = {}
    for start in range(0, len(keywords), MAX_KEYWORDS_PER_VOLUME_CALL):
        chunk = keywords[start:start + MAX_KEYWORDS_PER_VOLUME_CALL]
        response = await client.post(SEARCH_VOLUME_ENDPOINT, [{
            "keywords": chunk,
            "location_code": location_code,
            "language_code": language_code,
        }])

        for item in iter_result_items(response):
            keyword = item.get("keyword")
            if keyword:
                volumes.setdefault(keyword, int(item.get("search_volume") or 0))

    # Provider may normalise case; fall back to a case-insensitive lookup
    lowered = {k.lower(): v for k, v in volumes.items()}

    keyword_data = []
    missing = 0
    for keyword in keywords:
        if keyword in volumes:
            volume = volumes[keyword]
        elif keyword.lower() in lowered:
            volume = lowered[keyword.lower()]
        else:
            volume = 0
            missing += 1
        keyword_data.append({"keyword": keyword, "search_volume": volume})

    if missing:
        logger.info(f"{missing} keywords had no volume data, filled with 0")

    return keyword_data
