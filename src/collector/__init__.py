"""
SEO Opportunity Engine - Data Collection Package

This package handles all data collection from the DataForSEO API:
- Ranked keywords per competitor and bulk search volume
- Domain rankings via asynchronous SERP tasks
- Competitor detection (Google Maps / DataForSEO Labs)
- Aggregation into one per-keyword dataset
"""

from .client import DataForSEOClient, DataForSEOError, RetryConfig
from .keywords import get_keyword_data, get_ranked_keywords
from .rankings import DomainRankingFetcher, TaskPoller
from .competitors import detect_competitors, get_local_competitors, get_national_competitors
from .aggregator import KeywordAggregator, fetch_keyword_data

__all__ = [
    # Client
    "DataForSEOClient",
    "DataForSEOError",
    "RetryConfig",

    # Fetchers
    "get_ranked_keywords",
    "get_keyword_data",
    "DomainRankingFetcher",
    "TaskPoller",

    # Competitors
    "detect_competitors",
    "get_local_competitors",
    "get_national_competitors",

    # Aggregation
    "KeywordAggregator",
    "fetch_keyword_data",
]
