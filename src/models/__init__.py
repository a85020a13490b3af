"""
SEO Opportunity Engine - Data Models

Shared data models used across the pipeline. Ranks are Optional[int]
everywhere: None means "not in the top 100" (or never looked up).
`to_dict()` produces the camelCase shape collaborators persist and render.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from src.utils.domain import registrable_domain


NOT_RANKED = "Not ranked"


class Scope(str, Enum):
    """Geographic scope of an analysis."""
    LOCAL = "local"
    NATIONAL = "national"


class CompetitorSource(str, Enum):
    """Where a competitor was found."""
    GOOGLE_MAPS = "Google Maps"
    DATAFORSEO = "DataForSEO"
    SEARCH_ATLAS = "SearchAtlas"


@dataclass(frozen=True)
class LocationCode:
    """Provider location code resolved from free text."""
    name: str
    code: int
    location_type: str = "State"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "code": self.code, "type": self.location_type}


@dataclass(frozen=True)
class Competitor:
    """A competing business; passed through the pipeline unchanged."""
    name: str
    url: str
    source: CompetitorSource = CompetitorSource.DATAFORSEO

    @property
    def domain(self) -> str:
        return registrable_domain(self.url)

    @classmethod
    def from_url(cls, url: str) -> "Competitor":
        """Build a competitor from a bare URL."""
        source = CompetitorSource.GOOGLE_MAPS if "maps" in url else CompetitorSource.DATAFORSEO
        return cls(name=registrable_domain(url), url=url, source=source)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url, "source": self.source.value}


@dataclass(frozen=True)
class KeywordRecord:
    """One keyword with its volume and the rank of every tracked domain."""
    keyword: str
    search_volume: int
    client_rank: Optional[int]
    competitor_ranks: Dict[str, Optional[int]]
    is_local: bool

    # Local scope
    has_local_pack: Optional[bool] = None
    local_intent: Optional[int] = None

    # National scope
    keyword_difficulty: Optional[float] = None
    cpc: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "keyword": self.keyword,
            "searchVolume": self.search_volume,
            "clientRank": self.client_rank,
            "competitorRanks": dict(self.competitor_ranks),
            "isLocal": self.is_local,
        }
        if self.has_local_pack is not None:
            data["hasLocalPack"] = self.has_local_pack
            data["localIntent"] = self.local_intent
        if self.keyword_difficulty is not None:
            data["keywordDifficulty"] = self.keyword_difficulty
            data["cpc"] = self.cpc
        return data


@dataclass
class AggregatedKeywordData:
    """Output of the keyword aggregator."""
    client_url: str
    competitors: List[Competitor]
    keyword_data: List[KeywordRecord]
    analysis_scope: Scope

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clientUrl": self.client_url,
            "competitors": [c.to_dict() for c in self.competitors],
            "keywordData": [kw.to_dict() for kw in self.keyword_data],
            "analysisScope": self.analysis_scope.value,
        }


@dataclass(frozen=True)
class RankingBucket:
    """Cumulative count of keywords ranked within each threshold."""
    top3: int = 0
    top10: int = 0
    top50: int = 0
    top100: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "top3": self.top3,
            "top10": self.top10,
            "top50": self.top50,
            "top100": self.top100,
            "total": self.total,
        }


@dataclass(frozen=True)
class CompetitorRanking:
    """Competitor identity plus its ranking bucket."""
    name: str
    url: str
    source: CompetitorSource
    rankings: RankingBucket

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "source": self.source.value,
            **self.rankings.to_dict(),
        }


@dataclass(frozen=True)
class LocalInsights:
    local_pack_opportunities: int
    near_me_searches: int
    local_competitor_strength: str
    google_maps_ranking_factor: str
    recommended_actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "localPackOpportunities": self.local_pack_opportunities,
            "googleMapsRankingFactor": self.google_maps_ranking_factor,
            "nearMeSearches": self.near_me_searches,
            "localCompetitorStrength": self.local_competitor_strength,
            "recommendedActions": list(self.recommended_actions),
        }


@dataclass(frozen=True)
class NationalInsights:
    competitive_difficulty: str
    content_gaps: int
    backlink_opportunities: int
    recommended_actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitiveDifficulty": self.competitive_difficulty,
            "contentGaps": self.content_gaps,
            "backlinkOpportunities": self.backlink_opportunities,
            "recommendedActions": list(self.recommended_actions),
        }


@dataclass(frozen=True)
class ReportKeyword:
    """Simplified per-keyword row shown in the report."""
    keyword: str
    search_volume: int
    client_rank: Union[int, str]
    competitor_ranks: Dict[str, Optional[int]]
    is_local: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "searchVolume": self.search_volume,
            "clientRank": self.client_rank,
            "competitorRanks": dict(self.competitor_ranks),
            "isLocal": self.is_local,
        }


@dataclass(frozen=True)
class Report:
    """SEO opportunity report handed to the caller for persistence/display."""
    total_search_volume: int
    potential_traffic: int
    conversion_rate: float
    potential_customers: int
    potential_revenue: float
    current_rankings: RankingBucket
    competitor_rankings: List[CompetitorRanking]
    analysis_scope: Scope
    analysis_insights: Union[LocalInsights, NationalInsights]
    keyword_data: List[ReportKeyword]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSearchVolume": self.total_search_volume,
            "potentialTraffic": self.potential_traffic,
            "conversionRate": self.conversion_rate,
            "potentialCustomers": self.potential_customers,
            "potentialRevenue": self.potential_revenue,
            "currentRankings": self.current_rankings.to_dict(),
            "competitorRankings": [c.to_dict() for c in self.competitor_rankings],
            "analysisScope": self.analysis_scope.value,
            "analysisInsights": self.analysis_insights.to_dict(),
            "keywordData": [kw.to_dict() for kw in self.keyword_data],
        }


__all__ = [
    "NOT_RANKED",
    "Scope",
    "CompetitorSource",
    "LocationCode",
    "Competitor",
    "KeywordRecord",
    "AggregatedKeywordData",
    "RankingBucket",
    "CompetitorRanking",
    "LocalInsights",
    "NationalInsights",
    "ReportKeyword",
    "Report",
]
