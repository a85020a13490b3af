"""
Location Resolution

Maps free-text locations ("Chicago, IL", "Texas", "United States") to
DataForSEO location codes. The full location taxonomy for the country is
fetched once and cached process-wide for 24 hours.

Matching order:
1. Country name / alias
2. "City, State": state (exact, then substring; longer names first so
   "West Virginia" wins over "Virginia"), then the city within it; if the
   city cannot be resolved the state code is returned instead
3. A single name: exact state, then exact or contained city, then looser
   state and city matches
4. Fuzzy scoring (> 0.6) when no exact/substring match exists
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from src.cache import TTLCache
from src.errors import NotFoundError, UpstreamError
from src.models import LocationCode

logger = logging.getLogger(__name__)


LOCATION_CACHE_TTL = 24 * 60 * 60
MATCH_THRESHOLD = 0.6
NOT_FOUND_SUGGESTION = "Check spelling or try a different name"

# Shared across resolvers in this process
_TAXONOMY_CACHE = TTLCache(ttl_seconds=LOCATION_CACHE_TTL)


US_STATE_ABBREVIATIONS = {
    "al": "Alabama", "ak": "Alaska", "az": "Arizona", "ar": "Arkansas",
    "ca": "California", "co": "Colorado", "ct": "Connecticut", "de": "Delaware",
    "dc": "District of Columbia", "fl": "Florida", "ga": "Georgia", "hi": "Hawaii",
    "id": "Idaho", "il": "Illinois", "in": "Indiana", "ia": "Iowa",
    "ks": "Kansas", "ky": "Kentucky", "la": "Louisiana", "me": "Maine",
    "md": "Maryland", "ma": "Massachusetts", "mi": "Michigan", "mn": "Minnesota",
    "ms": "Mississippi", "mo": "Missouri", "mt": "Montana", "ne": "Nebraska",
    "nv": "Nevada", "nh": "New Hampshire", "nj": "New Jersey", "nm": "New Mexico",
    "ny": "New York", "nc": "North Carolina", "nd": "North Dakota", "oh": "Ohio",
    "ok": "Oklahoma", "or": "Oregon", "pa": "Pennsylvania", "ri": "Rhode Island",
    "sc": "South Carolina", "sd": "South Dakota", "tn": "Tennessee", "tx": "Texas",
    "ut": "Utah", "vt": "Vermont", "va": "Virginia", "wa": "Washington",
    "wv": "West Virginia", "wi": "Wisconsin", "wy": "Wyoming",
}

COUNTRY_ALIASES = {
    "us": {"united states", "usa", "us", "u.s.", "u.s.a.", "america"},
}


def short_name(location_name: str) -> str:
    """'Chicago,Illinois,United States' -> 'Chicago'."""
    return location_name.split(",")[0].strip()


def expand_state_abbreviation(value: str) -> str:
    """'IL' -> 'Illinois'; anything else is returned unchanged."""
    return US_STATE_ABBREVIATIONS.get(value.strip().lower().rstrip("."), value.strip())


def _word_score(search: str, name: str) -> float:
    """Fraction of query words that partially match a word of the candidate."""
    words = search.split()
    name_words = name.split()
    if not words or not name_words:
        return 0.0
    matches = [w for w in words if any(nw in w or w in nw for nw in name_words)]
    return len(matches) / len(words)


def find_best_match(
    items: Sequence[LocationCode],
    search_term: str,
    threshold: float = MATCH_THRESHOLD,
) -> Optional[LocationCode]:
    """
    Find the candidate best matching `search_term`.

    Args:
        items: Candidates (matched on their short name)
        search_term: Free text
        threshold: Minimum fuzzy score (exclusive)

    Returns:
        Matching LocationCode or None
    """
    if not items:
        return None

    normalized = search_term.lower().strip()
    if not normalized:
        return None

    ordered = sorted(items, key=lambda item: len(short_name(item.name)), reverse=True)

    # Exact
    for item in ordered:
        if short_name(item.name).lower() == normalized:
            return item

    # Substring, longest candidate first
    for item in ordered:
        name = short_name(item.name).lower()
        if name in normalized or normalized in name:
            return item

    # Scored fallback
    best: Optional[LocationCode] = None
    best_score = 0.0
    for item in ordered:
        name = short_name(item.name).lower()
        if normalized in name:
            score = len(normalized) / len(name)
        elif name in normalized:
            score = len(name) / len(normalized)
        else:
            score = _word_score(normalized, name)
        if score > threshold and score > best_score:
            best = item
            best_score = score

    return best


@dataclass
class LocationTaxonomy:
    """Country, states and cities known to the provider."""
    country: Optional[LocationCode] = None
    states: List[LocationCode] = field(default_factory=list)
    cities: Dict[str, List[LocationCode]] = field(default_factory=dict)
    unassigned_cities: List[LocationCode] = field(default_factory=list)

    @property
    def all_cities(self) -> List[LocationCode]:
        result: List[LocationCode] = []
        for state_cities in self.cities.values():
            result.extend(state_cities)
        result.extend(self.unassigned_cities)
        return result


def build_taxonomy(locations: List[Dict[str, Any]]) -> LocationTaxonomy:
    """Group raw provider locations into country / states / cities."""
    taxonomy = LocationTaxonomy()

    for loc in locations:
        loc_type = loc.get("location_type")
        name = loc.get("location_name")
        code = loc.get("location_code")
        if not name or code is None:
            continue
        if loc_type == "Country" and taxonomy.country is None:
            taxonomy.country = LocationCode(name=name, code=int(code), location_type="Country")
        elif loc_type == "State":
            state = LocationCode(name=name, code=int(code), location_type="State")
            taxonomy.states.append(state)
            taxonomy.cities[state.name] = []

    # Longer names first (e.g. "West Virginia" before "Virginia")
    states_by_length = sorted(taxonomy.states, key=lambda s: len(short_name(s.name)), reverse=True)

    for loc in locations:
        if loc.get("location_type") != "City" or not loc.get("location_name"):
            continue
        city = LocationCode(name=loc["location_name"], code=int(loc["location_code"]), location_type="City")
        segments = [s.strip().lower() for s in city.name.split(",")]
        parents = segments[1:]

        assigned = False
        for state in states_by_length:
            if short_name(state.name).lower() in parents:
                taxonomy.cities[state.name].append(city)
                assigned = True
                break

        if not assigned:
            remainder = ",".join(parents)
            for state in states_by_length:
                words = r"\s+".join(re.escape(w) for w in short_name(state.name).lower().split())
                if re.search(rf"\b{words}\b", remainder):
                    taxonomy.cities[state.name].append(city)
                    assigned = True
                    break

        if not assigned:
            taxonomy.unassigned_cities.append(city)

    taxonomy.states.sort(key=lambda s: s.name)
    for state_cities in taxonomy.cities.values():
        state_cities.sort(key=lambda c: c.name)

    return taxonomy


class LocationResolver:
    """
    Resolves location text to a provider LocationCode.

    Usage:
        resolver = LocationResolver(dataforseo_client)
        location = await resolver.resolve("Chicago, IL")
        location.code  # -> 1016367
    """

    def __init__(
        self,
        client,  # DataForSEOClient
        country: str = "us",
        cache: Optional[TTLCache] = None,
    ):
        self.client = client
        self.country = country.lower()
        self.cache = cache if cache is not None else _TAXONOMY_CACHE

    @classmethod
    def from_settings(cls, client, settings) -> "LocationResolver":
        """Resolver on the shared cache, using the configured country and TTL."""
        _TAXONOMY_CACHE.ttl_seconds = settings.LOCATION_CACHE_TTL
        return cls(client, country=settings.LOCATION_COUNTRY)

    async def load_taxonomy(self) -> LocationTaxonomy:
        """Get the (cached) location taxonomy for the configured country."""
        return await self.cache.get_or_populate(
            f"locations:{self.country}", self._fetch_taxonomy
        )

    async def _fetch_taxonomy(self) -> LocationTaxonomy:
        logger.info(f"Loading location taxonomy for '{self.country}' from DataForSEO")
        response = await self.client.get(f"keywords_data/google_ads/locations/{self.country}")

        tasks = response.get("tasks") or []
        locations = tasks[0].get("result") if tasks else None
        if not isinstance(locations, list):
            raise UpstreamError(
                "Failed to load location data from DataForSEO: no result list",
                response=response,
            )

        taxonomy = build_taxonomy(locations)
        logger.info(
            f"Location taxonomy loaded: {len(taxonomy.states)} states, "
            f"{len(taxonomy.all_cities)} cities"
        )
        return taxonomy

    async def resolve(self, location_text: str) -> LocationCode:
        """
        Resolve free-text location to a LocationCode.

        Raises:
            NotFoundError: When nothing matches above the threshold
        """
        text = (location_text or "").strip()
        if not text:
            raise NotFoundError("Location is required", suggestion=NOT_FOUND_SUGGESTION)

        taxonomy = await self.load_taxonomy()

        lowered = text.lower()
        if taxonomy.country and (
            lowered in COUNTRY_ALIASES.get(self.country, set())
            or lowered == short_name(taxonomy.country.name).lower()
        ):
            return taxonomy.country

        parts = [p.strip() for p in text.split(",") if p.strip()]
        if len(parts) == 1:
            location = self._resolve_single(taxonomy, parts[0])
            if location is None:
                raise NotFoundError(f'Location "{text}" not found', suggestion=NOT_FOUND_SUGGESTION)
            logger.info(f"Resolved '{text}' to {location.location_type.lower()} {location.name} ({location.code})")
            return location

        city_query = parts[0]
        state = find_best_match(taxonomy.states, expand_state_abbreviation(parts[1]))
        if state is None:
            raise NotFoundError(f'Location "{text}" not found', suggestion=NOT_FOUND_SUGGESTION)

        city = find_best_match(taxonomy.cities.get(state.name, []), city_query)
        if city:
            logger.info(f"Resolved '{text}' to city {city.name} ({city.code})")
            return city

        logger.warning(
            f"No city match for '{city_query}' in {short_name(state.name)}, "
            f"falling back to state code {state.code}"
        )
        return state

    @staticmethod
    def _resolve_single(taxonomy: LocationTaxonomy, query: str) -> Optional[LocationCode]:
        """
        Resolve a location given without a comma ("Texas", "Virginia Beach").

        A state wins only on an exact name. Otherwise a city whose name equals
        or is contained in the query is preferred, so "Indianapolis" is not
        read as Indiana. Looser state and city matches come last.
        """
        state_query = expand_state_abbreviation(query)
        for state in taxonomy.states:
            if short_name(state.name).lower() == state_query.lower():
                return state

        cities = taxonomy.all_cities
        # Fuzzy scores never exceed 1.0, so this keeps exact and containment matches only
        city = find_best_match(cities, query, threshold=1.0)
        if city:
            return city

        return find_best_match(taxonomy.states, state_query) or find_best_match(cities, query)
