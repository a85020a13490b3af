"""
Competitor Detection

Finds the top competitors for a client when the caller supplies none:

- Local scope: Google Maps SERP for "{business_type} in {location}"; the
  first three listings that have a website
- National scope: DataForSEO Labs competitor domains for the client's domain
  (United States)
"""

import logging
from typing import List, Optional

from src.errors import NotFoundError
from src.models import Competitor, CompetitorSource, LocationCode, Scope
from src.utils.domain import registrable_domain
from .client import iter_result_items

logger = logging.getLogger(__name__)


MAPS_ENDPOINT = "serp/google/maps/live/advanced"
COMPETITORS_DOMAIN_ENDPOINT = "dataforseo_labs/google/competitors_domain/live"

MAX_COMPETITORS = 3


async def get_local_competitors(
    client,  # DataForSEOClient
    business_type: str,
    location: str,
    location_code: LocationCode,
    limit: int = MAX_COMPETITORS,
    language_code: str = "en",
) -> List[Competitor]:
    """
    Top Google Maps listings for a business type in a location.

    Raises:
        NotFoundError: When the maps SERP has no listing with a website
    """
    search_term = f"{business_type} in {location}"
    logger.info(f"Fetching local competitors for '{search_term}'")

    response = await client.post(MAPS_ENDPOINT, [{
        "keyword": search_term,
        "location_code": location_code.code,
        "language_code": language_code,
    }])

    competitors: List[Competitor] = []
    for item in iter_result_items(response):
        url = item.get("url")
        if not url:
            continue
        competitors.append(Competitor(
            name=item.get("title") or registrable_domain(url),
            url=url,
            source=CompetitorSource.GOOGLE_MAPS,
        ))
        if len(competitors) >= limit:
            break

    if not competitors:
        raise NotFoundError(
            f"No local competitors found for '{search_term}'",
            suggestion="Enter competitor websites manually",
        )

    logger.info(f"Found {len(competitors)} local competitors")
    return competitors


async def get_national_competitors(
    client,  # DataForSEOClient
    client_url: str,
    location_code: LocationCode,
    limit: int = MAX_COMPETITORS,
    language_code: str = "en",
) -> List[Competitor]:
    """
    Domains competing with the client across the same organic keywords.

    Raises:
        NotFoundError: When the provider returns no competitor domains
    """
    client_domain = registrable_domain(client_url)
    logger.info(f"Fetching national competitors for {client_domain}")

    response = await client.post(COMPETITORS_DOMAIN_ENDPOINT, [{
        "target": client_domain,
        "location_code": location_code.code,
        "language_code": language_code,
        "limit": limit + 1,
    }])

    competitors: List[Competitor] = []
    for item in iter_result_items(response):
        domain = item.get("domain")
        if not domain or registrable_domain(domain) == client_domain:
            continue
        competitors.append(Competitor(
            name=domain,
            url=f"https://{domain}",
            source=CompetitorSource.DATAFORSEO,
        ))
        if len(competitors) >= limit:
            break

    if not competitors:
        raise NotFoundError(
            f"No national competitors found for {client_domain}",
            suggestion="Enter competitor websites manually",
        )

    logger.info(f"Found {len(competitors)} national competitors")
    return competitors


async def detect_competitors(
    client,  # DataForSEOClient
    location_resolver,  # LocationResolver
    client_url: str,
    business_type: str,
    scope,
    location: Optional[str] = None,
    national_location: str = "United States",
    language_code: str = "en",
) -> List[Competitor]:
    """Detect competitors for the given scope."""
    scope = Scope(scope)
    if scope == Scope.LOCAL:
        if not location:
            raise NotFoundError(
                "A location is required to detect local competitors",
                suggestion="Provide a city or state",
            )
        location_code = await location_resolver.resolve(location)
        return await get_local_competitors(
            client, business_type, location, location_code, language_code=language_code
        )

    location_code = await location_resolver.resolve(national_location)
    return await get_national_competitors(
        client, client_url, location_code, language_code=language_code
    )
