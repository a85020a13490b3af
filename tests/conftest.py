"""
Pytest Configuration and Shared Fixtures

Provides common fixtures and configuration for all test modules:
- An in-memory DataForSEO fake that answers every endpoint the engine uses
- A Claude client mock
- A recorded (instant) sleep for SERP task polling
- A private location cache so tests never share taxonomy state
"""

import pytest
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock, AsyncMock

from src.cache import TTLCache
from src.errors import UpstreamError
from src.utils.config import Settings


# ============================================================================
# Mock Data Fixtures
# ============================================================================

SAMPLE_LOCATIONS: List[Dict[str, Any]] = [
    {"location_code": 2840, "location_name": "United States", "location_type": "Country"},
    {"location_code": 21137, "location_name": "Illinois,United States", "location_type": "State"},
    {"location_code": 21176, "location_name": "Texas,United States", "location_type": "State"},
    {"location_code": 21178, "location_name": "Virginia,United States", "location_type": "State"},
    {"location_code": 21183, "location_name": "West Virginia,United States", "location_type": "State"},
    {"location_code": 1016367, "location_name": "Chicago,Illinois,United States", "location_type": "City"},
    {"location_code": 1016369, "location_name": "Chicago Heights,Illinois,United States", "location_type": "City"},
    {"location_code": 1016900, "location_name": "Springfield,Illinois,United States", "location_type": "City"},
    {"location_code": 1026201, "location_name": "Austin,Texas,United States", "location_type": "City"},
    {"location_code": 1027744, "location_name": "Charleston,West Virginia,United States", "location_type": "City"},
    {"location_code": 1027000, "location_name": "Richmond,Virginia,United States", "location_type": "City"},
]


def dfs_response(items: List[Dict[str, Any]], **task_fields) -> Dict[str, Any]:
    """Wrap items in the DataForSEO tasks/result/items envelope."""
    task = {"status_code": 20000, "status_message": "Ok.", "result": [{"items": items}]}
    task.update(task_fields)
    return {"status_code": 20000, "status_message": "Ok.", "tasks": [task]}


class FakeDataForSEO:
    """
    In-memory DataForSEO.

    Configure the data attributes, then hand the instance to the code under
    test in place of a DataForSEOClient. `post` and `get` are AsyncMocks so
    calls can be asserted.

    SERP tasks: a keyword listed in `never_complete` never gets a result;
    `pending_polls[keyword] = n` makes the first n polls come back empty.
    """

    def __init__(self):
        self.locations: List[Dict[str, Any]] = list(SAMPLE_LOCATIONS)
        self.ranked: Dict[str, List[Dict[str, Any]]] = {}
        self.volumes: Dict[str, int] = {}
        self.serp: Dict[str, List[Tuple[str, int]]] = {}
        self.never_complete: set = set()
        self.pending_polls: Dict[str, int] = {}
        self.maps_items: List[Dict[str, Any]] = []
        self.competitor_domains: List[str] = []
        self.failures: Dict[str, Exception] = {}

        self.tasks: Dict[str, str] = {}
        self.task_polls: Dict[str, int] = {}

        self.post = AsyncMock(side_effect=self._post)
        self.get = AsyncMock(side_effect=self._get)
        self.close = AsyncMock()

    def fail(self, endpoint_prefix: str, error: Optional[Exception] = None) -> None:
        self.failures[endpoint_prefix] = error or UpstreamError(
            f"DataForSEO API error: 500 on {endpoint_prefix}", status_code=500
        )

    def _check_failure(self, endpoint: str) -> None:
        for prefix, error in self.failures.items():
            if endpoint.startswith(prefix):
                raise error

    def calls_to(self, endpoint_prefix: str) -> List[Any]:
        calls = list(self.post.call_args_list) + list(self.get.call_args_list)
        return [c for c in calls if c.args[0].startswith(endpoint_prefix)]

    async def _get(self, endpoint: str, retry: bool = True) -> Dict[str, Any]:
        self._check_failure(endpoint)

        if endpoint.startswith("keywords_data/google_ads/locations/"):
            return {"status_code": 20000, "tasks": [{"status_code": 20000, "result": list(self.locations)}]}

        if endpoint.startswith("serp/google/organic/task_get/advanced/"):
            task_id = endpoint.rsplit("/", 1)[-1]
            keyword = self.tasks[task_id]
            self.task_polls[task_id] = self.task_polls.get(task_id, 0) + 1

            if keyword in self.never_complete or self.task_polls[task_id] <= self.pending_polls.get(keyword, 0):
                return {"status_code": 20000, "tasks": [{"id": task_id, "status_code": 40602, "result": None}]}

            items = [
                {"type": "organic", "rank_absolute": rank, "domain": domain, "url": f"https://{domain}/page"}
                for domain, rank in self.serp.get(keyword, [])
            ]
            return dfs_response(items, id=task_id, data={"keyword": keyword})

        raise AssertionError(f"Unexpected GET {endpoint}")

    async def _post(self, endpoint: str, data: List[Dict[str, Any]], retry: bool = True) -> Dict[str, Any]:
        self._check_failure(endpoint)

        if endpoint == "dataforseo_labs/google/ranked_keywords/live":
            target = data[0]["target"]
            items = [
                {
                    "keyword_data": {
                        "keyword": kw["keyword"],
                        "keyword_info": {"search_volume": kw.get("search_volume", 0), "cpc": kw.get("cpc", 0)},
                    },
                    "ranked_serp_element": {
                        "keyword_difficulty": kw.get("keyword_difficulty", 0),
                        "serp_item": {"rank_absolute": kw.get("rank", 5), "url": f"https://{target}/", "domain": target},
                    },
                }
                for kw in self.ranked.get(target, [])[:data[0]["limit"]]
            ]
            return dfs_response(items)

        if endpoint == "keywords_data/clickstream_data/dataforseo_search_volume/live":
            items = [
                {"keyword": kw, "search_volume": self.volumes[kw]}
                for kw in data[0]["keywords"]
                if kw in self.volumes
            ]
            return dfs_response(items)

        if endpoint == "serp/google/organic/task_post":
            tasks = []
            for payload in data:
                task_id = f"task-{len(self.tasks) + 1}"
                self.tasks[task_id] = payload["keyword"]
                tasks.append({"id": task_id, "status_code": 20100, "data": {"keyword": payload["keyword"]}})
            return {"status_code": 20000, "tasks": tasks}

        if endpoint == "serp/google/maps/live/advanced":
            return dfs_response(list(self.maps_items))

        if endpoint == "dataforseo_labs/google/competitors_domain/live":
            return dfs_response([{"domain": d} for d in self.competitor_domains])

        raise AssertionError(f"Unexpected POST {endpoint}")


@pytest.fixture
def fake_dataforseo() -> FakeDataForSEO:
    """In-memory DataForSEO client."""
    return FakeDataForSEO()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def location_cache(fake_clock) -> TTLCache:
    """Private 24h location cache driven by fake_clock."""
    return TTLCache(ttl_seconds=24 * 60 * 60, clock=fake_clock)


@pytest.fixture
def recorded_sleep():
    """Instant async sleep that records every requested delay."""
    delays: List[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def test_settings() -> Settings:
    """Settings with credentials and no .env lookup."""
    return Settings(
        _env_file=None,
        DATAFORSEO_LOGIN="login@example.com",
        DATAFORSEO_PASSWORD="secret",
        ANTHROPIC_API_KEY="sk-ant-test",
    )


# ============================================================================
# Mock API Client
# ============================================================================

@pytest.fixture
def mock_claude_client():
    """Mock Claude API client."""
    client = MagicMock()
    client.complete = AsyncMock(return_value="roof repair\nroof replacement")
    client.get_usage_summary = MagicMock(return_value={
        "total_calls": 2,
        "input_tokens": 800,
        "output_tokens": 400,
        "total_tokens": 1200,
        "estimated_cost": 0.0084,
    })
    return client


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
