"""
DataForSEO API Client

Async HTTP client with:
- Connection pooling
- Concurrency cap per client (asyncio.Semaphore)
- Automatic retry with exponential backoff
- Graceful error handling
- Request/response logging
"""

import asyncio
import httpx
import base64
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from src.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

# Task created / task completed; 40601-40602 mean "still in queue"
TASK_OK_STATUSES = (20000, 20100)


def iter_result_items(response: Dict) -> List[Dict[str, Any]]:
    """Flatten items across every task and result in a response."""
    items: List[Dict[str, Any]] = []
    for task in response.get("tasks") or []:
        for result in (task or {}).get("result") or []:
            for item in (result or {}).get("items") or []:
                if item:
                    items.append(item)
    return items


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


class DataForSEOError(UpstreamError):
    """Custom exception for DataForSEO API errors."""


class DataForSEOClient:
    """
    Async client for DataForSEO API.

    Usage:
        client = DataForSEOClient(login="your_login", password="your_password")

        result = await client.post("dataforseo_labs/google/ranked_keywords/live", [{
            "target": "example.com",
            "location_code": 2840,
            "language_code": "en",
        }])

        locations = await client.get("keywords_data/google_ads/locations/us")

        await client.close()
    """

    BASE_URL = "https://api.dataforseo.com/v3"

    def __init__(
        self,
        login: Optional[str],
        password: Optional[str],
        retry_config: Optional[RetryConfig] = None,
        max_connections: int = 50,
        max_concurrent_requests: int = 10,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize DataForSEO client.

        Args:
            login: DataForSEO login email
            password: DataForSEO API password
            retry_config: Retry configuration (optional)
            max_connections: Maximum pooled connections
            max_concurrent_requests: Maximum in-flight requests
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)

        Raises:
            ConfigurationError: If credentials are missing
        """
        if not login or not password:
            raise ConfigurationError("DataForSEO credentials are not configured")

        self.login = login
        self.password = password
        self.retry_config = retry_config or RetryConfig()
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Create auth header
        credentials = f"{login}:{password}"
        auth_token = base64.b64encode(credentials.encode()).decode()

        # Configure HTTP client with connection pooling
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Basic {auth_token}",
                "Content-Type": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections // 2,
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    @classmethod
    def from_settings(cls, settings) -> "DataForSEOClient":
        """Build a client from application settings."""
        return cls(
            login=settings.DATAFORSEO_LOGIN,
            password=settings.DATAFORSEO_PASSWORD,
            max_concurrent_requests=settings.MAX_CONCURRENT_REQUESTS,
            timeout=settings.API_TIMEOUT,
        )

    async def post(
        self,
        endpoint: str,
        data: List[Dict[str, Any]],
        retry: bool = True
    ) -> Dict[str, Any]:
        """
        Make POST request to DataForSEO API.

        Args:
            endpoint: API endpoint path (e.g., "dataforseo_labs/google/ranked_keywords/live")
            data: Request payload (list of task objects)
            retry: Whether to retry on failure

        Returns:
            API response as dictionary

        Raises:
            DataForSEOError: On API error
        """
        return await self._dispatch("POST", endpoint, data, retry)

    async def get(self, endpoint: str, retry: bool = True) -> Dict[str, Any]:
        """
        Make GET request to DataForSEO API (task results, location lists).

        Raises:
            DataForSEOError: On API error
        """
        return await self._dispatch("GET", endpoint, None, retry)

    async def _dispatch(
        self,
        method: str,
        endpoint: str,
        data: Optional[List[Dict[str, Any]]],
        retry: bool,
    ) -> Dict[str, Any]:
        if self._closed:
            raise DataForSEOError("Client is closed")

        url = f"/{endpoint.lstrip('/')}"

        async with self._semaphore:
            if retry:
                return await self._request_with_retry(method, url, data)
            return await self._make_request(method, url, data)

    async def _make_request(
        self,
        method: str,
        url: str,
        data: Optional[List[Dict]] = None,
    ) -> Dict[str, Any]:
        """Make a single HTTP request."""
        logger.debug(f"{method} {url}")

        if method == "POST":
            response = await self._client.post(url, json=data)
        else:
            response = await self._client.get(url)

        if response.status_code != 200:
            body = response.text
            logger.error(f"DataForSEO {method} {url} failed: {response.status_code} - {body}")
            raise DataForSEOError(
                f"API request failed: {response.status_code} {response.reason_phrase} - {body}",
                status_code=response.status_code,
                response=_json_or_none(response),
            )

        try:
            result = response.json()
        except ValueError as e:
            raise DataForSEOError(
                f"Malformed API response from {url}: {e}",
                status_code=response.status_code,
            ) from e

        if not isinstance(result, dict):
            raise DataForSEOError(f"Malformed API response from {url}: expected an object")

        # Check for API-level errors
        if result.get("status_code") != 20000:
            error_msg = result.get("status_message", "Unknown error")
            raise DataForSEOError(
                f"API error: {error_msg}",
                status_code=result.get("status_code"),
                response=result,
            )

        # Check task-level errors and log them clearly
        tasks = result.get("tasks") or []
        for task in tasks:
            task_status = task.get("status_code")
            if task_status not in TASK_OK_STATUSES:
                error_msg = task.get("status_message", "Task error")
                logger.debug(
                    f"DataForSEO task status in {url}: {error_msg} (status: {task_status})"
                )

        return result

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        data: Optional[List[Dict]] = None,
    ) -> Dict[str, Any]:
        """Make request with automatic retry on failure."""
        last_exception = None
        delay = self.retry_config.initial_delay

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await self._make_request(method, url, data)

            except DataForSEOError as e:
                last_exception = e

                # Only retry transient HTTP failures
                if e.status_code not in self.retry_config.retryable_status_codes:
                    raise

            except httpx.TimeoutException as e:
                last_exception = DataForSEOError(f"Request timed out: {e}")

            except httpx.HTTPError as e:
                last_exception = DataForSEOError(f"HTTP error: {e}")

            if attempt < self.retry_config.max_retries:
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.retry_config.max_retries + 1}): "
                    f"{last_exception}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                delay = min(
                    delay * self.retry_config.exponential_base,
                    self.retry_config.max_delay
                )

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _json_or_none(response: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
