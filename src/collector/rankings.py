"""
Domain Rankings via SERP Tasks

Looks up where each domain ranks for each keyword using the asynchronous
SERP task API:

1. Keywords are split into batches of 50 (provider limit per call)
2. One task per keyword is posted (serp/google/organic/task_post); a SERP
   holds every organic result, so all domains are matched against it
3. After a settle delay each task is polled by id until it has a result or
   the attempt budget runs out
4. The first organic entry whose domain/url belongs to a domain sets that
   domain's rank (rank_absolute)

Partial failure is expected: tasks that never complete and batches that fail
leave their keywords at None for every domain.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.errors import AnalysisCancelled, UpstreamError
from src.utils.domain import matches_domain
from .client import TASK_OK_STATUSES

logger = logging.getLogger(__name__)


TASK_POST_ENDPOINT = "serp/google/organic/task_post"
TASK_GET_ENDPOINT = "serp/google/organic/task_get/advanced"

DEFAULT_BATCH_SIZE = 50
DEFAULT_SETTLE_DELAY = 30.0
DEFAULT_POLL_ATTEMPTS = 10
DEFAULT_POLL_INTERVAL = 5.0
SERP_DEPTH = 100

Sleep = Callable[[float], Awaitable[None]]
DomainRankings = Dict[str, Dict[str, Optional[int]]]


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Ranking lookup cancelled")


class TaskPoller:
    """
    Polls pending tasks by id until each has a result or attempts run out.

    Both the sleep function and the cancellation event are injectable, so
    tests can simulate "never resolves" or "resolves on attempt N" without
    real delays.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_POLL_ATTEMPTS,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Optional[Sleep] = None,
    ):
        self.max_attempts = max_attempts
        self.interval = interval
        self.sleep = sleep or asyncio.sleep

    async def poll(
        self,
        task_ids: List[str],
        fetch: Callable[[str], Awaitable[Optional[Dict[str, Any]]]],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Poll every task id with `fetch` until all are complete.

        Args:
            task_ids: Task identifiers to poll
            fetch: Returns the completed task, or None while still pending
            cancel_event: When set, polling stops with AnalysisCancelled

        Returns:
            Mapping task_id -> completed task (only completed tasks)
        """
        completed: Dict[str, Dict[str, Any]] = {}

        for attempt in range(1, self.max_attempts + 1):
            _check_cancelled(cancel_event)
            logger.debug(f"Checking for results (attempt {attempt}/{self.max_attempts})...")

            for task_id in task_ids:
                if task_id in completed:
                    continue
                try:
                    task = await fetch(task_id)
                except UpstreamError as e:
                    logger.warning(f"Error fetching results for task {task_id}: {e}")
                    continue
                if task is not None:
                    completed[task_id] = task

            if len(completed) == len(task_ids):
                return completed

            if attempt < self.max_attempts:
                await self.sleep(self.interval)

        logger.warning(
            f"Tasks did not complete in time. Got {len(completed)} out of {len(task_ids)} tasks."
        )
        return completed


class DomainRankingFetcher:
    """
    Fetches rank-per-keyword for a set of domains.

    Usage:
        fetcher = DomainRankingFetcher(client)
        rankings = await fetcher.get_domain_rankings(
            ["client.com", "rival.com"], ["roof repair chicago"], location_code=1016367
        )
        rankings["client.com"]["roof repair chicago"]  # -> 7 or None
    """

    def __init__(
        self,
        client,  # DataForSEOClient
        poller: Optional[TaskPoller] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Optional[Sleep] = None,
        language_code: str = "en",
    ):
        self.client = client
        self.sleep = sleep or asyncio.sleep
        self.poller = poller or TaskPoller(sleep=self.sleep)
        self.batch_size = batch_size
        self.settle_delay = settle_delay
        self.language_code = language_code

    @classmethod
    def from_settings(cls, client, settings, sleep: Optional[Sleep] = None) -> "DomainRankingFetcher":
        return cls(
            client,
            poller=TaskPoller(
                max_attempts=settings.RANKING_POLL_ATTEMPTS,
                interval=settings.RANKING_POLL_INTERVAL,
                sleep=sleep,
            ),
            batch_size=settings.RANKING_BATCH_SIZE,
            settle_delay=settings.RANKING_SETTLE_DELAY,
            sleep=sleep,
            language_code=settings.LANGUAGE_CODE,
        )

    async def get_domain_rankings(
        self,
        domains: List[str],
        keywords: List[str],
        location_code: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DomainRankings:
        """
        Get the rank of every domain for every keyword.

        Args:
            domains: Registrable domains to track
            keywords: Keywords to look up
            location_code: DataForSEO location code
            cancel_event: Optional cancellation token

        Returns:
            Mapping domain -> keyword -> rank (None when not found)
        """
        rankings: DomainRankings = {domain: {} for domain in domains}

        batches = [
            keywords[i:i + self.batch_size]
            for i in range(0, len(keywords), self.batch_size)
        ]

        for index, batch in enumerate(batches, 1):
            _check_cancelled(cancel_event)
            try:
                await self._process_batch(batch, domains, location_code, rankings, cancel_event)
            except UpstreamError as e:
                logger.error(
                    f"Error processing keyword batch {index}/{len(batches)} "
                    f"({len(batch)} keywords): {e}"
                )

        # Every (domain, keyword) pair is present
        for domain in domains:
            for keyword in keywords:
                rankings[domain].setdefault(keyword, None)

        found = sum(1 for d in domains for k in keywords if rankings[d][k] is not None)
        logger.info(f"Rankings resolved for {found} of {len(domains) * len(keywords)} domain/keyword pairs")
        return rankings

    async def _process_batch(
        self,
        batch: List[str],
        domains: List[str],
        location_code: int,
        rankings: DomainRankings,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        payload = [
            {
                "keyword": keyword,
                "location_code": location_code,
                "language_code": self.language_code,
                "depth": SERP_DEPTH,
                "priority": 2,
            }
            for keyword in batch
        ]

        logger.info(f"Submitting batch of {len(batch)} keywords to DataForSEO SERP API")
        response = await self.client.post(TASK_POST_ENDPOINT, payload)

        task_keywords: Dict[str, str] = {}
        for position, task in enumerate(response.get("tasks") or []):
            task_id = task.get("id")
            if not task_id or task.get("status_code") not in TASK_OK_STATUSES:
                logger.warning(
                    f"SERP task not created: {task.get('status_message', 'unknown error')}"
                )
                continue
            keyword = (task.get("data") or {}).get("keyword")
            if not keyword and position < len(batch):
                keyword = batch[position]
            if keyword:
                task_keywords[task_id] = keyword

        if not task_keywords:
            logger.warning("No tasks were created for SERP data")
            return

        if self.settle_delay > 0:
            await self.sleep(self.settle_delay)
        _check_cancelled(cancel_event)

        completed = await self.poller.poll(list(task_keywords), self._fetch_task, cancel_event)

        for task_id, task in completed.items():
            keyword = task_keywords[task_id]
            for result in task.get("result") or []:
                for item in (result or {}).get("items") or []:
                    if item.get("type") != "organic":
                        continue
                    for domain in domains:
                        if rankings[domain].get(keyword) is not None:
                            continue
                        if matches_domain(domain, item.get("domain"), item.get("url")):
                            rankings[domain][keyword] = item.get("rank_absolute")

    async def _fetch_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Return the task once it has a result, else None."""
        response = await self.client.get(f"{TASK_GET_ENDPOINT}/{task_id}")
        tasks = response.get("tasks") or []
        if tasks and tasks[0].get("result"):
            return tasks[0]
        return None
