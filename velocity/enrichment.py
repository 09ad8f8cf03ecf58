"""
Throttled project-detail lookups.

Only budget-linked projects are looked up, strictly one request at a time and
never closer together than `min_interval` seconds. A failed or empty lookup is
recorded as None; the resolver then falls back to name heuristics.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .config import DEFAULT_MIN_REQUEST_INTERVAL
from .etl import project_detail_from_payload
from .records import ProjectDetail

logger = logging.getLogger(__name__)

DetailResponse = Union[ProjectDetail, Mapping, None]
FetchDetail = Callable[[int], Awaitable[DetailResponse]]


class DetailEnricher:
    """Sequential detail fetcher with a minimum spacing between dispatches."""

    def __init__(
        self,
        fetch: FetchDetail,
        min_interval: float = DEFAULT_MIN_REQUEST_INTERVAL,
    ):
        self.fetch = fetch
        self.min_interval = min_interval
        self._last_dispatch: Optional[float] = None
        self.failures: List[int] = []

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    async def _wait_turn(self) -> None:
        if self._last_dispatch is not None:
            remaining = self.min_interval - (self._now() - self._last_dispatch)
            if remaining > 0:
                await asyncio.sleep(remaining)
        self._last_dispatch = self._now()

    async def fetch_one(self, project_id: int) -> Optional[ProjectDetail]:
        await self._wait_turn()
        logger.debug("Fetching project details for %s", project_id)
        try:
            response = await self.fetch(project_id)
        except Exception as e:
            logger.warning("Project detail lookup failed for %s: %s", project_id, e)
            self.failures.append(project_id)
            return None

        if response is None:
            logger.warning("Project detail lookup returned nothing for %s", project_id)
            self.failures.append(project_id)
            return None
        if isinstance(response, ProjectDetail):
            return response
        if not isinstance(response, Mapping):
            logger.warning("Unexpected project detail payload for %s: %s", project_id, type(response).__name__)
            self.failures.append(project_id)
            return None
        try:
            return project_detail_from_payload(response, project_id=project_id)
        except (TypeError, ValueError) as e:
            logger.warning("Could not parse project details for %s: %s", project_id, e)
            self.failures.append(project_id)
            return None

    async def fetch_all(self, project_ids: Iterable[int]) -> Dict[int, Optional[ProjectDetail]]:
        details: Dict[int, Optional[ProjectDetail]] = {}
        for project_id in project_ids:
            if project_id in details:
                continue
            details[project_id] = await self.fetch_one(project_id)
        logger.info("Fetched details for %d projects (%d failed)", len(details), len(self.failures))
        return details
