"""Nearby-resource discovery pipeline.

Stage 1: location (one-shot or watch)
Stage 2: category profile lookup
Stage 3: keyword fan-out search
Stage 4: dedup by place_id
Stage 5: details enrichment
Stage 6: type/radius filter and publish
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from . import categories, config
from .categories import CategoryProfile
from .geo import Coordinate, haversine_m
from .http import BudgetExceededError, RequestBudget, RequestMetrics
from .location import LocationSource
from .observable import Observable
from .places_client import PlaceDetail, PlacesClient, PlacesError

logger = logging.getLogger(__name__)

# Failures of a single request; anything else is a bug and propagates.
REQUEST_FAILURES = (PlacesError, BudgetExceededError, requests.RequestException, ValueError)

PIPELINE_UNAVAILABLE_MESSAGE = "Error loading places service"


class CycleState(str, Enum):
    IDLE = "idle"
    LOCATION_PENDING = "location_pending"
    FETCHING = "fetching"
    FILTERING = "filtering"
    PUBLISHED = "published"
    ABANDONED = "abandoned"
    FAILED = "failed"


@dataclass
class CycleResult:
    cycle_id: int
    category: str
    origin: Coordinate
    state: CycleState
    resources: List[PlaceDetail] = field(default_factory=list)
    raw_count: int = 0
    unique_count: int = 0
    detail_count: int = 0
    failed_keywords: List[str] = field(default_factory=list)
    message: str = ""

    def summary(self) -> Dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "category": self.category,
            "origin": {"lat": self.origin.lat, "lng": self.origin.lng},
            "state": self.state.value,
            "raw_count": self.raw_count,
            "unique_count": self.unique_count,
            "detail_count": self.detail_count,
            "published_count": len(self.resources),
            "failed_keywords": list(self.failed_keywords),
            "message": self.message,
        }


@dataclass(frozen=True)
class FeedUpdate:
    cycle_id: int
    category: str
    origin: Coordinate
    resources: Sequence[PlaceDetail]
    error: Optional[str] = None


async def fan_out_search(
    client: PlacesClient,
    origin: Coordinate,
    keywords: Sequence[str],
    metrics: Optional[RequestMetrics] = None,
    failed_keywords: Optional[List[str]] = None,
    budget: Optional[RequestBudget] = None,
) -> List[Dict[str, Any]]:
    async def search_one(keyword: str) -> List[Dict[str, Any]]:
        try:
            if budget is not None:
                budget.consume("search")
            return await asyncio.to_thread(client.nearby_search, origin, keyword)
        except REQUEST_FAILURES as exc:
            logger.warning("Nearby search failed: keyword=%r error=%s", keyword, exc)
            if metrics is not None:
                metrics.inc_failure("search")
            if failed_keywords is not None:
                failed_keywords.append(keyword)
            return []

    results = await asyncio.gather(*[search_one(keyword) for keyword in keywords])
    merged: List[Dict[str, Any]] = []
    for places in results:
        merged.extend(places)
    return merged


def dedupe_places(places: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen: set[str] = set()
    unique: List[Dict[str, Any]] = []
    for place in places:
        place_id = place.get("place_id")
        if not place_id or place_id in seen:
            continue
        seen.add(place_id)
        unique.append(place)
    return unique


async def enrich_details(
    client: PlacesClient,
    places: Sequence[Dict[str, Any]],
    metrics: Optional[RequestMetrics] = None,
    budget: Optional[RequestBudget] = None,
) -> List[PlaceDetail]:
    async def details_one(place_id: str) -> Optional[PlaceDetail]:
        try:
            if budget is not None:
                budget.consume("details")
            return await asyncio.to_thread(client.place_details, place_id)
        except REQUEST_FAILURES as exc:
            logger.warning("Details lookup failed: place_id=%s error=%s", place_id, exc)
            if metrics is not None:
                metrics.inc_failure("details")
            return None

    details = await asyncio.gather(*[details_one(place["place_id"]) for place in places])
    return [detail for detail in details if detail is not None]


def matches_types(detail: PlaceDetail, acceptable_types: Sequence[str]) -> bool:
    if not acceptable_types:
        return True
    return not set(detail.types).isdisjoint(acceptable_types)


def within_radius(detail: PlaceDetail, origin: Coordinate, max_distance_m: float) -> bool:
    return haversine_m(origin.lat, origin.lng, detail.lat, detail.lng) <= max_distance_m


def filter_resources(
    details: Iterable[PlaceDetail],
    profile: CategoryProfile,
    origin: Coordinate,
    max_distance_m: float = config.MAX_RESOURCE_DISTANCE_M,
) -> List[PlaceDetail]:
    return [
        detail
        for detail in details
        if matches_types(detail, profile.acceptable_types)
        and within_radius(detail, origin, max_distance_m)
    ]


class DiscoveryService:
    def __init__(
        self,
        places_client: Optional[PlacesClient],
        location: LocationSource,
        feed: Optional[Observable[FeedUpdate]] = None,
        metrics: Optional[RequestMetrics] = None,
        max_distance_m: float = config.MAX_RESOURCE_DISTANCE_M,
        max_requests_per_cycle: Optional[int] = config.MAX_PLACES_REQUESTS_PER_CYCLE,
    ) -> None:
        self.places_client = places_client
        self.location = location
        self.feed: Observable[FeedUpdate] = feed if feed is not None else Observable("resource_feed")
        self.metrics = metrics
        self.max_distance_m = max_distance_m
        self.max_requests_per_cycle = max_requests_per_cycle
        self.state = CycleState.IDLE
        self._latest_cycle_id = 0

    def _next_cycle_id(self) -> int:
        self._latest_cycle_id += 1
        return self._latest_cycle_id

    def _set_state(self, cycle_id: int, state: CycleState) -> None:
        if cycle_id == self._latest_cycle_id:
            self.state = state

    def cycle_budget(self, profile: CategoryProfile) -> RequestBudget:
        """Fresh request cap for one cycle; never shared with another cycle."""
        max_requests = self.max_requests_per_cycle
        if max_requests is None:
            max_requests = len(profile.keywords) * (1 + config.NEARBY_SEARCH_MAX_RESULTS)
        return RequestBudget(max_requests=max_requests)

    async def discover_once(self, category: Optional[str]) -> CycleResult:
        cycle_id = self._next_cycle_id()
        self._set_state(cycle_id, CycleState.LOCATION_PENDING)
        origin = await self.location.current()
        return await self.run_cycle(origin, category, cycle_id=cycle_id)

    def _fail(self, result: CycleResult, message: str) -> CycleResult:
        result.state = CycleState.FAILED
        result.message = message
        if result.cycle_id == self._latest_cycle_id:
            self.state = CycleState.FAILED
            self.feed.publish(FeedUpdate(result.cycle_id, result.category, result.origin, [], error=message))
        return result

    async def run_cycle(
        self, origin: Coordinate, category: Optional[str], cycle_id: Optional[int] = None
    ) -> CycleResult:
        if cycle_id is None:
            cycle_id = self._next_cycle_id()
        profile = categories.lookup(category)
        category_key = category or profile.key
        result = CycleResult(cycle_id=cycle_id, category=category_key, origin=origin, state=CycleState.FETCHING)

        if self.places_client is None:
            logger.error("Places client is not configured; discovery stopped")
            return self._fail(result, PIPELINE_UNAVAILABLE_MESSAGE)

        budget = self.cycle_budget(profile)
        try:
            logger.info(
                "Cycle %s: fan-out search (category=%s keywords=%s origin=%s budget=%s)",
                cycle_id,
                profile.key,
                len(profile.keywords),
                origin.as_param(),
                budget.max_requests,
            )
            self._set_state(cycle_id, CycleState.FETCHING)
            raw = await fan_out_search(
                self.places_client,
                origin,
                profile.keywords,
                metrics=self.metrics,
                failed_keywords=result.failed_keywords,
                budget=budget,
            )
            unique = dedupe_places(raw)
            logger.info("Cycle %s: details (raw=%s unique=%s)", cycle_id, len(raw), len(unique))
            details = await enrich_details(self.places_client, unique, metrics=self.metrics, budget=budget)

            self._set_state(cycle_id, CycleState.FILTERING)
            resources = filter_resources(details, profile, origin, self.max_distance_m)
        except asyncio.CancelledError:
            logger.info("Cycle %s abandoned", cycle_id)
            result.state = CycleState.ABANDONED
            raise
        except Exception:
            logger.exception("Cycle %s failed", cycle_id)
            return self._fail(result, PIPELINE_UNAVAILABLE_MESSAGE)

        result.raw_count = len(raw)
        result.unique_count = len(unique)
        result.detail_count = len(details)
        result.resources = resources

        if cycle_id != self._latest_cycle_id:
            logger.info("Cycle %s superseded by cycle %s; not publishing", cycle_id, self._latest_cycle_id)
            result.state = CycleState.ABANDONED
            return result

        result.state = CycleState.PUBLISHED
        self._set_state(cycle_id, CycleState.PUBLISHED)
        logger.info("Cycle %s: published %s resources", cycle_id, len(resources))
        self.feed.publish(FeedUpdate(cycle_id, category_key, origin, list(resources)))
        return result

    def start(self, category: Optional[str]) -> "DiscoverySession":
        return DiscoverySession(self, category)


class DiscoverySession:
    """Runs discovery cycles for each dispatched location until closed.

    A new fix cancels the cycle still in flight; the newest cycle wins.
    """

    def __init__(self, service: DiscoveryService, category: Optional[str]) -> None:
        self.service = service
        self.category = category
        self.results: List[CycleResult] = []
        self.abandoned = 0
        self._cycle_task: Optional[asyncio.Task] = None
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        self.service.state = CycleState.LOCATION_PENDING
        async for origin in self.service.location.watch():
            await self._cancel_cycle()
            self._cycle_task = asyncio.create_task(self._run_cycle(origin))
            # Let the cycle start before reading the next fix.
            await asyncio.sleep(0)
        if self._cycle_task is not None:
            await self._cycle_task

    async def _run_cycle(self, origin: Coordinate) -> None:
        result = await self.service.run_cycle(origin, self.category)
        self.results.append(result)

    async def _cancel_cycle(self) -> None:
        task = self._cycle_task
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self.abandoned += 1
        self.service.state = CycleState.ABANDONED

    @property
    def running(self) -> bool:
        return not self._task.done()

    async def wait(self) -> List[CycleResult]:
        await self._task
        return self.results

    async def close(self) -> None:
        await self._cancel_cycle()
        if not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def __aenter__(self) -> "DiscoverySession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
