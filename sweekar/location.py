"""Location source: one-shot and continuous fixes with a default-location fallback."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional, Protocol, Union

from . import config
from .geo import DEFAULT_CENTER, Coordinate, distance_m, validate_coordinate

logger = logging.getLogger(__name__)


class LocationError(RuntimeError):
    pass


class PermissionDeniedError(LocationError):
    pass


class LocationTimeoutError(LocationError):
    pass


class LocationUnavailableError(LocationError):
    pass


PositionEvent = Union[Coordinate, LocationError]

_ERRORS_BY_NAME = {
    "denied": PermissionDeniedError,
    "timeout": LocationTimeoutError,
    "unavailable": LocationUnavailableError,
}

_END = object()


class GeolocationProvider(Protocol):
    async def current_position(self) -> Coordinate:
        ...

    def positions(self) -> AsyncIterator[PositionEvent]:
        """Stream of fixes. Errors are yielded as values; the stream keeps going."""
        ...


class FixedLocationProvider:
    def __init__(self, coordinate: Coordinate) -> None:
        self.coordinate = coordinate

    async def current_position(self) -> Coordinate:
        return self.coordinate

    async def positions(self) -> AsyncIterator[PositionEvent]:
        yield self.coordinate


class ReplayLocationProvider:
    """Replays a recorded sequence of fixes and errors."""

    def __init__(self, events: Iterable[PositionEvent], interval_seconds: float = 0.0) -> None:
        self.events: List[PositionEvent] = list(events)
        self.interval_seconds = interval_seconds

    @classmethod
    def from_jsonl(cls, path: str, interval_seconds: float = 0.0) -> "ReplayLocationProvider":
        events: List[PositionEvent] = []
        with Path(path).open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                events.append(parse_position_event(json.loads(line), line_no))
        return cls(events, interval_seconds=interval_seconds)

    async def current_position(self) -> Coordinate:
        if not self.events:
            raise LocationUnavailableError("No recorded positions")
        first = self.events[0]
        if isinstance(first, LocationError):
            raise first
        return first

    async def positions(self) -> AsyncIterator[PositionEvent]:
        for idx, event in enumerate(self.events):
            if idx and self.interval_seconds > 0:
                await asyncio.sleep(self.interval_seconds)
            yield event


def parse_position_event(payload: dict, line_no: int = 0) -> PositionEvent:
    error = payload.get("error")
    if error:
        error_cls = _ERRORS_BY_NAME.get(str(error).lower())
        if error_cls is None:
            raise ValueError(f"Line {line_no}: unknown location error {error!r}")
        return error_cls(str(payload.get("message") or error))
    if "lat" not in payload or "lng" not in payload:
        raise ValueError(f"Line {line_no}: expected lat/lng or error")
    return validate_coordinate(float(payload["lat"]), float(payload["lng"]))


class LocationSource:
    def __init__(
        self,
        provider: Optional[GeolocationProvider],
        timeout_seconds: float = config.LOCATION_TIMEOUT_SECONDS,
        min_move_m: float = config.REFETCH_DISTANCE_M,
        default: Coordinate = DEFAULT_CENTER,
    ) -> None:
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.min_move_m = min_move_m
        self.default = default

    async def current(self) -> Coordinate:
        if self.provider is None:
            logger.warning("Geolocation is not supported; using default location")
            return self.default
        try:
            return await asyncio.wait_for(self.provider.current_position(), self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Location request timed out after %ss; using default location", self.timeout_seconds)
        except LocationError as exc:
            logger.warning("Error getting user location: %s; using default location", exc)
        return self.default

    def should_dispatch(self, last: Optional[Coordinate], fix: Coordinate) -> bool:
        if last is None:
            return True
        return distance_m(last, fix) >= self.min_move_m

    async def watch(self) -> AsyncIterator[Coordinate]:
        """Yield the coordinates that should start a discovery cycle.

        Until something has been dispatched, each wait is bounded by the
        timeout and any failure dispatches the default location. Afterwards
        failures keep the last fix.
        """
        if self.provider is None:
            logger.warning("Geolocation is not supported; using default location")
            yield self.default
            return

        queue: asyncio.Queue = asyncio.Queue()
        pump = asyncio.create_task(self._pump(queue))
        last: Optional[Coordinate] = None
        try:
            while True:
                try:
                    if last is None:
                        item = await asyncio.wait_for(queue.get(), self.timeout_seconds)
                    else:
                        item = await queue.get()
                except asyncio.TimeoutError:
                    item = LocationTimeoutError(f"No position within {self.timeout_seconds}s")

                if item is _END:
                    break
                if isinstance(item, LocationError):
                    if last is None:
                        logger.warning("Error getting user location: %s; using default location", item)
                        last = self.default
                        yield self.default
                    else:
                        logger.warning("Location update failed: %s; keeping last fix", item)
                    continue
                if self.should_dispatch(last, item):
                    last = item
                    yield item
        finally:
            pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pump

    async def _pump(self, queue: asyncio.Queue) -> None:
        try:
            async for event in self.provider.positions():  # type: ignore[union-attr]
                queue.put_nowait(event)
        except LocationError as exc:
            queue.put_nowait(exc)
        finally:
            queue.put_nowait(_END)
