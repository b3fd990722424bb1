"""Places web service client: nearby search, place details and response parsing."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from . import config
from .geo import Coordinate
from .http import HttpClient, RequestBudget, RequestMetrics


class PlacesError(RuntimeError):
    pass


class PlacesStatusError(PlacesError):
    def __init__(self, status: str, message: str = "") -> None:
        self.status = status
        detail = f": {message}" if message else ""
        super().__init__(f"Places request failed with status {status}{detail}")


@dataclass(frozen=True)
class PlaceDetail:
    place_id: str
    name: str
    address: str
    lat: float
    lng: float
    phone: str = config.NOT_AVAILABLE
    email: str = config.NOT_AVAILABLE
    status: str = config.STATUS_CLOSED
    hours: str = config.NOT_AVAILABLE
    photo_url: Optional[str] = None
    types: List[str] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


class PlacesClient:
    def __init__(
        self,
        http_client: HttpClient,
        budget: Optional[RequestBudget] = None,
        metrics: Optional[RequestMetrics] = None,
        radius_m: int = config.SEARCH_RADIUS_M,
    ) -> None:
        self.http = http_client
        self.budget = budget
        self.metrics = metrics
        self.radius_m = radius_m

    def _consume(self, kind: str) -> None:
        if self.budget is not None:
            self.budget.consume(kind)
        elif self.metrics is not None:
            self.metrics.inc_network(kind)

    def nearby_search(self, origin: Coordinate, keyword: str) -> List[Dict[str, Any]]:
        params = build_nearby_search_params(origin, keyword, self.radius_m)
        self._consume("search")
        response = self.http.get_json(config.PLACES_NEARBY_SEARCH_URL, params)
        check_status(response)
        return parse_nearby_response(response)

    def place_details(self, place_id: str) -> PlaceDetail:
        if not place_id:
            raise PlacesError("place_id is required for a details lookup")
        params = build_details_params(place_id)
        self._consume("details")
        response = self.http.get_json(config.PLACES_DETAILS_URL, params)
        check_status(response, allow_zero_results=False)
        detail = parse_place_details(response.get("result") or {}, self.http.api_key, place_id)
        if detail is None:
            raise PlacesError(f"Incomplete details payload for place {place_id}")
        return detail


def build_nearby_search_params(origin: Coordinate, keyword: str, radius_m: int) -> Dict[str, Any]:
    return {
        "location": origin.as_param(),
        "radius": int(radius_m),
        "keyword": keyword,
    }


def build_details_params(place_id: str) -> Dict[str, Any]:
    return {
        "place_id": place_id,
        "fields": ",".join(config.PLACES_DETAILS_FIELDS),
    }


def build_photo_url(
    photo_reference: str,
    api_key: str,
    max_width: int = config.PHOTO_MAX_WIDTH,
    max_height: int = config.PHOTO_MAX_HEIGHT,
) -> str:
    query = urlencode(
        {
            "maxwidth": max_width,
            "maxheight": max_height,
            "photo_reference": photo_reference,
            "key": api_key,
        }
    )
    return f"{config.PLACES_PHOTO_URL}?{query}"


def check_status(response: Dict[str, Any], allow_zero_results: bool = True) -> None:
    status = response.get("status") or ""
    if status == config.PLACES_STATUS_OK:
        return
    if allow_zero_results and status == config.PLACES_STATUS_ZERO_RESULTS:
        return
    raise PlacesStatusError(status or "MISSING_STATUS", response.get("error_message") or "")


# Adapter/mapper for Places response fields

def _location(payload: Dict[str, Any]) -> Dict[str, Any]:
    geometry = payload.get("geometry") or {}
    return geometry.get("location") or {}


def parse_nearby_response(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    results = response.get("results") or []
    parsed: List[Dict[str, Any]] = []
    for p in results:
        place_id = p.get("place_id")
        if not place_id:
            continue
        location = _location(p)
        parsed.append(
            {
                "place_id": place_id,
                "name": p.get("name"),
                "address": p.get("vicinity"),
                "lat": location.get("lat"),
                "lng": location.get("lng"),
                "types": p.get("types") or [],
            }
        )
    return parsed


def parse_place_details(
    result: Dict[str, Any], api_key: str, place_id: Optional[str] = None
) -> Optional[PlaceDetail]:
    location = _location(result)
    lat = location.get("lat")
    lng = location.get("lng")
    resolved_id = result.get("place_id") or place_id
    name = result.get("name")
    if not (resolved_id and name and lat is not None and lng is not None):
        return None

    photo_url = None
    photos = result.get("photos") or []
    if photos and photos[0].get("photo_reference"):
        photo_url = build_photo_url(photos[0]["photo_reference"], api_key)

    opening_hours = result.get("opening_hours") or {}
    weekday_text = opening_hours.get("weekday_text") or []

    return PlaceDetail(
        place_id=resolved_id,
        name=name,
        address=result.get("vicinity") or "",
        lat=float(lat),
        lng=float(lng),
        phone=result.get("formatted_phone_number") or config.NOT_AVAILABLE,
        email=result.get("email") or config.NOT_AVAILABLE,
        status=config.STATUS_OPEN if opening_hours.get("open_now") else config.STATUS_CLOSED,
        hours=", ".join(weekday_text) if weekday_text else config.NOT_AVAILABLE,
        photo_url=photo_url,
        types=list(result.get("types") or []),
    )
