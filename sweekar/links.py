"""Directions and share links for a resource."""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urlencode

from . import config
from .geo import Coordinate
from .places_client import PlaceDetail


def maps_location_url(lat: float, lng: float) -> str:
    return f"{config.MAPS_SEARCH_URL}?q={lat},{lng}"


def directions_url(origin: Optional[Coordinate], resource: PlaceDetail) -> str:
    params = {"api": "1", "destination": f"{resource.lat},{resource.lng}"}
    if origin is not None:
        params["origin"] = origin.as_param()
    return f"{config.MAPS_DIRECTIONS_URL}?{urlencode(params)}"


def share_message(resource: PlaceDetail) -> str:
    return (
        f"Name: {resource.name}\n"
        f"Address: {resource.address}\n"
        f"Phone: {resource.phone}\n"
        f"Location: {maps_location_url(resource.lat, resource.lng)}"
    )


def whatsapp_share_url(resource: PlaceDetail) -> str:
    return f"{config.WHATSAPP_SHARE_URL}?text={quote(share_message(resource), safe='')}"
