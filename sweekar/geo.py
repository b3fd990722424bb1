"""Geospatial helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass

from . import config


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_param(self) -> str:
        return f"{self.lat},{self.lng}"


DEFAULT_CENTER = Coordinate(config.DEFAULT_CENTER_LAT, config.DEFAULT_CENTER_LNG)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters on a spherical earth."""
    r = config.EARTH_RADIUS_M
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return r * c


def distance_m(a: Coordinate, b: Coordinate) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def validate_coordinate(lat: float, lng: float) -> Coordinate:
    if not (-90.0 <= lat <= 90.0):
        raise ValueError(f"Latitude out of range: {lat}")
    if not (-180.0 <= lng <= 180.0):
        raise ValueError(f"Longitude out of range: {lng}")
    return Coordinate(float(lat), float(lng))
