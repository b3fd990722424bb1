"""Application wiring: one explicitly constructed object owns every client."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from . import config
from .auth import AuthSession, IdentityProvider
from .discovery import DiscoveryService
from .engagement import Notice, ResourceInteractions
from .http import HttpClient, RequestMetrics
from .location import GeolocationProvider, LocationSource
from .observable import Observable
from .places_client import PlacesClient
from .store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppSettings:
    api_key: Optional[str] = None
    store_path: str = config.STORE_DB_PATH
    http_timeout_seconds: int = config.HTTP_TIMEOUT_SECONDS
    max_requests_per_cycle: Optional[int] = config.MAX_PLACES_REQUESTS_PER_CYCLE
    location_timeout_seconds: float = config.LOCATION_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "AppSettings":
        env = os.environ if environ is None else environ
        api_key = (env.get(config.API_KEY_ENV) or "").strip() or None
        return cls(api_key=api_key, **overrides)


class SweekarApp:
    def __init__(
        self,
        settings: AppSettings,
        location_provider: Optional[GeolocationProvider] = None,
        identity_provider: Optional[IdentityProvider] = None,
        places_client: Optional[PlacesClient] = None,
        store: Optional[Store] = None,
    ) -> None:
        self.settings = settings
        self.metrics = RequestMetrics()
        self.notices: Observable[Notice] = Observable("notices")
        self.store = store if store is not None else Store(settings.store_path, commit_every=config.STORE_COMMIT_EVERY)
        self._http: Optional[HttpClient] = None

        if places_client is None and settings.api_key:
            self._http = HttpClient(settings.api_key, timeout=settings.http_timeout_seconds)
            places_client = PlacesClient(self._http, metrics=self.metrics)
        elif places_client is None:
            logger.error("%s is not configured; resource discovery is unavailable", config.API_KEY_ENV)
        self.places_client = places_client

        self.location = LocationSource(location_provider, timeout_seconds=settings.location_timeout_seconds)
        self.discovery = DiscoveryService(
            places_client,
            self.location,
            metrics=self.metrics,
            max_requests_per_cycle=settings.max_requests_per_cycle,
        )
        self.auth = AuthSession(identity_provider, self.store)
        self.interactions = ResourceInteractions(self.auth, self.store, self.notices)

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
        self.store.close()

    def __enter__(self) -> "SweekarApp":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
