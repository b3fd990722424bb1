"""HTTP client and request budgeting.

Requests are attempted exactly once; callers decide how a failure affects
their batch.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_KINDS = ("search", "details")


class BudgetExceededError(RuntimeError):
    pass


@dataclass
class RequestMetrics:
    network_search: int = 0
    network_details: int = 0
    failed_search: int = 0
    failed_details: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def total_requests(self) -> int:
        return self.network_search + self.network_details

    def inc_network(self, kind: str) -> None:
        with self._lock:
            if kind == "search":
                self.network_search += 1
            elif kind == "details":
                self.network_details += 1
            else:
                raise ValueError(f"Unknown request kind: {kind}")

    def inc_failure(self, kind: str) -> None:
        with self._lock:
            if kind == "search":
                self.failed_search += 1
            elif kind == "details":
                self.failed_details += 1
            else:
                raise ValueError(f"Unknown request kind: {kind}")

    def as_dict(self) -> Dict[str, int]:
        return {
            "network_search": self.network_search,
            "network_details": self.network_details,
            "failed_search": self.failed_search,
            "failed_details": self.failed_details,
        }


class RequestBudget:
    def __init__(
        self,
        max_requests: int,
        on_consume: Optional[Callable[[str, int], None]] = None,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.max_requests = max_requests
        self.on_consume = on_consume
        self.metrics = metrics
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def consume(self, kind: str) -> None:
        if kind not in REQUEST_KINDS:
            raise ValueError(f"Unknown budget kind: {kind}")
        with self._lock:
            if self._count >= self.max_requests:
                raise BudgetExceededError(
                    f"Places request budget exceeded: {self._count} >= {self.max_requests}"
                )
            self._count += 1
            count = self._count
        if self.metrics is not None:
            self.metrics.inc_network(kind)
        if self.on_consume:
            self.on_consume(kind, count)


class HttpClient:
    def __init__(self, api_key: str, timeout: int = 20) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()

    def get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = dict(params)
        query["key"] = self.api_key
        resp = self.session.get(url, params=query, timeout=self.timeout)

        status = resp.status_code
        if status != 200:
            logger.error("HTTP %s from %s", status, url)
            resp.raise_for_status()
            raise requests.HTTPError(f"Unexpected HTTP {status} from {url}", response=resp)

        try:
            payload = resp.json()
        except ValueError:
            logger.error("Non-JSON response from %s", url)
            raise
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected payload type from {url}: {type(payload).__name__}")
        return payload

    def close(self) -> None:
        self.session.close()
