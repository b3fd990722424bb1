"""Output reporting helpers."""
from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO

from .discovery import CycleResult
from .places_client import PlaceDetail

RESOURCE_FIELDNAMES = [
    "place_id",
    "name",
    "address",
    "lat",
    "lng",
    "phone",
    "email",
    "status",
    "hours",
    "photo_url",
    "types",
]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    mode: str = "w",
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    dir_path = os.path.dirname(path) or "."
    base = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{base}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: str, text: str) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        f.write(text)


def resource_rows(resources: Iterable[PlaceDetail]) -> List[Dict[str, Any]]:
    return [resource.to_row() for resource in resources]


def write_resources_csv(path: str, resources: Iterable[PlaceDetail]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=RESOURCE_FIELDNAMES)
        writer.writeheader()
        for row in resource_rows(resources):
            row["types"] = json.dumps(row.get("types", []), ensure_ascii=False)
            row["photo_url"] = row.get("photo_url") or ""
            writer.writerow(row)


def write_resources_json(path: str, resources: Iterable[PlaceDetail]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(resource_rows(resources), f, ensure_ascii=False, indent=2)


def write_json_object(path: str, payload: Dict[str, Any]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def write_summary(path: str, summary_lines: List[str]) -> None:
    atomic_write_text(path, "\n".join(summary_lines))


def render_summary(result: CycleResult, metrics: Optional[Dict[str, int]] = None) -> List[str]:
    lines = [
        f"Category: {result.category}",
        f"Origin: {result.origin.lat:.6f},{result.origin.lng:.6f}",
        f"State: {result.state.value}",
        f"Raw places: {result.raw_count}",
        f"Unique places: {result.unique_count}",
        f"Details fetched: {result.detail_count}",
        f"Published resources: {len(result.resources)}",
    ]
    if result.failed_keywords:
        lines.append("Failed keywords: " + ", ".join(result.failed_keywords))
    if result.message:
        lines.append(f"Message: {result.message}")
    if metrics:
        lines.append(
            "Requests: search={network_search} details={network_details} "
            "failed_search={failed_search} failed_details={failed_details}".format(**metrics)
        )
    return lines
