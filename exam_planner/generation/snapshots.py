"""Load/save hooks for generation-request snapshots that survive a reload."""

from __future__ import annotations

import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from exam_planner.config import settings
from exam_planner.schemas.generation import TERMINAL_STATUSES, GenerationRequest

logger = logging.getLogger(__name__)

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def check_request_id(request_id: str) -> str:
    if not _REQUEST_ID_RE.match(request_id or ""):
        raise ValueError(f"Invalid request id: {request_id!r}")
    return request_id


class SnapshotStore(ABC):
    @abstractmethod
    def load(self, request_id: str) -> GenerationRequest | None: ...

    @abstractmethod
    def save(self, snapshot: GenerationRequest) -> None: ...

    @abstractmethod
    def delete(self, request_id: str) -> None: ...

    @abstractmethod
    def request_ids(self) -> list[str]: ...

    def cleanup_expired(self, max_age_seconds: float, *, now: float | None = None) -> list[str]:
        """Delete finished or reset snapshots older than ``max_age_seconds``.

        Age counts from ``finished_at`` for terminal requests and from
        ``created_at`` for idle ones. Requests still generating are never
        touched. Returns the deleted ids.
        """
        now = time.time() if now is None else now
        removed = []
        for request_id in self.request_ids():
            try:
                snapshot = self.load(request_id)
            except ValidationError:
                logger.warning("Unreadable snapshot %s left in place", request_id)
                continue
            if snapshot is None or snapshot.status == "generating":
                continue
            if snapshot.status in TERMINAL_STATUSES and snapshot.finished_at is not None:
                reference = snapshot.finished_at
            else:
                reference = snapshot.created_at.timestamp()
            if now - reference >= max_age_seconds:
                self.delete(request_id)
                removed.append(request_id)
        if removed:
            logger.info("Removed %d expired snapshot(s)", len(removed))
        return removed


class InMemorySnapshotStore(SnapshotStore):
    """Keeps serialized JSON so a load always yields a fresh, detached copy."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self, request_id: str) -> GenerationRequest | None:
        with self._lock:
            raw = self._items.get(request_id)
        return GenerationRequest.model_validate_json(raw) if raw is not None else None

    def save(self, snapshot: GenerationRequest) -> None:
        raw = snapshot.model_dump_json(by_alias=True)
        with self._lock:
            self._items[snapshot.id] = raw

    def delete(self, request_id: str) -> None:
        with self._lock:
            self._items.pop(request_id, None)

    def request_ids(self) -> list[str]:
        with self._lock:
            return list(self._items)


class FileSnapshotStore(SnapshotStore):
    """One JSON file per request under ``root``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, request_id: str) -> Path:
        return self.root / f"{check_request_id(request_id)}.json"

    def load(self, request_id: str) -> GenerationRequest | None:
        path = self._path(request_id)
        if not path.is_file():
            return None
        return GenerationRequest.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, snapshot: GenerationRequest) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(snapshot.id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(snapshot.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        tmp.replace(path)

    def delete(self, request_id: str) -> None:
        self._path(request_id).unlink(missing_ok=True)

    def request_ids(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.glob("*.json") if _REQUEST_ID_RE.match(p.stem))


def get_snapshot_store() -> SnapshotStore:
    if settings.snapshot_backend.lower() == "memory":
        return InMemorySnapshotStore()
    return FileSnapshotStore(settings.state_dir)
