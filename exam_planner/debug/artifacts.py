"""Append-only store for prompt/response/error artifacts of each generation attempt."""

from __future__ import annotations

import logging
import os
import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from exam_planner.config import settings
from exam_planner.errors import ArtifactNameError, ArtifactNotFoundError
from exam_planner.schemas.debug import DebugArtifact

logger = logging.getLogger(__name__)

ARTIFACT_KINDS = ("prompt", "response", "error", "local_plan")
# Inference order for listed filenames; first substring match wins.
KIND_MARKERS = ("prompt", "response", "error", "local_plan")
EXTENSIONS = {"prompt": "txt", "response": "txt", "error": "json", "local_plan": "json"}

_SEQUENCE_RE = re.compile(r"_(\d+)\.[A-Za-z0-9]+$")


class ArtifactStorage(ABC):
    """Minimal key -> bytes storage the artifact store is written against."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None: ...

    @abstractmethod
    def get(self, key: str) -> bytes: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def stat(self, key: str) -> tuple[int, datetime]:
        """Return ``(size_bytes, created_at)`` for ``key``."""


class FileSystemStorage(ArtifactStorage):
    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / key

    def put(self, key: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._path(key).write_bytes(data)

    def get(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError as exc:
            raise ArtifactNotFoundError(key) from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError as exc:
            raise ArtifactNotFoundError(key) from exc

    def keys(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return [entry.name for entry in self.root.iterdir() if entry.is_file()]

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def stat(self, key: str) -> tuple[int, datetime]:
        try:
            info = self._path(key).stat()
        except FileNotFoundError as exc:
            raise ArtifactNotFoundError(key) from exc
        return info.st_size, datetime.fromtimestamp(info.st_mtime, tz=timezone.utc)


class InMemoryStorage(ArtifactStorage):
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._items: dict[str, tuple[bytes, datetime]] = {}
        self._clock = clock or _utcnow

    def put(self, key: str, data: bytes) -> None:
        self._items[key] = (data, self._clock())

    def get(self, key: str) -> bytes:
        try:
            return self._items[key][0]
        except KeyError as exc:
            raise ArtifactNotFoundError(key) from exc

    def delete(self, key: str) -> None:
        if self._items.pop(key, None) is None:
            raise ArtifactNotFoundError(key)

    def keys(self) -> list[str]:
        return list(self._items)

    def exists(self, key: str) -> bool:
        return key in self._items

    def stat(self, key: str) -> tuple[int, datetime]:
        try:
            data, created = self._items[key]
        except KeyError as exc:
            raise ArtifactNotFoundError(key) from exc
        return len(data), created


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_filename(filename: str) -> str:
    """Reject anything that could escape the artifact directory."""
    if not filename or "\x00" in filename:
        raise ArtifactNameError("Artifact name is empty or malformed")
    segments = re.split(r"[\\/]", filename)
    if ".." in segments:
        raise ArtifactNameError(f"Artifact name must not reference a parent directory: {filename!r}")
    if len(segments) > 1 or os.path.isabs(filename) or filename == ".":
        raise ArtifactNameError(f"Artifact name must not contain a path: {filename!r}")
    return filename


def infer_kind(filename: str) -> str:
    for marker in KIND_MARKERS:
        if marker in filename:
            return marker
    return "unknown"


def _sequence(filename: str) -> int:
    match = _SEQUENCE_RE.search(filename)
    return int(match.group(1)) if match else -1


class DebugArtifactStore:
    """Named debug artifacts over an ``ArtifactStorage`` backend.

    ``write`` is the only pipeline-facing mutation and never overwrites;
    ``delete`` exists for operators.
    """

    def __init__(self, storage: ArtifactStorage, clock: Callable[[], datetime] | None = None) -> None:
        self.storage = storage
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._counter = 0

    def write(self, kind: str, content: str) -> str:
        if kind not in ARTIFACT_KINDS:
            raise ValueError(f"Unknown artifact kind: {kind}")
        data = content.encode("utf-8")
        with self._lock:
            while True:
                self._counter += 1
                stamp = self._clock().strftime("%Y%m%dT%H%M%S%fZ")
                filename = f"{kind}_{stamp}_{self._counter:06d}.{EXTENSIONS[kind]}"
                if not self.storage.exists(filename):
                    break
            self.storage.put(filename, data)
        logger.info("Debug artifact written: %s (%d bytes)", filename, len(data))
        return filename

    def list(self) -> list[DebugArtifact]:
        artifacts = []
        for key in self.storage.keys():
            try:
                size, created = self.storage.stat(key)
            except ArtifactNotFoundError:
                # Deleted between keys() and stat().
                continue
            artifacts.append(
                DebugArtifact(filename=key, kind=infer_kind(key), size_bytes=size, created_at=created)
            )
        artifacts.sort(key=lambda item: (item.created_at, _sequence(item.filename)), reverse=True)
        return artifacts

    def read(self, filename: str) -> str:
        return self.storage.get(check_filename(filename)).decode("utf-8", errors="replace")

    def delete(self, filename: str) -> None:
        self.storage.delete(check_filename(filename))
        logger.info("Debug artifact deleted: %s", filename)


_stores: dict[str, DebugArtifactStore] = {}
_stores_lock = threading.Lock()


def get_artifact_store() -> DebugArtifactStore:
    """Return the shared filesystem-backed store for ``settings.debug_dir``."""
    root = settings.debug_dir
    with _stores_lock:
        store = _stores.get(root)
        if store is None:
            store = DebugArtifactStore(FileSystemStorage(root))
            _stores[root] = store
        return store
