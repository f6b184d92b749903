"""Shared storage helpers for the pantry service.

The remote inventory lives in Firestore, but development installs and tests
run against a small JSON document store on disk. Both backends report
failures through the error types defined here so callers only ever handle
one taxonomy.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a persistence operation fails."""


class StoreUnavailable(StoreError):
    """A round trip to the document store could not complete."""


class InvalidKey(StoreError):
    """The document key is rejected by the store's identifier rules."""

    def __init__(self, key: Any, reason: str):
        super().__init__(f"invalid key {key!r}: {reason}")
        self.key = key
        self.reason = reason


class MalformedDocument(StoreError):
    """A stored document does not carry a usable count."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"malformed document {key!r}: {reason}")
        self.key = key
        self.reason = reason


class JsonStore:
    """Tiny JSON document store keyed by identifier.

    Documents are kept in a single JSON object on disk. Writes go through a
    temporary file and ``os.replace`` and the previous file is rotated into
    ``.bakN`` copies, so a torn write falls back to the newest readable
    backup on the next load. Key order is insertion order.
    Every load-modify-write cycle holds the store lock, and each write uses
    its own temporary file.
    """

    def __init__(self, path: Path | str, backups: int = 2):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.backups = max(0, backups)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _backup_path(self, index: int) -> Path:
        return self.path.with_suffix(self.path.suffix + f".bak{index}")

    def _candidate_paths(self) -> list[Path]:
        return [self.path] + [self._backup_path(idx) for idx in range(1, self.backups + 1)]

    def _read_json(self, path: Path) -> Dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreUnavailable(f"cannot read {path.name}: {exc}") from exc
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def _write_json(self, path: Path, data: Dict[str, Any]) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(json.dumps(data, indent=2))
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StoreUnavailable(f"cannot write {path.name}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def _rotate_backups(self) -> None:
        for idx in range(self.backups, 0, -1):
            src = self.path if idx == 1 else self._backup_path(idx - 1)
            if not src.exists():
                continue
            try:
                os.replace(src, self._backup_path(idx))
            except OSError as exc:
                # The new write still goes ahead; only the history is lost.
                logger.warning("Backup rotation for %s failed: %s", src.name, exc)

    def _load(self) -> Dict[str, Any]:
        for candidate in self._candidate_paths():
            data = self._read_json(candidate)
            if data is not None:
                if candidate != self.path:
                    logger.warning("Recovered %s from backup %s", self.path.name, candidate.name)
                return data
        return {}

    def _dump(self, data: Dict[str, Any]) -> None:
        self._rotate_backups()
        self._write_json(self.path, data)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, key: str, default: Any | None = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def put(self, key: str, value: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            data = self._load()
            data[key] = dict(value)
            self._dump(data)
        return value

    def remove(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._dump(data)
        return True

    def all(self) -> Dict[str, Any]:
        with self._lock:
            return self._load()
