"""
Bitrix Cache - Files Engine

Disk storage engine laid out like the platform's own file cache:

    <root>/<base_dir>/<init_dir>/<xx>/<sha1(key)>.cache

Each file starts with a header line holding the expiry timestamp
(0 = no expiry) followed by the raw payload. Writes go through a temporary
file and os.replace so readers never observe a partial entry.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any

from ...errors import CacheOperationError
from ..interface import CacheEngine, namespace_path

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".cache"


class FilesCacheEngine(CacheEngine):
    """
    Filesystem storage engine.

    Notes:
    - Namespace segments are resolved under root; paths escaping it are rejected.
    - Expired or unreadable entries are treated as misses and removed.
    - A namespace wipe removes the namespace directory tree.
    """

    def __init__(self, root: str | os.PathLike[str] = ".") -> None:
        self.root = Path(root).resolve()
        self._hits = 0
        self._misses = 0
        self._writes = 0
        self._cleans = 0

    # ------------ Helpers ------------

    def _namespace_dir(self, base_dir: str, init_dir: str) -> Path:
        namespace = namespace_path(base_dir, init_dir)
        directory = (self.root / namespace.lstrip("/")).resolve()
        if directory != self.root and self.root not in directory.parents:
            raise CacheOperationError(
                f"Namespace '{namespace}' resolves outside the cache root",
                details={"namespace": namespace, "root": str(self.root)},
            )
        return directory

    def _entry_path(self, base_dir: str, init_dir: str, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self._namespace_dir(base_dir, init_dir) / digest[:2] / f"{digest}{FILE_SUFFIX}"

    @staticmethod
    def _parse(raw: bytes) -> tuple[float, bytes] | None:
        header, sep, payload = raw.partition(b"\n")
        if not sep:
            return None
        try:
            expiry = float(header.decode("ascii"))
        except (UnicodeDecodeError, ValueError):
            return None
        return expiry, payload

    # ------------ Engine contract ------------

    def read(self, base_dir: str, init_dir: str, key: str, ttl: int) -> bytes | None:
        """Read a payload from disk."""
        path = self._entry_path(base_dir, init_dir, key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            self._misses += 1
            return None
        except OSError as e:
            logger.error(
                f"Failed to read cache file for key '{key}': {e}",
                extra={"key": key, "path": str(path), "error": str(e)},
                exc_info=True,
            )
            raise CacheOperationError(
                f"Failed to read cache entry '{key}': {e}",
                details={"key": key, "path": str(path), "error": str(e)},
            ) from e

        parsed = self._parse(raw)
        if parsed is None:
            logger.warning(
                f"Discarding corrupt cache file for key '{key}'",
                extra={"key": key, "path": str(path)},
            )
            path.unlink(missing_ok=True)
            self._misses += 1
            return None

        expiry, payload = parsed
        if expiry and time.time() > expiry:
            path.unlink(missing_ok=True)
            self._misses += 1
            return None

        self._hits += 1
        return payload

    def write(self, base_dir: str, init_dir: str, key: str, value: bytes, ttl: int) -> None:
        """Store a payload on disk."""
        path = self._entry_path(base_dir, init_dir, key)
        expiry = time.time() + ttl if ttl > 0 else 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(f"{expiry:.6f}\n".encode("ascii"))
                    fh.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(
                f"Failed to write cache file for key '{key}': {e}",
                extra={"key": key, "path": str(path), "ttl": ttl, "error": str(e)},
                exc_info=True,
            )
            raise CacheOperationError(
                f"Failed to write cache entry '{key}': {e}",
                details={"key": key, "path": str(path), "error": str(e)},
            ) from e
        self._writes += 1

    def clean(self, base_dir: str, init_dir: str, key: str | None = None) -> None:
        """Remove one entry file or the whole namespace directory."""
        try:
            if key is not None:
                path = self._entry_path(base_dir, init_dir, key)
                if path.exists():
                    path.unlink(missing_ok=True)
                    self._cleans += 1
                return

            directory = self._namespace_dir(base_dir, init_dir)
            if directory == self.root:
                # Never remove the root itself, only what is under it
                for child in directory.iterdir() if directory.exists() else ():
                    if child.is_dir():
                        shutil.rmtree(child)
                    else:
                        child.unlink(missing_ok=True)
            elif directory.exists():
                shutil.rmtree(directory)
            self._cleans += 1
            logger.info(f"Cleared cache namespace directory '{directory}'")
        except OSError as e:
            logger.error(
                f"Failed to clean cache namespace '{namespace_path(base_dir, init_dir)}': {e}",
                extra={"key": key, "error": str(e)},
                exc_info=True,
            )
            raise CacheOperationError(
                f"Failed to clean cache: {e}",
                details={"namespace": namespace_path(base_dir, init_dir), "key": key, "error": str(e)},
            ) from e

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0
        return {
            "backend": "files",
            "root": str(self.root),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "writes": self._writes,
            "cleans": self._cleans,
        }

    def close(self) -> None:
        """Close engine. Files need no cleanup."""
        logger.debug(f"Files cache engine closed for root '{self.root}'")
