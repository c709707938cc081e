"""FileCache — one directory of JSON files, committed or restored by CI.

Layout, per diff digest:
  <digest>.json         — the full ClassificationRecord
  <digest>.summary.txt  — the summary field alone, so shell steps and
                          humans can read it without a JSON parser

The directory is the only state shared between workflow runs. Writes are
whole-file replacements (temp file + os.replace), so a reader never sees
a half-written entry and concurrent writers resolve as last-writer-wins.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Iterator

from prbrief_cache.base import BaseCache
from prbrief_cache.eviction import EvictionPolicy, NeverEvict
from prbrief_cache.models import CacheEntryInfo, ClassificationRecord

logger = logging.getLogger(__name__)

_RECORD_SUFFIX = ".json"
_SUMMARY_SUFFIX = ".summary.txt"
_LOCK_SUFFIX = ".lock"
_LOCK_POLL_SECONDS = 0.5


class FileCache(BaseCache):
    """Stores classification records as files under cache_dir.

    The eviction policy runs after every store(); with the default
    NeverEvict the directory grows without bound.

    When use_lock is set, lock() takes an advisory per-digest lock file so
    that two runs racing on the same diff make only one external call.
    A lock older than lock_timeout seconds is assumed abandoned and broken.
    """

    def __init__(
        self,
        cache_dir: str | os.PathLike = ".github/pr-summary-cache",
        policy: EvictionPolicy | None = None,
        use_lock: bool = False,
        lock_timeout: float = 180.0,
    ):
        self.cache_dir = Path(cache_dir)
        self.policy = policy or NeverEvict()
        self.use_lock = use_lock
        self.lock_timeout = lock_timeout

    def _record_path(self, digest: str) -> Path:
        return self.cache_dir / f"{digest}{_RECORD_SUFFIX}"

    def _summary_path(self, digest: str) -> Path:
        return self.cache_dir / f"{digest}{_SUMMARY_SUFFIX}"

    def _lock_path(self, digest: str) -> Path:
        return self.cache_dir / f"{digest}{_LOCK_SUFFIX}"

    def lookup(self, digest: str) -> ClassificationRecord | None:
        path = self._record_path(digest)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache entry %s: %s", path.name, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed cache entry %s", path.name)
            return None
        return ClassificationRecord.from_dict(data)

    def read_summary(self, digest: str) -> str | None:
        path = self._summary_path(digest)
        if path.exists():
            return path.read_text(encoding="utf-8").rstrip("\n")
        # Older entries or hand-pruned directories may only have the JSON file.
        return super().read_summary(digest)

    def store(self, digest: str, record: ClassificationRecord) -> None:
        # Write-once applies to readable entries only; a corrupt file would
        # otherwise turn every later run on this diff into a miss.
        if self.lookup(digest) is not None:
            logger.debug("Cache entry %s already present; keeping the existing record", digest[:12])
            return
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._write(self._record_path(digest), json.dumps(record.to_dict(), indent=2) + "\n")
        self._write(self._summary_path(digest), record.summary + "\n")
        logger.debug("Stored cache entry %s", digest[:12])
        self.evict()

    def entries(self) -> list[CacheEntryInfo]:
        infos = []
        for path in self.cache_dir.glob(f"*{_RECORD_SUFFIX}"):
            try:
                stored_at = path.stat().st_mtime
            except OSError:
                continue
            infos.append(CacheEntryInfo(digest=path.name[: -len(_RECORD_SUFFIX)], stored_at=stored_at))
        return sorted(infos, key=lambda e: e.stored_at)

    def evict(self, policy: EvictionPolicy | None = None) -> list[str]:
        digests = (policy or self.policy).select(self.entries())
        for digest in digests:
            for path in (self._record_path(digest), self._summary_path(digest)):
                with contextlib.suppress(FileNotFoundError):
                    path.unlink()
        if digests:
            logger.info("Evicted %d cache entr%s", len(digests), "y" if len(digests) == 1 else "ies")
        return digests

    @contextlib.contextmanager
    def lock(self, digest: str) -> Iterator[None]:
        if not self.use_lock:
            yield
            return
        path = self._lock_path(digest)
        self._acquire(path)
        try:
            yield
        finally:
            with contextlib.suppress(FileNotFoundError):
                path.unlink()

    def _acquire(self, path: Path) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if self._is_stale(path) or time.monotonic() >= deadline:
                    logger.warning("Breaking stale cache lock %s", path.name)
                    with contextlib.suppress(FileNotFoundError):
                        path.unlink()
                    continue
                time.sleep(_LOCK_POLL_SECONDS)
                continue
            with os.fdopen(fd, "w") as f:
                f.write(str(os.getpid()))
            return

    def _is_stale(self, path: Path) -> bool:
        try:
            return time.time() - path.stat().st_mtime > self.lock_timeout
        except FileNotFoundError:
            return False

    def _write(self, path: Path, content: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
            raise
