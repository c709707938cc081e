"""Abstract cache interface.

The pipeline depends on BaseCache, not on a concrete backend, so the
on-disk layout and the eviction behaviour can change without touching
the pipeline.
"""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from prbrief_cache.eviction import EvictionPolicy
    from prbrief_cache.models import CacheEntryInfo, ClassificationRecord


class BaseCache(ABC):
    """Content-addressed map from a diff digest to a ClassificationRecord.

    Entries are write-once. Nothing is evicted unless an eviction policy
    says so.
    """

    @abstractmethod
    def lookup(self, digest: str) -> ClassificationRecord | None:
        """Return the record stored for digest, or None on a miss.

        A pure read: implementations must not touch access times or
        otherwise mutate the store.
        """

    @abstractmethod
    def store(self, digest: str, record: ClassificationRecord) -> None:
        """Persist record under digest."""

    def read_summary(self, digest: str) -> str | None:
        """Return only the summary text for digest, or None on a miss."""
        record = self.lookup(digest)
        return record.summary if record is not None else None

    def entries(self) -> list[CacheEntryInfo]:
        """Return metadata for every stored entry, oldest first."""
        return []

    def evict(self, policy: EvictionPolicy | None = None) -> list[str]:
        """Remove the entries selected by policy and return their digests."""
        return []

    @contextlib.contextmanager
    def lock(self, digest: str) -> Iterator[None]:
        """Hold an advisory lock on digest between lookup and store.

        No-op by default. Concurrent runs on the same diff may then both
        call the summary provider, which is tolerated.
        """
        yield

    def close(self) -> None:
        """Release any resources held by the cache. Default is a no-op."""
