"""No-op cache — used when caching is disabled (`prbrief summarize --no-cache`).

Every lookup misses, so every run calls the summary provider. Using a
NoOpCache rather than None lets the pipeline always call cache.store()
without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prbrief_cache.base import BaseCache

if TYPE_CHECKING:
    from prbrief_cache.models import ClassificationRecord


class NoOpCache(BaseCache):
    def lookup(self, digest: str) -> ClassificationRecord | None:
        return None

    def store(self, digest: str, record: ClassificationRecord) -> None:
        pass  # intentional no-op
