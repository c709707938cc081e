"""Eviction policies for the classification cache.

A policy only decides *which* entries go; the cache does the deleting.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable

from prbrief_cache.models import CacheEntryInfo


class EvictionPolicy(ABC):
    @abstractmethod
    def select(self, entries: list[CacheEntryInfo]) -> list[str]:
        """Return the digests to evict from entries."""


class NeverEvict(EvictionPolicy):
    """Default policy: the cache grows without bound."""

    def select(self, entries: list[CacheEntryInfo]) -> list[str]:
        return []


class MaxAgePolicy(EvictionPolicy):
    """Evict entries written more than max_age_seconds ago."""

    def __init__(self, max_age_seconds: float, clock: Callable[[], float] = time.time):
        if max_age_seconds < 0:
            raise ValueError("max_age_seconds must be >= 0")
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def select(self, entries: list[CacheEntryInfo]) -> list[str]:
        cutoff = self._clock() - self.max_age_seconds
        return [e.digest for e in entries if e.stored_at < cutoff]


class MaxEntriesPolicy(EvictionPolicy):
    """Keep only the max_entries most recently written entries."""

    def __init__(self, max_entries: int):
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        self.max_entries = max_entries

    def select(self, entries: list[CacheEntryInfo]) -> list[str]:
        ordered = sorted(entries, key=lambda e: e.stored_at)
        excess = len(ordered) - self.max_entries
        if excess <= 0:
            return []
        return [e.digest for e in ordered[:excess]]


class CompositePolicy(EvictionPolicy):
    """Union of several policies, e.g. a TTL plus a size bound."""

    def __init__(self, *policies: EvictionPolicy):
        self.policies = policies

    def select(self, entries: list[CacheEntryInfo]) -> list[str]:
        selected: list[str] = []
        for policy in self.policies:
            for digest in policy.select(entries):
                if digest not in selected:
                    selected.append(digest)
        return selected


def build_policy(max_age_days: float | None = None, max_entries: int | None = None) -> EvictionPolicy:
    """Turn the cache_* config keys into a policy. No limits → NeverEvict."""
    policies: list[EvictionPolicy] = []
    if max_age_days is not None:
        policies.append(MaxAgePolicy(max_age_days * 86400))
    if max_entries is not None:
        policies.append(MaxEntriesPolicy(max_entries))
    if not policies:
        return NeverEvict()
    if len(policies) == 1:
        return policies[0]
    return CompositePolicy(*policies)
