"""Cached classification data models.

Decoupled from prbrief_core so the cache layer can be used independently.
Core imports ClassificationRecord from here because a record is exactly
what the cache persists; there is no separate in-memory representation.
"""

from __future__ import annotations

from dataclasses import dataclass

RISK_LEVELS = ("low", "medium", "high")
DEFAULT_SUMMARY = "No summary."
DEFAULT_RISK = "medium"


@dataclass(frozen=True)
class ClassificationRecord:
    """The summary, risk tier and breaking-change flag for one diff.

    Produced either by a summary provider or by the heuristic fallback.
    Frozen: a record is write-once, keyed by the digest of the diff it describes.
    """

    summary: str
    breaking_change: bool
    risk: str  # "low" | "medium" | "high"
    notes: str | None = None

    def to_dict(self) -> dict:
        data = {
            "summary": self.summary,
            "breaking_change": self.breaking_change,
            "risk": self.risk,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, d: dict) -> ClassificationRecord:
        """Build a record from a parsed JSON object, filling in defaults.

        Used both for cache files and for provider responses, so it has to
        cope with whatever shape the model decided to return.
        """
        summary = d.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = DEFAULT_SUMMARY

        risk = d.get("risk")
        risk = risk.strip().lower() if isinstance(risk, str) else DEFAULT_RISK
        if risk not in RISK_LEVELS:
            risk = DEFAULT_RISK

        notes = d.get("notes")
        if notes is not None and not isinstance(notes, str):
            notes = str(notes)

        return cls(
            summary=summary.strip(),
            breaking_change=_as_bool(d.get("breaking_change", False)),
            risk=risk,
            notes=notes,
        )


@dataclass(frozen=True)
class CacheEntryInfo:
    """Metadata about one cache entry, used by eviction policies and `prbrief cache list`."""

    digest: str
    stored_at: float  # POSIX timestamp of the write


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)
