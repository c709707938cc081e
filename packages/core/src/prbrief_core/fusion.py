"""Combine the AI risk verdict with the heuristic score, and size the PR.

Integer-only on purpose: the same inputs must always produce the same
labels, so there are no weights to tune and no floating point.
"""

from __future__ import annotations

from dataclasses import dataclass

from prbrief_cache.models import ClassificationRecord
from prbrief_core.diff import DiffStats
from prbrief_core.heuristics import HeuristicAssessment

_RISK_NUMERIC = {"low": 0, "medium": 1, "high": 2}

# (exclusive upper bound, label), checked in order.
_SIZE_THRESHOLDS = (
    (50, "XS"),
    (200, "Small"),
    (500, "Medium"),
    (2000, "Large"),
)

BREAKING_LABEL = "breaking-change"
SIZE_PREFIX = "size: "
RISK_PREFIX = "risk: "


@dataclass(frozen=True)
class FusedResult:
    final_risk: str
    final_breaking: bool
    size_label: str

    @property
    def labels(self) -> list[str]:
        labels = [f"{SIZE_PREFIX}{self.size_label}", f"{RISK_PREFIX}{self.final_risk}"]
        if self.final_breaking:
            labels.append(BREAKING_LABEL)
        return labels


def risk_to_numeric(risk: str | None) -> int:
    return _RISK_NUMERIC.get(risk or "", 1)


def fuse_risk(heuristic_score: int, ai_risk: str | None) -> str:
    combined = (heuristic_score + risk_to_numeric(ai_risk)) // 2
    if combined <= 0:
        return "low"
    if combined >= 2:
        return "high"
    return "medium"


def size_label(total_lines: int) -> str:
    for upper, label in _SIZE_THRESHOLDS:
        if total_lines < upper:
            return label
    return "XL"


def fuse(stats: DiffStats, record: ClassificationRecord, assessment: HeuristicAssessment) -> FusedResult:
    return FusedResult(
        final_risk=fuse_risk(assessment.score, record.risk),
        final_breaking=record.breaking_change or assessment.breaking,
        size_label=size_label(stats.total_lines),
    )
