"""Local risk heuristics computed from diff stats and diff text alone.

Always runs, whether or not the summary provider answered: the score is
one of the two inputs to fusion, and when the provider fails the fallback
record is built entirely from it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from prbrief_cache.models import ClassificationRecord
from prbrief_core.diff import DiffStats

# Filename substrings of dependency manifests, lockfiles and build descriptors.
MANIFEST_PATTERNS = (
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "requirements",
    "pyproject.toml",
    "poetry.lock",
    "Pipfile",
    "setup.py",
    "setup.cfg",
    "go.mod",
    "go.sum",
    "Cargo.toml",
    "Cargo.lock",
    "pom.xml",
    "build.gradle",
    "settings.gradle",
    "Gemfile",
    "composer.json",
    "composer.lock",
    "CMakeLists.txt",
    "Makefile",
)

_BREAKING_RE = re.compile(
    r"breaking[ _-]change"
    r"|\bdrop\s+(?:table|column)\b"
    r"|\balter\s+table\b"
    r"|\brename\s+column\b"
    r"|\btruncate\s+table\b"
    r"|(?:^|/)migrations/",
    re.IGNORECASE | re.MULTILINE,
)

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(?P<old>\S+) b/(?P<new>\S+)$", re.MULTILINE)

FALLBACK_NOTE = "heuristic fallback: summary service returned no usable response"


@dataclass(frozen=True)
class HeuristicAssessment:
    score: int
    breaking: bool


def paths_from_diff(diff_text: str) -> list[str]:
    """Return the new-side path of every `diff --git` header in diff_text."""
    return [m.group("new") for m in _DIFF_HEADER_RE.finditer(diff_text)]


def touches_manifest(paths: Iterable[str]) -> bool:
    return any(pattern in path for path in paths for pattern in MANIFEST_PATTERNS)


def score_diff(stats: DiffStats, paths: Iterable[str] = ()) -> int:
    score = 0
    if touches_manifest(paths):
        score += 2
    if stats.total_lines > 500:
        score += 2
    elif stats.total_lines > 200:
        score += 1
    if stats.files_changed > 10:
        score += 1
    if stats.lines_removed > stats.lines_added and stats.lines_removed > 100:
        score += 1
    return score


def detect_breaking(diff_text: str) -> bool:
    return _BREAKING_RE.search(diff_text) is not None


def assess(stats: DiffStats, diff_text: str, paths: Iterable[str] = ()) -> HeuristicAssessment:
    """Score a diff. Paths from the collector are merged with those in the diff headers."""
    all_paths = set(paths) | set(paths_from_diff(diff_text))
    return HeuristicAssessment(score=score_diff(stats, all_paths), breaking=detect_breaking(diff_text))


def heuristic_risk(score: int) -> str:
    """Risk tier from the heuristic score alone (used when there is no AI verdict)."""
    if score <= 0:
        return "low"
    if score >= 3:
        return "high"
    return "medium"


def fallback_summary(stats: DiffStats) -> str:
    return (
        f"PR changes: {stats.total_lines} lines ({stats.lines_added} added, "
        f"{stats.lines_removed} removed) across {stats.files_changed} files."
    )


def fallback_record(stats: DiffStats, assessment: HeuristicAssessment) -> ClassificationRecord:
    return ClassificationRecord(
        summary=fallback_summary(stats),
        breaking_change=assessment.breaking,
        risk=heuristic_risk(assessment.score),
        notes=FALLBACK_NOTE,
    )
