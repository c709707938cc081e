"""Diff collection — numeric stats plus the raw diff blob for HEAD vs. base.

Everything here has to survive unusual checkouts (shallow clones, a base
branch that was never fetched, git missing from PATH). Any git failure
yields zero stats and an empty blob rather than an exception: a summary
with zero counts is more useful than a failed workflow.
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 60
EMPTY_DIFF_PLACEHOLDER = "(empty diff)"


@dataclass(frozen=True)
class DiffStats:
    files_changed: int = 0
    lines_added: int = 0
    lines_removed: int = 0

    @property
    def total_lines(self) -> int:
        return self.lines_added + self.lines_removed


@dataclass(frozen=True)
class DiffSnapshot:
    """Stats and raw bytes of one diff, fixed for the rest of the run."""

    stats: DiffStats = field(default_factory=DiffStats)
    blob: bytes = b""
    paths: tuple[str, ...] = ()

    @property
    def digest(self) -> str:
        """SHA-256 of the *full* blob.

        Never of the truncated payload: two diffs that only differ past the
        byte budget must not share a cache entry.
        """
        return hashlib.sha256(self.blob).hexdigest()

    @property
    def text(self) -> str:
        return self.blob.decode("utf-8", errors="replace")

    def payload(self, max_bytes: int) -> str:
        """Return at most max_bytes of the diff for the outbound request."""
        # errors="ignore" drops a multi-byte character split by the cut.
        head = self.blob[:max_bytes].decode("utf-8", errors="ignore")
        return head if head.strip() else EMPTY_DIFF_PLACEHOLDER


def parse_numstat(text: str) -> tuple[DiffStats, tuple[str, ...]]:
    """Sum `git diff --numstat` output into DiffStats.

    Binary files show up as "-\\t-\\tpath": they count as a changed file
    with no lines.
    """
    added = removed = 0
    paths: list[str] = []
    for line in text.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        a, r, path = parts
        added += int(a) if a.isdigit() else 0
        removed += int(r) if r.isdigit() else 0
        paths.append(_rename_target(path))
    return DiffStats(files_changed=len(paths), lines_added=added, lines_removed=removed), tuple(paths)


def _rename_target(path: str) -> str:
    """Resolve numstat rename notation ("a => b", "dir/{a => b}/f") to the new path."""
    if " => " not in path:
        return path
    if "{" in path and "}" in path:
        prefix, rest = path.split("{", 1)
        inner, suffix = rest.split("}", 1)
        new = inner.split(" => ", 1)[1]
        return (prefix + new + suffix).replace("//", "/")
    return path.split(" => ", 1)[1]


def _git(args: list[str], root: Path) -> bytes | None:
    """Run git and return stdout, or None on any failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=root,
            capture_output=True,
            timeout=_GIT_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
        logger.warning("git %s failed: %s", args[0], e)
        return None
    if result.returncode != 0:
        logger.warning(
            "git %s exited with %d: %s",
            " ".join(args),
            result.returncode,
            result.stderr.decode("utf-8", errors="replace").strip(),
        )
        return None
    return result.stdout


def collect_diff(base_ref: str, root: str | Path = ".", remote: str = "origin") -> DiffSnapshot:
    """Fetch base_ref and diff it against HEAD (three-dot, i.e. since the merge base)."""
    root = Path(root)

    # The base may already be present locally; a failed fetch is not fatal.
    if _git(["fetch", remote, base_ref], root) is None:
        logger.warning("Could not fetch %s/%s; using whatever is available locally.", remote, base_ref)

    rev_range = f"{remote}/{base_ref}...HEAD"
    blob = _git(["diff", rev_range], root) or b""
    numstat = _git(["diff", "--numstat", rev_range], root)
    if numstat is None:
        return DiffSnapshot(blob=blob)

    stats, paths = parse_numstat(numstat.decode("utf-8", errors="replace"))
    return DiffSnapshot(stats=stats, blob=blob, paths=paths)
