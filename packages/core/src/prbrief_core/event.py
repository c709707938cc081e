"""Pull-request context read from the workflow's event payload."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from prbrief_core.exceptions import EventError

DEFAULT_EVENT_PATH = ".github/event.json"


@dataclass(frozen=True)
class PullRequestEvent:
    number: int
    base_ref: str = "main"
    head_sha: str | None = None


def load_event(path: str | Path = DEFAULT_EVENT_PATH) -> PullRequestEvent:
    """Parse the GitHub event file at path.

    Raises EventError when the file is missing, is not JSON, or carries no
    pull-request number. There is nothing sensible to summarise without one,
    so callers should abort rather than retry.
    """
    p = Path(path)
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise EventError(f"Event file not found: {p}")
    except json.JSONDecodeError as e:
        raise EventError(f"Event file {p} is not valid JSON: {e}")

    pr = payload.get("pull_request") if isinstance(payload, dict) else None
    if not isinstance(pr, dict):
        raise EventError("No PR number found")

    number = pr.get("number")
    if isinstance(number, bool) or not isinstance(number, int):
        raise EventError("No PR number found")

    base_ref = (pr.get("base") or {}).get("ref") or "main"
    head_sha = (pr.get("head") or {}).get("sha")
    return PullRequestEvent(number=number, base_ref=base_ref, head_sha=head_sha)
