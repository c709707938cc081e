"""Best-effort publishing of the summary comment and labels.

Both writes are idempotent (comment edit by id; labels are a set), so a
bounded retry is safe. A write that still fails is logged and reported in
the outcome but never raised. The workflow run should not go red because
GitHub hiccuped on a label call.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from github import GithubException

from prbrief_core.fusion import BREAKING_LABEL, RISK_PREFIX, SIZE_PREFIX
from prbrief_core.gh.pull_request import MARKER, apply_labels, upsert_comment

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STALE_PREFIXES = (SIZE_PREFIX, RISK_PREFIX, BREAKING_LABEL)


@dataclass
class PublishOutcome:
    comment_action: str | None = None  # "created" | "updated" | "failed"
    labels_applied: bool = False
    labels_removed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _with_retry(action: Callable[[], T], what: str, attempts: int) -> T:
    """Run action, retrying GithubException with exponential backoff (1s, 2s, 4s, ...).

    The final attempt runs outside the loop, so its exception reaches the caller.
    """
    for attempt in range(attempts - 1):
        try:
            return action()
        except GithubException as e:
            delay = 2**attempt
            logger.warning(
                "%s failed (attempt %d/%d): %s. Retrying in %ds...",
                what,
                attempt + 1,
                attempts,
                e,
                delay,
            )
            time.sleep(delay)
    return action()


def publish(issue, body: str, labels: list[str], config: dict) -> PublishOutcome:
    """Upsert the marked comment, then apply labels. Order is fixed: comment first."""
    attempts = config.get("publish_attempts", 3)
    bot_login = config.get("bot_login") or None
    stale = _STALE_PREFIXES if config.get("prune_stale_labels") else ()
    outcome = PublishOutcome()

    try:
        outcome.comment_action = _with_retry(
            lambda: upsert_comment(issue, body, MARKER, bot_login), "Posting summary comment", attempts
        )
    except GithubException as e:
        logger.warning("Could not post summary comment: %s", e)
        outcome.comment_action = "failed"
        outcome.errors.append(f"comment: {e}")

    try:
        outcome.labels_removed = _with_retry(lambda: apply_labels(issue, labels, stale), "Applying labels", attempts)
        outcome.labels_applied = True
    except GithubException as e:
        logger.warning("Could not apply labels %s: %s", ", ".join(labels), e)
        outcome.errors.append(f"labels: {e}")

    return outcome
