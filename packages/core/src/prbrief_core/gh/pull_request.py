from __future__ import annotations

from github import Github

MARKER = "<!-- prbrief-summary -->"


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_issue(repo, pr_number: int):
    # Comments and labels on a PR live on its issue, not on the pull object.
    return repo.get_issue(pr_number)


def find_marked_comment(issue, marker: str = MARKER, bot_login: str | None = None):
    """Return the first comment by bot_login whose body contains marker, or None.

    bot_login=None matches any author.
    """
    for comment in issue.get_comments():
        if bot_login is not None and getattr(comment.user, "login", None) != bot_login:
            continue
        if marker in (comment.body or ""):
            return comment
    return None


def upsert_comment(issue, body: str, marker: str = MARKER, bot_login: str | None = None) -> str:
    """Edit the marked comment in place, or create it. Returns "updated" or "created"."""
    existing = find_marked_comment(issue, marker, bot_login)
    if existing is not None:
        existing.edit(body)
        return "updated"
    issue.create_comment(body)
    return "created"


def apply_labels(issue, labels: list[str], stale_prefixes: tuple[str, ...] = ()) -> list[str]:
    """Add labels to the issue; returns the names of any labels removed first.

    With no stale_prefixes this is purely additive. Otherwise, existing labels
    starting with one of the prefixes that are not in the new set are removed
    before the new ones are added.
    """
    removed: list[str] = []
    if stale_prefixes:
        wanted = set(labels)
        for label in list(issue.get_labels()):
            if label.name not in wanted and label.name.startswith(stale_prefixes):
                issue.remove_from_labels(label.name)
                removed.append(label.name)
    issue.add_to_labels(*labels)
    return removed
