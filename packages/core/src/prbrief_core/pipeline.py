"""Core PR summary orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from github import GithubException
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from prbrief_cache.base import BaseCache
from prbrief_cache.models import ClassificationRecord
from prbrief_core.diff import DiffSnapshot, DiffStats, collect_diff
from prbrief_core.event import PullRequestEvent
from prbrief_core.exceptions import ConfigError
from prbrief_core.fusion import FusedResult, fuse
from prbrief_core.gh.pull_request import MARKER, get_issue, get_repo
from prbrief_core.heuristics import HeuristicAssessment, assess, fallback_record
from prbrief_core.providers.anthropic import AnthropicSummarizer
from prbrief_core.providers.openai import OpenAISummarizer
from prbrief_core.providers.pollinations import PollinationsSummarizer
from prbrief_core.publisher import publish

console = Console()
logger = logging.getLogger(__name__)

COMMENT_HEADING = "🤖 PR Summary by Pollinations.AI"


@dataclass
class SummaryResult:
    """Everything one run produced — what the CLI prints and what tests assert on."""

    pr_number: int
    diff_hash: str
    stats: DiffStats
    record: ClassificationRecord
    fused: FusedResult
    cache_hit: bool
    comment_body: str
    head_sha: str | None = None
    labels: list[str] = field(default_factory=list)
    comment_action: str | None = None  # "created" | "updated" | "failed"; None in dry-run
    labels_applied: bool = False


def _get_summarizer(config: dict):
    retry = {"max_attempts": config["max_attempts"], "retry_delay": config["retry_delay"]}
    model = config["model"]
    if model == "pollinations":
        return PollinationsSummarizer(referrer=config["referrer"], timeout=config["request_timeout"], **retry)
    if model in ("openai", "anthropic") and not config.get(f"{model}_api_key"):
        raise ConfigError(f"{model.upper()}_API_KEY environment variable is not set.")
    if model == "openai":
        return OpenAISummarizer(api_key=config["openai_api_key"], timeout=config["request_timeout"], **retry)
    if model == "anthropic":
        return AnthropicSummarizer(
            api_key=config["anthropic_api_key"], timeout=config["request_timeout"], **retry
        )
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'pollinations', 'openai' or 'anthropic'.")


def classify(
    snapshot: DiffSnapshot,
    assessment: HeuristicAssessment,
    cache: BaseCache,
    config: dict,
    summarizer=None,
) -> tuple[ClassificationRecord, bool]:
    """Return the record for snapshot and whether it came from the cache.

    On a miss the summarizer is built (lazily: a cache hit never needs
    provider credentials), and whatever record results is stored, including
    the heuristic fallback. A failed run therefore sticks until the diff
    changes; retrying a dead endpoint on every push is worse. A provider that
    cannot be built at all (missing key or SDK) also yields the fallback, but
    that one is not cached.
    """
    digest = snapshot.digest
    with cache.lock(digest):
        cached = cache.lookup(digest)
        if cached is not None:
            logger.debug("Cache hit for %s", digest[:12])
            return cached, True

        if summarizer is None:
            try:
                summarizer = _get_summarizer(config)
            except (ConfigError, ImportError) as e:
                # Not stored: once the provider is configured the same diff
                # should get a real classification.
                logger.warning("No summary provider available: %s", e)
                console.print(f"[yellow]{e} Using heuristic summary.[/yellow]")
                return fallback_record(snapshot.stats, assessment), False

        record = summarizer.summarize(snapshot.payload(config["max_diff_bytes"]))
        if record is None:
            console.print("[yellow]Summary service unavailable; using heuristic summary.[/yellow]")
            record = fallback_record(snapshot.stats, assessment)

        cache.store(digest, record)
        return record, False


def build_comment(record: ClassificationRecord, fused: FusedResult, stats: DiffStats, referrer: str) -> str:
    """Render the Markdown body of the single summary comment.

    The marker on the last line is how later runs find this comment again.
    """
    lines = [
        COMMENT_HEADING,
        f"*(referrer: {referrer})*",
        "",
        "### Summary",
        record.summary,
        "",
        f"**Risk Level:** {fused.final_risk}  ",
        f"**Breaking Change:** {'true' if fused.final_breaking else 'false'}  ",
        f"**Size:** {fused.size_label}",
        "",
        "### Diff Stats",
        f"- Files changed: {stats.files_changed}",
        f"- Lines added: {stats.lines_added}",
        f"- Lines removed: {stats.lines_removed}",
        f"- Total lines changed: {stats.total_lines}",
        "",
        "---",
        "_This comment updates automatically._",
        MARKER,
    ]
    return "\n".join(lines)


def print_dry_run(result: SummaryResult) -> None:
    """Print the would-be comment and labels without posting to GitHub."""
    source = "cache" if result.cache_hit else "fresh"
    console.print(Panel(Markdown(result.comment_body), title=f"PR #{result.pr_number} ({source})"))
    console.print(f"[bold]Labels:[/bold] {', '.join(result.labels)}")


def run_summary(
    event: PullRequestEvent,
    config: dict,
    cache: BaseCache,
    repo: str | None = None,
    repo_obj=None,
    dry_run: bool = False,
    summarizer=None,
    root: str = ".",
) -> SummaryResult:
    """Run the full summary pipeline for one pull-request event.

    Everything is computed before the first network write; in dry-run mode
    nothing is written at all (the cache still is, so a later real run
    reuses the classification).
    """
    base_ref = config.get("base_ref") or event.base_ref
    snapshot = collect_diff(base_ref, root=root)
    stats = snapshot.stats
    head = f" @ {event.head_sha[:7]}" if event.head_sha else ""
    console.print(
        f"[cyan]Diff vs {base_ref}{head}: {stats.files_changed} file(s), "
        f"+{stats.lines_added} / -{stats.lines_removed}[/cyan]"
    )

    # Heuristics run on every path, cache hit or not: they feed fusion.
    assessment = assess(stats, snapshot.text, snapshot.paths)
    record, cache_hit = classify(snapshot, assessment, cache, config, summarizer)
    fused = fuse(stats, record, assessment)
    body = build_comment(record, fused, stats, config["referrer"])

    result = SummaryResult(
        pr_number=event.number,
        diff_hash=snapshot.digest,
        stats=stats,
        record=record,
        fused=fused,
        cache_hit=cache_hit,
        comment_body=body,
        head_sha=event.head_sha,
        labels=fused.labels,
    )

    if dry_run:
        print_dry_run(result)
        return result

    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])
    try:
        issue = get_issue(this_repo, event.number)
    except GithubException as e:
        logger.warning("Could not load PR #%d: %s", event.number, e)
        result.comment_action = "failed"
        return result

    outcome = publish(issue, body, result.labels, config)
    result.comment_action = outcome.comment_action
    result.labels_applied = outcome.labels_applied
    if outcome.errors:
        console.print(f"[yellow]Published with errors: {'; '.join(outcome.errors)}[/yellow]")
    else:
        console.print(f"[green]Summary comment {outcome.comment_action}; labels: {', '.join(result.labels)}.[/green]")
    return result
