"""summarize command — classify the PR diff and publish the summary comment."""

from __future__ import annotations

import click
from rich.console import Console

from prbrief_core.event import DEFAULT_EVENT_PATH, load_event
from prbrief_core.pipeline import run_summary

console = Console()


@click.command("summarize")
@click.option(
    "--event-path",
    default=DEFAULT_EVENT_PATH,
    show_default=True,
    envvar="GITHUB_EVENT_PATH",
    help="GitHub event payload describing the pull request.",
)
@click.option(
    "--repo",
    default=None,
    envvar="GITHUB_REPOSITORY",
    help="GitHub repository in owner/name format.",
)
@click.option("--base", "base_ref", default=None, help="Base branch to diff against. Overrides the event.")
@click.option(
    "--model",
    type=click.Choice(["pollinations", "openai", "anthropic"]),
    default=None,
    help="Summary provider. Overrides config file.",
)
@click.option("--no-cache", is_flag=True, help="Ignore the classification cache for this run.")
@click.option(
    "--dry-run",
    "-s",
    "dry_run",
    is_flag=True,
    help="Print the comment and labels without posting to GitHub.",
)
@click.pass_context
def summarize_cmd(
    ctx,
    event_path: str,
    repo: str | None,
    base_ref: str | None,
    model: str | None,
    no_cache: bool,
    dry_run: bool,
):
    """Summarise the current pull request and label it by size and risk.

    Diffs HEAD against the PR's base branch, asks the summary provider for a
    summary and risk verdict (or reuses the cached one for an identical
    diff), then creates or updates a single comment on the PR.

    \b
    Environment variables:
      GITHUB_EVENT_PATH      Event payload (set by GitHub Actions)
      GITHUB_REPOSITORY      owner/name (set by GitHub Actions)
      GITHUB_TOKEN           Token with pull-requests: write (or use gh CLI)
      POLLINATIONS_REFERRER  Referrer sent to Pollinations
      OPENAI_API_KEY         Used by --model openai (without it, cache misses
                             get the heuristic summary)
      ANTHROPIC_API_KEY      Used by --model anthropic (same fallback)
    """
    from prbrief_cache.noop import NoOpCache
    from prbrief_cli.auth import resolve_github_token
    from prbrief_core.config import load_config
    from prbrief_core.exceptions import PRBriefError

    try:
        event = load_event(event_path)
        config = load_config(ctx.obj["config_path"], cli_overrides={"model": model, "base_ref": base_ref})
    except PRBriefError as e:
        raise click.ClickException(str(e))

    if not dry_run:
        if not repo:
            raise click.UsageError("No repository given. Pass --repo owner/name or set GITHUB_REPOSITORY.")
        token = resolve_github_token()
        if not token:
            raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
        config["github_token"] = token

    cache = NoOpCache() if no_cache else ctx.obj["cache"]

    result = run_summary(event, config, cache, repo=repo, dry_run=dry_run)

    source = "cached" if result.cache_hit else "new"
    head = f" at {result.head_sha[:7]}" if result.head_sha else ""
    console.print(
        f"[bold]PR #{result.pr_number}[/bold]{head}: risk [bold]{result.fused.final_risk}[/bold], "
        f"size {result.fused.size_label}, breaking {str(result.fused.final_breaking).lower()} "
        f"({source} classification {result.diff_hash[:12]})"
    )
