"""cache commands — inspect and prune the classification cache."""

from __future__ import annotations

from datetime import datetime, timezone

import click
from rich.console import Console
from rich.table import Table

console = Console()

_RISK_STYLE = {"low": "green", "medium": "yellow", "high": "red"}


@click.group("cache")
def cache_cmd():
    """Inspect and prune cached classifications."""


@cache_cmd.command("list")
@click.option("--limit", default=20, show_default=True, help="Maximum number of entries to show.")
@click.pass_context
def list_cmd(ctx, limit: int):
    """Show cached classifications, newest first."""
    cache = ctx.obj["cache"]
    entries = list(reversed(cache.entries()))[:limit]
    if not entries:
        console.print("[yellow]The cache is empty.[/yellow]")
        return

    table = Table(title="Cached classifications", show_header=True, header_style="bold cyan")
    table.add_column("Digest", width=14, no_wrap=True)
    table.add_column("Risk", width=8)
    table.add_column("Breaking", width=9)
    table.add_column("Summary", max_width=60)
    table.add_column("Stored At", width=20)

    for entry in entries:
        record = cache.lookup(entry.digest)
        if record is None:
            continue
        style = _RISK_STYLE.get(record.risk, "white")
        stored = datetime.fromtimestamp(entry.stored_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(
            entry.digest[:12],
            f"[{style}]{record.risk}[/{style}]",
            "yes" if record.breaking_change else "no",
            record.summary[:60],
            stored,
        )

    console.print(table)


@cache_cmd.command("show")
@click.argument("digest")
@click.pass_context
def show_cmd(ctx, digest: str):
    """Print the cached summary text for DIGEST (full digest or unique prefix)."""
    cache = ctx.obj["cache"]
    matches = [e.digest for e in cache.entries() if e.digest.startswith(digest)]
    if not matches:
        raise click.ClickException(f"No cache entry matches {digest!r}.")
    if len(matches) > 1:
        raise click.ClickException(f"{digest!r} is ambiguous ({len(matches)} entries match).")
    click.echo(cache.read_summary(matches[0]))


@cache_cmd.command("prune")
@click.option("--max-age-days", type=float, default=None, help="Remove entries older than this.")
@click.option("--max-entries", type=int, default=None, help="Keep only this many newest entries.")
@click.pass_context
def prune_cmd(ctx, max_age_days: float | None, max_entries: int | None):
    """Remove old entries. Without options, applies the limits from .prbrief.yml."""
    from prbrief_cache.eviction import build_policy

    config = ctx.obj["config"]
    if max_age_days is None and max_entries is None:
        max_age_days = config.get("cache_max_age_days")
        max_entries = config.get("cache_max_entries")
    if max_age_days is None and max_entries is None:
        raise click.UsageError("No limit given. Pass --max-age-days / --max-entries or set them in .prbrief.yml.")

    try:
        policy = build_policy(max_age_days, max_entries)
    except ValueError as e:
        raise click.UsageError(str(e))

    removed = ctx.obj["cache"].evict(policy)
    console.print(f"[green]Removed {len(removed)} cache entr{'y' if len(removed) == 1 else 'ies'}.[/green]")
