"""init command — write .prbrief.yml and the GitHub Actions workflow.

The workflow restores and saves the cache directory with actions/cache, so
re-runs and pushes that leave the diff unchanged reuse the earlier
classification instead of calling the summary provider again.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()

_WORKFLOW_PATH = Path(".github/workflows/prbrief.yml")

_WORKFLOW_TEMPLATE = """\
name: PR Summary

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  summarize:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write
      issues: write

    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 0

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Restore summary cache
        uses: actions/cache@v4
        with:
          path: {cache_dir}
          key: prbrief-${{{{ github.event.pull_request.number }}}}-${{{{ github.sha }}}}
          restore-keys: |
            prbrief-${{{{ github.event.pull_request.number }}}}-
            prbrief-

      - name: Install prbrief
        run: pip install "prbrief{extra}=={version}"

      - name: Summarize PR
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}{secret_env}
        run: prbrief summarize
"""


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing workflow file.")
@click.pass_context
def init_cmd(ctx, force: bool):
    """Set up prbrief for this repository.

    Writes .prbrief.yml and, optionally, .github/workflows/prbrief.yml.
    """
    console.print("\n[bold cyan]prbrief init[/bold cyan]\n")

    provider = click.prompt(
        "Summary provider",
        type=click.Choice(["pollinations", "openai", "anthropic"]),
        default="pollinations",
    )
    config: dict = {"model": provider}
    api_key_env = None

    if provider == "pollinations":
        config["referrer"] = click.prompt("Pollinations referrer", default="prisimai.github.io")
    else:
        api_key_env = "OPENAI_API_KEY" if provider == "openai" else "ANTHROPIC_API_KEY"

    config_path = ctx.obj.get("config_path", ".prbrief.yml") if ctx.obj else ".prbrief.yml"
    _write_config(config, Path(config_path))
    console.print(f"[green]Wrote {config_path}[/green]")

    if click.confirm(f"\nGenerate {_WORKFLOW_PATH} for GitHub Actions?", default=True):
        if _WORKFLOW_PATH.exists() and not force:
            console.print(f"[yellow]{_WORKFLOW_PATH} already exists; use --force to overwrite.[/yellow]")
        else:
            cache_dir = (ctx.obj or {}).get("config", {}).get("cache_dir", ".github/pr-summary-cache")
            _write_workflow(provider, api_key_env, cache_dir)
            console.print(f"[green]Created {_WORKFLOW_PATH}[/green]")
            if api_key_env:
                console.print(
                    f"\n[yellow]Remember to add [bold]{api_key_env}[/bold] to your "
                    "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
                )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Try it locally with: [bold]prbrief summarize --dry-run --event-path <event.json>[/bold]")


def _write_config(config: dict, path: Path) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("prbrief")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow(provider: str, api_key_env: str | None, cache_dir: str) -> None:
    _WORKFLOW_PATH.parent.mkdir(parents=True, exist_ok=True)
    extra = f"[{provider}]" if provider != "pollinations" else ""
    secret_env = f"\n          {api_key_env}: ${{{{ secrets.{api_key_env} }}}}" if api_key_env else ""
    _WORKFLOW_PATH.write_text(
        _WORKFLOW_TEMPLATE.format(
            cache_dir=cache_dir,
            extra=extra,
            version=_get_version(),
            secret_env=secret_env,
        )
    )
