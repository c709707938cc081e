"""CLI entry point for prbrief.

Commands:
  summarize — classify the current PR diff and publish the summary comment + labels
  cache     — inspect and prune the classification cache
  init      — write .prbrief.yml and a GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from prbrief_cli.commands.cache import cache_cmd
from prbrief_cli.commands.init import init_cmd
from prbrief_cli.commands.summarize import summarize_cmd


def _build_cache(config: dict):
    """Instantiate the classification cache from .prbrief.yml settings.

    Eviction policy:
      cache_max_age_days  → MaxAgePolicy
      cache_max_entries   → MaxEntriesPolicy
      (neither)           → NeverEvict (the directory grows without bound)

    This factory lives in cli.py so neither prbrief_core nor prbrief_cache
    know about the config format.
    """
    from prbrief_cache.eviction import build_policy
    from prbrief_cache.files import FileCache

    policy = build_policy(config.get("cache_max_age_days"), config.get("cache_max_entries"))
    # A lock holder may legitimately sit through every request timeout and
    # every retry delay; only treat the lock as abandoned well after that.
    attempts = config["max_attempts"]
    worst_case = attempts * config["request_timeout"] + (attempts - 1) * config["retry_delay"]
    lock_timeout = max(180, 2 * worst_case)
    return FileCache(
        config["cache_dir"],
        policy=policy,
        use_lock=bool(config.get("cache_lock")),
        lock_timeout=lock_timeout,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("prbrief"),
    prog_name="prbrief",
)
@click.option(
    "--config",
    "config_path",
    default=".prbrief.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRBRIEF_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI-generated pull request summaries with risk and size labels."""
    from prbrief_core.config import load_config
    from prbrief_core.exceptions import ConfigError

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))

    cache = _build_cache(config)
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = config
    ctx.obj["cache"] = cache
    ctx.call_on_close(cache.close)


main.add_command(summarize_cmd)
main.add_command(cache_cmd)
main.add_command(init_cmd)
