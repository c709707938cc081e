import os
from pathlib import Path
from typing import Optional

import yaml

from prbrief_core.exceptions import ConfigError

DEFAULT_CONFIG: dict = {
    "model": "pollinations",
    "referrer": "prisimai.github.io",
    "max_diff_bytes": 32768,
    "max_attempts": 4,
    "retry_delay": 20,  # seconds; Pollinations' free tier wants requests spaced out
    "request_timeout": 120,
    "cache_dir": ".github/pr-summary-cache",
    "cache_max_age_days": None,  # None = never evict by age
    "cache_max_entries": None,  # None = no size bound
    "cache_lock": False,
    "bot_login": "github-actions[bot]",
    "publish_attempts": 3,
    "prune_stale_labels": False,
    "base_ref": None,  # None = use the base branch from the event payload
}

MODELS = ("pollinations", "openai", "anthropic")

# Environment variables the hosting workflow may set to override defaults.
_ENV_OVERRIDES = {
    "POLLINATIONS_REFERRER": "referrer",
    "MAX_DIFF_BYTES": "max_diff_bytes",
    "MAX_ATTEMPTS": "max_attempts",
    "WAIT_SECONDS": "retry_delay",
    "PRBRIEF_CACHE_DIR": "cache_dir",
}

_INT_KEYS = ("max_diff_bytes", "max_attempts", "request_timeout", "publish_attempts")
_FLOAT_KEYS = ("retry_delay",)
_OPTIONAL_NUMBER_KEYS = ("cache_max_age_days", "cache_max_entries")


def load_config(config_path: str = ".prbrief.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prbrief.yml in the current directory
      3. Environment variable overrides (POLLINATIONS_REFERRER, MAX_DIFF_BYTES, ...)
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    _validate(config)

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    return config


def _validate(config: dict) -> None:
    """Coerce numeric settings in place; env vars always arrive as strings."""
    for key in _INT_KEYS:
        config[key] = _non_negative(key, config[key], int)
    for key in _FLOAT_KEYS:
        config[key] = _non_negative(key, config[key], float)
    if config["max_attempts"] < 1:
        raise ConfigError("max_attempts must be at least 1")
    if config["publish_attempts"] < 1:
        raise ConfigError("publish_attempts must be at least 1")

    for key in _OPTIONAL_NUMBER_KEYS:
        if config.get(key) is not None:
            config[key] = _non_negative(key, config[key], float if key.endswith("_days") else int)

    if config["model"] not in MODELS:
        raise ConfigError(f"Unknown model provider: {config['model']!r}. Choose one of {', '.join(MODELS)}.")


def _non_negative(key: str, value, cast):
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    if cast is int and isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"{key} must be a whole number, got {value!r}")
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    if number < 0:
        raise ConfigError(f"{key} must be >= 0, got {number}")
    return number
