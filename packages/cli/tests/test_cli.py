"""Tests for the CLI entry point."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from prbrief_cache.eviction import CompositePolicy, MaxAgePolicy, MaxEntriesPolicy, NeverEvict
from prbrief_cache.files import FileCache
from prbrief_cache.models import ClassificationRecord
from prbrief_cache.noop import NoOpCache
from prbrief_cli.cli import _build_cache, main


def _make_config(model="pollinations", openai_key=None, anthropic_key=None, **overrides):
    config = {
        "model": model,
        "referrer": "prisimai.github.io",
        "max_diff_bytes": 32768,
        "max_attempts": 4,
        "retry_delay": 20,
        "request_timeout": 120,
        "cache_dir": ".github/pr-summary-cache",
        "cache_max_age_days": None,
        "cache_max_entries": None,
        "cache_lock": False,
        "bot_login": "github-actions[bot]",
        "publish_attempts": 3,
        "prune_stale_labels": False,
        "base_ref": None,
        "github_token": None,
        "openai_api_key": openai_key,
        "anthropic_api_key": anthropic_key,
    }
    config.update(overrides)
    return config


def _patch_common(mocker, config=None, token="tok", cache=None):
    """Patch load_config, resolve_github_token, and _build_cache for most tests."""
    cfg = config or _make_config()
    mocker.patch("prbrief_core.config.load_config", return_value=cfg)
    mocker.patch("prbrief_cli.auth.resolve_github_token", return_value=token)
    if cache is None:
        cache = MagicMock(spec=FileCache)
    mocker.patch("prbrief_cli.cli._build_cache", return_value=cache)
    return cfg, cache


def _write_event(tmp_path, number=7, base="main"):
    path = tmp_path / "event.json"
    path.write_text(json.dumps({"pull_request": {"number": number, "base": {"ref": base}}}))
    return str(path)


def _fake_result():
    result = MagicMock()
    result.pr_number = 7
    result.diff_hash = "ab" * 32
    result.head_sha = None
    result.cache_hit = False
    result.fused.final_risk = "medium"
    result.fused.size_label = "Small"
    result.fused.final_breaking = False
    return result


class TestSummarizeValidation:
    def test_missing_event_file(self, mocker, tmp_path):
        _patch_common(mocker)

        result = CliRunner().invoke(
            main, ["summarize", "--event-path", str(tmp_path / "nope.json"), "--repo", "o/r"]
        )
        assert result.exit_code != 0
        assert "Event file not found" in result.output

    def test_event_without_pr_number(self, mocker, tmp_path):
        _patch_common(mocker)
        path = tmp_path / "event.json"
        path.write_text(json.dumps({"push": {}}))

        result = CliRunner().invoke(main, ["summarize", "--event-path", str(path), "--repo", "o/r"])
        assert result.exit_code != 0
        assert "No PR number found" in result.output

    def test_missing_github_token(self, mocker, tmp_path):
        _patch_common(mocker, token=None)
        mock_run = mocker.patch("prbrief_cli.commands.summarize.run_summary")

        result = CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path), "--repo", "o/r"])
        assert result.exit_code != 0
        assert "GITHUB_TOKEN" in result.output
        mock_run.assert_not_called()

    def test_missing_repo(self, mocker, tmp_path, monkeypatch):
        monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path)])
        assert result.exit_code != 0
        assert "--repo" in result.output

    @pytest.mark.parametrize("model", ["openai", "anthropic"])
    def test_missing_provider_key_still_runs(self, mocker, tmp_path, model):
        _patch_common(mocker, config=_make_config(model=model))
        mock_run = mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=_fake_result())

        result = CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path), "--dry-run"])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()


class TestSummarizeRun:
    def test_calls_run_summary_with_event_and_repo(self, mocker, tmp_path):
        cfg, cache = _patch_common(mocker)
        mock_run = mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=_fake_result())

        result = CliRunner().invoke(
            main, ["summarize", "--event-path", _write_event(tmp_path, number=7), "--repo", "owner/repo"]
        )

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()
        event, config, used_cache = mock_run.call_args.args
        assert event.number == 7
        assert event.base_ref == "main"
        assert used_cache is cache
        assert config["github_token"] == "tok"
        assert mock_run.call_args.kwargs["repo"] == "owner/repo"
        assert mock_run.call_args.kwargs["dry_run"] is False
        assert "PR #7" in result.output

    def test_dry_run_needs_no_token_or_repo(self, mocker, tmp_path, monkeypatch):
        monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
        _patch_common(mocker, token=None)
        mock_run = mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=_fake_result())

        result = CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path), "-s"])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.kwargs["dry_run"] is True
        assert mock_run.call_args.kwargs["repo"] is None

    def test_no_cache_flag_uses_noop_cache(self, mocker, tmp_path):
        _patch_common(mocker)
        mock_run = mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=_fake_result())

        CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path), "--dry-run", "--no-cache"])

        assert isinstance(mock_run.call_args.args[2], NoOpCache)

    def test_model_and_base_overrides_passed_to_config(self, mocker, tmp_path):
        load = mocker.patch("prbrief_core.config.load_config", return_value=_make_config(openai_key="sk"))
        mocker.patch("prbrief_cli.cli._build_cache", return_value=MagicMock(spec=FileCache))
        mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=_fake_result())

        CliRunner().invoke(
            main,
            ["summarize", "--event-path", _write_event(tmp_path), "--dry-run", "--model", "openai", "--base", "dev"],
        )

        overrides = load.call_args_list[-1].kwargs["cli_overrides"]
        assert overrides == {"model": "openai", "base_ref": "dev"}

    def test_status_line_shows_head_sha(self, mocker, tmp_path):
        _patch_common(mocker)
        fake = _fake_result()
        fake.head_sha = "abcdef1234567890"
        mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=fake)

        result = CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path), "--dry-run"])

        assert "at abcdef1" in result.output

    def test_reports_cached_classification(self, mocker, tmp_path):
        _patch_common(mocker)
        fake = _fake_result()
        fake.cache_hit = True
        mocker.patch("prbrief_cli.commands.summarize.run_summary", return_value=fake)

        result = CliRunner().invoke(main, ["summarize", "--event-path", _write_event(tmp_path), "--dry-run"])

        assert "cached" in result.output


class TestConfigErrors:
    def test_invalid_config_file_is_reported(self, tmp_path):
        config_file = tmp_path / ".prbrief.yml"
        config_file.write_text("max_attempts: 0\n")

        result = CliRunner().invoke(main, ["--config", str(config_file), "cache", "list"])

        assert result.exit_code != 0
        assert "max_attempts" in result.output


class TestCacheCommands:
    def _cache_with_entries(self, tmp_path):
        cache = FileCache(str(tmp_path / "cache"))
        cache.store("a" * 64, ClassificationRecord("Adds login flow.", False, "low"))
        cache.store("b" * 64, ClassificationRecord("Drops users table.", True, "high"))
        return cache

    def test_list_shows_entries(self, mocker, tmp_path):
        _patch_common(mocker, cache=self._cache_with_entries(tmp_path))

        result = CliRunner().invoke(main, ["cache", "list"])

        assert result.exit_code == 0, result.output
        assert "aaaaaaaaaaaa" in result.output
        assert "bbbbbbbbbbbb" in result.output

    def test_list_empty_cache(self, mocker, tmp_path):
        _patch_common(mocker, cache=FileCache(str(tmp_path / "cache")))

        result = CliRunner().invoke(main, ["cache", "list"])

        assert result.exit_code == 0
        assert "empty" in result.output

    def test_show_by_prefix(self, mocker, tmp_path):
        _patch_common(mocker, cache=self._cache_with_entries(tmp_path))

        result = CliRunner().invoke(main, ["cache", "show", "bbbb"])

        assert result.exit_code == 0, result.output
        assert "Drops users table." in result.output

    def test_show_unknown_digest(self, mocker, tmp_path):
        _patch_common(mocker, cache=self._cache_with_entries(tmp_path))

        result = CliRunner().invoke(main, ["cache", "show", "cccc"])

        assert result.exit_code != 0
        assert "No cache entry" in result.output

    def test_show_ambiguous_prefix(self, mocker, tmp_path):
        cache = FileCache(str(tmp_path / "cache"))
        cache.store("ab" + "0" * 62, ClassificationRecord("one", False, "low"))
        cache.store("ab" + "1" * 62, ClassificationRecord("two", False, "low"))
        _patch_common(mocker, cache=cache)

        result = CliRunner().invoke(main, ["cache", "show", "ab"])

        assert result.exit_code != 0
        assert "ambiguous" in result.output

    def test_prune_with_max_entries(self, mocker, tmp_path):
        cache = self._cache_with_entries(tmp_path)
        _patch_common(mocker, cache=cache)

        result = CliRunner().invoke(main, ["cache", "prune", "--max-entries", "0"])

        assert result.exit_code == 0, result.output
        assert cache.entries() == []
        assert "Removed 2" in result.output

    def test_prune_falls_back_to_config_limits(self, mocker):
        cache = MagicMock(spec=FileCache)
        cache.evict.return_value = ["x"]
        _patch_common(mocker, config=_make_config(cache_max_entries=5), cache=cache)

        result = CliRunner().invoke(main, ["cache", "prune"])

        assert result.exit_code == 0, result.output
        assert isinstance(cache.evict.call_args.args[0], MaxEntriesPolicy)

    def test_prune_without_limits_is_usage_error(self, mocker):
        cache = MagicMock(spec=FileCache)
        _patch_common(mocker, cache=cache)

        result = CliRunner().invoke(main, ["cache", "prune"])

        assert result.exit_code != 0
        cache.evict.assert_not_called()


class TestInit:
    def test_writes_config_and_workflow(self, mocker):
        _patch_common(mocker)
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["init"], input="pollinations\nexample.org\ny\n")

            assert result.exit_code == 0, result.output
            with open(".prbrief.yml") as f:
                config = yaml.safe_load(f)
            assert config == {"model": "pollinations", "referrer": "example.org"}
            with open(".github/workflows/prbrief.yml") as f:
                workflow = f.read()

        assert "actions/cache@v4" in workflow
        assert "path: .github/pr-summary-cache" in workflow
        assert "fetch-depth: 0" in workflow
        assert "${{ secrets.GITHUB_TOKEN }}" in workflow
        assert "prbrief summarize" in workflow

    def test_anthropic_provider_adds_secret_env(self, mocker):
        _patch_common(mocker)
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["init"], input="anthropic\ny\n")
            with open(".github/workflows/prbrief.yml") as f:
                workflow = f.read()

        assert result.exit_code == 0, result.output
        assert "ANTHROPIC_API_KEY: ${{ secrets.ANTHROPIC_API_KEY }}" in workflow
        assert "prbrief[anthropic]" in workflow

    def test_preserves_existing_config_keys(self, mocker):
        _patch_common(mocker)
        runner = CliRunner()
        with runner.isolated_filesystem():
            with open(".prbrief.yml", "w") as f:
                f.write("cache_max_entries: 50\n")
            runner.invoke(main, ["init"], input="openai\nn\n")
            with open(".prbrief.yml") as f:
                config = yaml.safe_load(f)

        assert config == {"cache_max_entries": 50, "model": "openai"}

    def test_existing_workflow_not_overwritten_without_force(self, mocker):
        _patch_common(mocker)
        runner = CliRunner()
        with runner.isolated_filesystem():
            import os

            os.makedirs(".github/workflows")
            with open(".github/workflows/prbrief.yml", "w") as f:
                f.write("original")
            result = runner.invoke(main, ["init"], input="pollinations\n\ny\n")
            with open(".github/workflows/prbrief.yml") as f:
                content = f.read()

        assert content == "original"
        assert "--force" in result.output


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from prbrief_cli.auth import resolve_github_token

        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from prbrief_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            assert resolve_github_token() == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from prbrief_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from prbrief_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_returns_error(self, monkeypatch):
        from prbrief_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="")
            assert resolve_github_token() is None


class TestBuildCache:
    def test_never_evicts_by_default(self):
        cache = _build_cache(_make_config())
        assert isinstance(cache, FileCache)
        assert isinstance(cache.policy, NeverEvict)

    def test_max_age_policy(self):
        cache = _build_cache(_make_config(cache_max_age_days=7))
        assert isinstance(cache.policy, MaxAgePolicy)

    def test_composite_policy_when_both_limits_set(self):
        cache = _build_cache(_make_config(cache_max_age_days=7, cache_max_entries=100))
        assert isinstance(cache.policy, CompositePolicy)

    def test_lock_timeout_covers_requests_and_delays(self):
        cache = _build_cache(_make_config(max_attempts=4, retry_delay=20, request_timeout=120, cache_lock=True))
        assert cache.use_lock is True
        # 4 x 120 s requests + 3 x 20 s delays = 540 s, doubled
        assert cache.lock_timeout == 1080

    def test_lock_timeout_floor(self):
        cache = _build_cache(_make_config(max_attempts=1, retry_delay=0, request_timeout=10))
        assert cache.lock_timeout == 180
