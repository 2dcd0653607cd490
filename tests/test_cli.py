"""Tests for the CLI commands."""

import json
from pathlib import Path
from typing import Any

import pytest
from github.GithubException import GithubException

from federated_issues import cli
from federated_issues.config import Config


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the CLI away from the real config and GitHub Actions environment."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
    monkeypatch.setattr(cli, "get_config", lambda use_global=False: Config(config_dir=tmp_path / "local"))
    for name in ("GITHUB_EVENT_PATH", "GITHUB_REF", "GITHUB_REPOSITORY", "GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def backend(make_backend, default_policy: dict[str, Any], monkeypatch: pytest.MonkeyPatch):
    """Fake backend returned by the CLI."""
    backend = make_backend(repositories=["repo-1", "repo-2"], policy=default_policy)
    monkeypatch.setattr(cli, "get_backend", lambda token=None: backend)
    return backend


@pytest.fixture
def event_path(tmp_path: Path) -> Path:
    """Labeled event payload on disk."""
    path = tmp_path / "event.json"
    path.write_text(
        json.dumps(
            {
                "action": "labeled",
                "issue": {
                    "number": 123,
                    "title": "Test Issue",
                    "body": "Test body content",
                    "user": {"login": "testuser"},
                    "labels": [{"name": "federated"}],
                    "state": "open",
                    "node_id": "parent-node-id",
                },
                "repository": {"name": "test-repo", "owner": {"login": "test-owner"}},
            }
        )
    )
    return path


def test_run_federates_event(backend, event_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test running a labeled event end to end."""
    cli.run(event_path=str(event_path), ref="main")

    out = capsys.readouterr().out
    assert "Action labeled: completed" in out
    assert "● create repo-1#" in out
    assert "● create repo-2#" in out
    assert len(backend.links) == 2
    assert backend.read_calls[0][3] == "main"


def test_run_reports_orphans(backend, event_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that orphaned children are visible in the output."""
    backend.fail_link.add("repo-2")

    cli.run(event_path=str(event_path))

    assert "(orphaned)" in capsys.readouterr().out


def test_run_without_event_fails(backend, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that a missing event payload exits with an error."""
    with pytest.raises(SystemExit) as exc_info:
        cli.run()

    assert exc_info.value.code == 1
    assert "Action failed: No event payload" in capsys.readouterr().err


def test_run_with_missing_config_fails(
    make_backend, event_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that a missing configuration file exits with an error."""
    backend = make_backend(repositories=["repo-1"])
    monkeypatch.setattr(cli, "get_backend", lambda token=None: backend)

    with pytest.raises(SystemExit):
        cli.run(event_path=str(event_path))

    assert "Failed to load configuration from" in capsys.readouterr().err


def test_targets(backend, capsys: pytest.CaptureFixture[str]) -> None:
    """Test previewing target repositories."""
    cli.targets("test-owner", "test-repo")

    out = capsys.readouterr().out
    assert "Found 2 target repository(ies)" in out
    assert "test-owner/repo-1" in out
    assert backend.created == []


def test_check_permission(backend, capsys: pytest.CaptureFixture[str]) -> None:
    """Test checking a user's permission under an open policy."""
    cli.check_permission("test-owner", "test-repo", "anyone")

    assert "anyone may create parent issues in test-owner/test-repo" in capsys.readouterr().out


def test_get_backend_requires_token(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that commands fail cleanly without a token."""
    for name in ("INPUT_GITHUB-TOKEN", "INPUT_GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(SystemExit):
        cli.targets("test-owner", "test-repo")

    assert "GitHub token required" in capsys.readouterr().err


def test_run_reports_api_errors(
    backend, event_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that a GitHub API error ends the run with a single failure message."""

    def list_repositories(owner: str):
        raise GithubException(401, {"message": "Bad credentials"}, None)

    monkeypatch.setattr(backend, "list_repositories", list_repositories)

    with pytest.raises(SystemExit) as exc_info:
        cli.run(event_path=str(event_path))

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert err.startswith("Action failed: ")
    assert "Bad credentials" in err
    assert backend.created == []


def test_targets_reports_api_errors(
    backend, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that previewing targets fails cleanly on an API error."""

    def list_repositories(owner: str):
        raise GithubException(403, {"message": "Resource not accessible by integration"}, None)

    monkeypatch.setattr(backend, "list_repositories", list_repositories)

    with pytest.raises(SystemExit):
        cli.targets("test-owner", "test-repo")

    assert "Action failed: " in capsys.readouterr().err


def test_run_reports_invalid_config_file(
    backend, event_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that a malformed YAML config file ends the run with a failure message."""
    config_dir = tmp_path / "local"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("- not\n- a mapping\n")

    with pytest.raises(SystemExit):
        cli.run(event_path=str(event_path))

    assert "Action failed: " in capsys.readouterr().err
