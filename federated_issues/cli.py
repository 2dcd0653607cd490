"""CLI for federated issues."""

import os
import sys
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter
from github.GithubException import GithubException

from federated_issues.backends import GitHubBackend
from federated_issues.config import get_config
from federated_issues.config_commands import config_app
from federated_issues.errors import FederationError
from federated_issues.events import load_event
from federated_issues.models import FederationResult
from federated_issues.orchestrator import Federator
from federated_issues.policy import load_policy
from federated_issues.settings import Settings, resolve_token

logger = structlog.get_logger()

app = App(
    name="federated-issues",
    help="Federated Issues - propagate a parent issue into child issues across repositories",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_backend(token: str | None = None) -> GitHubBackend:
    """Get a GitHub backend for the configured token and API URL."""
    config = get_config()
    base_url = config.get("github.base-url") or os.environ.get("GITHUB_API_URL")
    return GitHubBackend(token=resolve_token(token, config), base_url=base_url)


def fail(error: Exception) -> None:
    """Report a fatal error and exit with a non-zero status."""
    logger.error("Action failed", error=str(error))
    print(f"Action failed: {error}", file=sys.stderr)
    sys.exit(1)


def print_result(result: FederationResult) -> None:
    """Print a summary of a federation run."""
    print(f"Action {result.action or 'unknown'}: {result.status.value}")
    if result.targets:
        print(f"Targets: {', '.join(sorted(repository.name for repository in result.targets))}")
    for outcome in result.outcomes:
        marker = "●" if outcome.success else "○"
        number = f"#{outcome.issue_number}" if outcome.issue_number else ""
        orphaned = " (orphaned)" if outcome.orphaned else ""
        error = f": {outcome.error}" if outcome.error else ""
        print(f"{marker} {outcome.operation.value} {outcome.repository}{number}{orphaned}{error}")


@app.command
def run(
    event_path: str | None = None,
    ref: str | None = None,
    token: str | None = None,
    required_label: str | None = None,
    config_path: str | None = None,
    notify_missing_permissions: bool | None = None,
    close_issues_on_parent_close: bool | None = None,
    child_issue_title_template: str | None = None,
    child_issue_body_template: str | None = None,
    restrict_to_selected_repositories: bool | None = None,
) -> None:
    """Federate a single issue event.

    Args:
        event_path: Path to the event payload (defaults to $GITHUB_EVENT_PATH)
        ref: Git ref to read the configuration file from (defaults to $GITHUB_REF)
        token: GitHub token (defaults to the action input, $GITHUB_TOKEN or config)
        required_label: Label that must be present on the issue
        config_path: Path of the configuration file in the parent repository
        notify_missing_permissions: Comment on the issue when the author lacks permission
        close_issues_on_parent_close: Close child issues when the parent is closed
        child_issue_title_template: Title template for child issues
        child_issue_body_template: Body template for child issues
        restrict_to_selected_repositories: Only sync children in currently selected repositories
    """
    try:
        config = get_config()
        settings = Settings.load(
            config,
            required_label=required_label,
            config_path=config_path,
            notify_missing_permissions=notify_missing_permissions,
            close_issues_on_parent_close=close_issues_on_parent_close,
            child_issue_title_template=child_issue_title_template,
            child_issue_body_template=child_issue_body_template,
            restrict_to_selected_repositories=restrict_to_selected_repositories,
        )
        event_file = event_path or os.environ.get("GITHUB_EVENT_PATH")
        if not event_file:
            raise FederationError("No event payload. Pass --event-path or set GITHUB_EVENT_PATH")
        event = load_event(event_file, os.environ.get("GITHUB_REPOSITORY"))
        federator = Federator(get_backend(token), settings, ref=ref or os.environ.get("GITHUB_REF"))
        result = federator.run(event)
    except (FederationError, GithubException, ValueError) as e:
        fail(e)
        return

    print_result(result)


@app.command
def targets(
    owner: str,
    repo: str,
    ref: str | None = None,
    config_path: str | None = None,
    token: str | None = None,
) -> None:
    """Preview the repositories that would receive child issues."""
    try:
        settings = Settings.load(get_config(), config_path=config_path)
        federator = Federator(get_backend(token), settings, ref=ref)
        policy = load_policy(federator.backend, owner, repo, settings.config_path, ref)
        repositories = federator.resolve_targets(policy, owner)
    except (FederationError, GithubException, ValueError) as e:
        fail(e)
        return

    if not repositories:
        print("No target repositories found")
        return

    print(f"Found {len(repositories)} target repository(ies):\n")
    for repository in sorted(repositories, key=lambda r: r.name):
        print(f"  {repository.full_name}")


@app.command(name="check-permission")
def check_permission(
    owner: str,
    repo: str,
    user: str,
    ref: str | None = None,
    config_path: str | None = None,
    token: str | None = None,
) -> None:
    """Check whether a user may create parent issues."""
    try:
        settings = Settings.load(get_config(), config_path=config_path)
        federator = Federator(get_backend(token), settings, ref=ref)
        policy = load_policy(federator.backend, owner, repo, settings.config_path, ref)
        allowed = federator.is_authorized(policy, user, owner)
    except (FederationError, GithubException, ValueError) as e:
        fail(e)
        return

    if allowed:
        print(f"{user} may create parent issues in {owner}/{repo}")
    else:
        print(f"{user} does not have permission to create parent issues in {owner}/{repo}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
