"""Parse GitHub ``issues`` event payloads."""

import json
from pathlib import Path
from typing import Any

import structlog

from federated_issues.errors import FederationError
from federated_issues.models import IssueEvent, ParentIssue

logger = structlog.get_logger()


def _label_names(labels: list[Any] | None) -> list[str]:
    """Labels arrive as objects with a name, or as bare strings."""
    names = []
    for label in labels or []:
        if isinstance(label, dict):
            name = label.get("name")
            if name:
                names.append(name)
        elif isinstance(label, str):
            names.append(label)
    return names


def parse_issue(data: dict[str, Any] | None) -> ParentIssue | None:
    """Convert the ``issue`` object of a payload into a ParentIssue."""
    if not data or not data.get("number"):
        return None
    user = data.get("user") or {}
    return ParentIssue(
        number=int(data["number"]),
        title=data.get("title") or "",
        body=data.get("body") or "",
        labels=_label_names(data.get("labels")),
        author=user.get("login", ""),
        state=data.get("state", "open"),
        node_id=data.get("node_id"),
    )


def parse_event(payload: dict[str, Any], repository: str | None = None) -> IssueEvent:
    """Convert a webhook payload into an IssueEvent.

    Args:
        payload: Decoded event payload
        repository: ``owner/name`` of the repository, used when the payload
            carries no ``repository`` object (``GITHUB_REPOSITORY`` in Actions)

    Raises:
        FederationError: The repository cannot be determined.
    """
    repo_data = payload.get("repository") or {}
    owner = (repo_data.get("owner") or {}).get("login")
    name = repo_data.get("name")
    if (not owner or not name) and repository and "/" in repository:
        owner, name = repository.split("/", 1)
    if not owner or not name:
        raise FederationError("Event payload does not identify a repository")

    event = IssueEvent(
        action=payload.get("action", ""),
        owner=owner,
        repo=name,
        issue=parse_issue(payload.get("issue")),
    )
    logger.debug("Parsed event", action=event.action, owner=owner, repo=name, has_issue=event.issue is not None)
    return event


def load_event(path: str | Path, repository: str | None = None) -> IssueEvent:
    """Load an event payload from a JSON file, e.g. ``GITHUB_EVENT_PATH``."""
    event_file = Path(path)
    try:
        with open(event_file, "r") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read event payload", path=str(event_file), error=str(e))
        raise FederationError(f"Failed to read event payload from {event_file}: {e}") from e
    return parse_event(payload, repository)
