"""Shared fixtures: an in-memory backend for exercising the federation engine."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from federated_issues.backend import Backend
from federated_issues.errors import ConfigurationError
from federated_issues.models import IssueContent, IssueRef, RepositoryRef

CONFIG_PATH = ".github/federated-issue-action-config.json"


class FakeBackend(Backend):
    """Backend keeping issues and sub-issue links in memory and recording every call."""

    def __init__(
        self,
        owner: str = "test-owner",
        repositories: list[str] | None = None,
        policy: dict[str, Any] | None = None,
        return_node_ids: bool = True,
    ) -> None:
        """Initialize fake backend."""
        self.owner = owner
        self.repositories = [RepositoryRef(owner=owner, name=name, node_id=f"R_{name}") for name in repositories or []]
        self.files: dict[tuple[str, str, str], str] = {}
        if policy is not None:
            self.files[(owner, "test-repo", CONFIG_PATH)] = json.dumps(policy)
        self.return_node_ids = return_node_ids
        self.memberships: dict[tuple[str, str, str], str] = {}

        self.issues: dict[str, IssueRef] = {}
        self.sub_issues: dict[str, list[str]] = {}
        self._next_number = 100

        self.fail_create: set[str] = set()
        self.fail_link: set[str] = set()
        self.fail_update: set[str] = set()
        self.fail_close: set[str] = set()

        self.read_calls: list[tuple[str, str, str, str | None]] = []
        self.list_calls = 0
        self.created: list[tuple[RepositoryRef, IssueContent]] = []
        self.links: list[tuple[str, str]] = []
        self.updated: list[tuple[IssueRef, IssueContent]] = []
        self.state_changes: list[tuple[IssueRef, bool]] = []
        self.children_calls: list[str] = []
        self.node_id_calls: list[IssueRef] = []
        self.comments: list[tuple[IssueRef, str]] = []

    def add_child(self, parent_node_id: str, repo: str, number: int) -> IssueRef:
        """Seed an existing child issue linked to a parent."""
        child = IssueRef(owner=self.owner, repo=repo, number=number, node_id=f"I_{repo}_{number}")
        self.issues[child.node_id] = child
        self.sub_issues.setdefault(parent_node_id, []).append(child.node_id)
        return child

    def read_file(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        self.read_calls.append((owner, repo, path, ref))
        try:
            return self.files[(owner, repo, path)]
        except KeyError:
            raise ConfigurationError("Configuration file not found or invalid") from None

    def list_repositories(self, owner: str) -> list[RepositoryRef]:
        self.list_calls += 1
        return list(self.repositories)

    def create_issue(self, repository: RepositoryRef, content: IssueContent) -> IssueRef:
        self.created.append((repository, content))
        if repository.name in self.fail_create:
            raise RuntimeError("Failed to create issue")
        self._next_number += 1
        node_id = f"I_{repository.name}_{self._next_number}"
        issue = IssueRef(owner=repository.owner, repo=repository.name, number=self._next_number, node_id=node_id)
        self.issues[node_id] = issue
        if self.return_node_ids:
            return issue
        return IssueRef(owner=issue.owner, repo=issue.repo, number=issue.number)

    def update_issue(self, issue: IssueRef, content: IssueContent) -> None:
        self.updated.append((issue, content))
        if issue.repo in self.fail_update:
            raise RuntimeError("Failed to update issue")

    def set_issue_state(self, issue: IssueRef, open: bool) -> None:
        self.state_changes.append((issue, open))
        if issue.repo in self.fail_close:
            raise RuntimeError("Failed to update status")

    def get_issue_node_id(self, issue: IssueRef) -> str:
        self.node_id_calls.append(issue)
        for node_id, known in self.issues.items():
            if (known.repo, known.number) == (issue.repo, issue.number):
                return node_id
        return "parent-node-id"

    def get_linked_children(self, parent_node_id: str) -> list[IssueRef]:
        self.children_calls.append(parent_node_id)
        return [self.issues[node_id] for node_id in self.sub_issues.get(parent_node_id, [])]

    def link_as_sub_issue(self, parent_node_id: str, child_node_id: str) -> None:
        self.links.append((parent_node_id, child_node_id))
        if self.issues[child_node_id].repo in self.fail_link:
            raise RuntimeError("Failed to link issue")
        self.sub_issues.setdefault(parent_node_id, []).append(child_node_id)

    def post_comment(self, issue: IssueRef, body: str) -> None:
        self.comments.append((issue, body))

    def get_team_membership(self, org: str, team_slug: str, user: str) -> str | None:
        return self.memberships.get((org, team_slug, user))


@pytest.fixture
def make_backend() -> Callable[..., FakeBackend]:
    """Factory for fake backends."""
    return FakeBackend


@pytest.fixture
def default_policy() -> dict[str, Any]:
    """Policy with an open allow-list and a starts-with selector."""
    return {
        "allowed": {"users": [], "teams": []},
        "targetRepositorySelectors": [{"method": "name-pattern", "identifier": "repo-", "patternType": "starts-with"}],
    }
