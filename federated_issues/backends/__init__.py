"""Backend implementations."""

from federated_issues.backends.github import GitHubBackend

__all__ = ["GitHubBackend"]
