"""Backend interfaces consumed by the federation engine."""

from abc import ABC, abstractmethod

from federated_issues.models import IssueContent, IssueRef, RepositoryRef


class ContentSource(ABC):
    """Reads files stored in a repository."""

    @abstractmethod
    def read_file(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        """Return the text of a file.

        Raises:
            ConfigurationError: The file does not exist or is not a regular file.
        """
        pass


class RepositoryLister(ABC):
    """Lists the repositories of an owner."""

    @abstractmethod
    def list_repositories(self, owner: str) -> list[RepositoryRef]:
        """List every repository belonging to an owner."""
        pass


class IssueService(ABC):
    """Issue reads and mutations across repositories."""

    @abstractmethod
    def create_issue(self, repository: RepositoryRef, content: IssueContent) -> IssueRef:
        """Create an issue in a repository."""
        pass

    @abstractmethod
    def update_issue(self, issue: IssueRef, content: IssueContent) -> None:
        """Replace the title, body and labels of an issue."""
        pass

    @abstractmethod
    def set_issue_state(self, issue: IssueRef, open: bool) -> None:
        """Open or close an issue."""
        pass

    @abstractmethod
    def get_issue_node_id(self, issue: IssueRef) -> str:
        """Get the opaque node ID of an issue."""
        pass

    @abstractmethod
    def get_linked_children(self, parent_node_id: str) -> list[IssueRef]:
        """List the sub-issues currently linked to a parent issue."""
        pass

    @abstractmethod
    def link_as_sub_issue(self, parent_node_id: str, child_node_id: str) -> None:
        """Link an issue as a sub-issue of a parent issue."""
        pass

    @abstractmethod
    def post_comment(self, issue: IssueRef, body: str) -> None:
        """Add a comment to an issue."""
        pass


class TeamService(ABC):
    """Team membership lookups."""

    @abstractmethod
    def get_team_membership(self, org: str, team_slug: str, user: str) -> str | None:
        """Get the membership state of a user in a team.

        Returns:
            The membership state (``"active"``, ``"pending"``, ...), or None when
            the user is not a member.
        """
        pass


class Backend(ContentSource, RepositoryLister, IssueService, TeamService):
    """Everything a federation run needs from the hosting platform."""
