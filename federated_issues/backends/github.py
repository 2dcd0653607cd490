"""GitHub backend implementation using PyGithub."""

from typing import Any

import structlog
from github import Auth, Github
from github.GithubException import GithubException, UnknownObjectException
from github.Issue import Issue
from github.Repository import Repository

from federated_issues.backend import Backend
from federated_issues.errors import ConfigurationError, GraphQLError, MissingCredentialError
from federated_issues.models import IssueContent, IssueRef, RepositoryRef

logger = structlog.get_logger()

SUB_ISSUES_HEADERS = {"GraphQL-Features": "sub_issues"}
SUB_ISSUES_PAGE_SIZE = 50

SUB_ISSUES_QUERY = """
query SubIssues($parentId: ID!, $first: Int!, $after: String) {
  node(id: $parentId) {
    ... on Issue {
      subIssues(first: $first, after: $after) {
        nodes {
          number
          id
          repository {
            name
            owner {
              login
            }
          }
        }
        pageInfo {
          hasNextPage
          endCursor
        }
      }
    }
  }
}
"""

ADD_SUB_ISSUE_MUTATION = """
mutation AddSubIssue($parentId: ID!, $childId: ID!) {
  addSubIssue(input: {issueId: $parentId, subIssueId: $childId}) {
    clientMutationId
  }
}
"""


class GitHubBackend(Backend):
    """GitHub-based backend: issues, sub-issue links, teams and repository contents."""

    def __init__(self, token: str | None = None, base_url: str | None = None) -> None:
        """Initialize GitHub backend.

        Args:
            token: GitHub token with permission to create and edit issues in the target repositories
            base_url: API base URL for GitHub Enterprise Server
        """
        self.token = token
        if not self.token:
            raise MissingCredentialError("GitHub token required")

        logger.debug("Initializing GitHub backend", base_url=base_url)
        auth = Auth.Token(self.token)
        self.client = Github(auth=auth, base_url=base_url) if base_url else Github(auth=auth)
        self._repositories: dict[str, Repository] = {}
        logger.info("GitHub backend initialized")

    def _get_repository(self, owner: str, name: str) -> Repository:
        full_name = f"{owner}/{name}"
        if full_name not in self._repositories:
            logger.debug("Fetching repository", repository=full_name)
            self._repositories[full_name] = self.client.get_repo(full_name)
        return self._repositories[full_name]

    def _get_issue(self, issue: IssueRef) -> Issue:
        return self._get_repository(issue.owner, issue.repo).get_issue(number=issue.number)

    def _ensure_labels_exist(self, repository: Repository, label_names: list[str]) -> None:
        """Ensure all labels exist in the repository, creating them if needed."""
        if not label_names:
            return
        existing_labels = {label.name for label in repository.get_labels()}
        for label_name in label_names:
            if label_name not in existing_labels:
                logger.debug("Creating label", repository=repository.full_name, label_name=label_name)
                repository.create_label(name=label_name, color="ededed")

    def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL request with the sub-issues preview enabled.

        Posts to the requester's GraphQL endpoint, which differs from the REST
        prefix on GitHub Enterprise Server (`/api/graphql` vs `/api/v3`).
        """
        requester = self.client._Github__requester
        _, response = requester.requestJsonAndCheck(
            "POST",
            requester.graphql_url,
            headers=SUB_ISSUES_HEADERS,
            input={"query": query, "variables": variables},
        )
        if response.get("errors"):
            raise GraphQLError(response["errors"])
        return response.get("data") or {}

    def read_file(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        """Read a file from a repository at an optional ref."""
        logger.debug("Reading repository file", owner=owner, repo=repo, path=path, ref=ref)
        kwargs = {"ref": ref} if ref else {}
        try:
            contents = self._get_repository(owner, repo).get_contents(path, **kwargs)
        except UnknownObjectException as e:
            raise ConfigurationError(f"{path} not found in {owner}/{repo}") from e
        except GithubException as e:
            raise ConfigurationError(f"Could not read {path} from {owner}/{repo}: {e}") from e

        if isinstance(contents, list) or contents.type != "file":
            raise ConfigurationError("Configuration file not found or invalid")
        return contents.decoded_content.decode("utf-8")

    def list_repositories(self, owner: str) -> list[RepositoryRef]:
        """List the repositories of an organization, or of a user when the owner is not an organization."""
        logger.info("Listing repositories", owner=owner)
        try:
            repositories = list(self.client.get_organization(owner).get_repos())
        except UnknownObjectException:
            logger.debug("Owner is not an organization, listing user repositories", owner=owner)
            repositories = list(self.client.get_user(owner).get_repos())

        refs = [RepositoryRef(owner=owner, name=repo.name, node_id=repo.node_id) for repo in repositories]
        logger.debug("Listed repositories", owner=owner, count=len(refs))
        return refs

    def create_issue(self, repository: RepositoryRef, content: IssueContent) -> IssueRef:
        """Create an issue in a repository."""
        logger.info("Creating GitHub issue", repository=repository.full_name, title=content.title)
        repo = self._get_repository(repository.owner, repository.name)
        self._ensure_labels_exist(repo, content.labels)

        issue = repo.create_issue(title=content.title, body=content.body, labels=content.labels)

        logger.info("GitHub issue created", repository=repository.full_name, issue_number=issue.number)
        return IssueRef(
            owner=repository.owner,
            repo=repository.name,
            number=issue.number,
            node_id=issue.node_id,
            title=issue.title,
            body=issue.body,
            labels=[label.name for label in issue.labels],
        )

    def update_issue(self, issue: IssueRef, content: IssueContent) -> None:
        """Replace the title and body of an issue and add any missing labels.

        Labels already on the issue are kept.
        """
        logger.info("Updating GitHub issue", repository=issue.repo, issue_number=issue.number)
        gh_issue = self._get_issue(issue)
        gh_issue.edit(title=content.title, body=content.body)

        current = {label.name for label in gh_issue.labels}
        missing = [name for name in content.labels if name not in current]
        if missing:
            self._ensure_labels_exist(self._get_repository(issue.owner, issue.repo), missing)
            gh_issue.add_to_labels(*missing)
        logger.debug("GitHub issue updated", repository=issue.repo, issue_number=issue.number)

    def set_issue_state(self, issue: IssueRef, open: bool) -> None:
        """Open or close an issue."""
        state = "open" if open else "closed"
        logger.info("Updating GitHub issue state", repository=issue.repo, issue_number=issue.number, state=state)
        self._get_issue(issue).edit(state=state)

    def get_issue_node_id(self, issue: IssueRef) -> str:
        """Get the GraphQL node ID of an issue."""
        node_id = self._get_issue(issue).node_id
        logger.debug("Fetched issue node ID", repository=issue.repo, issue_number=issue.number, node_id=node_id)
        return node_id

    def get_linked_children(self, parent_node_id: str) -> list[IssueRef]:
        """List every sub-issue of a parent issue, following pagination."""
        if not parent_node_id:
            raise ValueError("Invalid parent issue ID")

        logger.debug("Fetching sub-issues", parent_node_id=parent_node_id)
        children: list[IssueRef] = []
        after = None
        while True:
            data = self._graphql(
                SUB_ISSUES_QUERY, {"parentId": parent_node_id, "first": SUB_ISSUES_PAGE_SIZE, "after": after}
            )
            sub_issues = (data.get("node") or {}).get("subIssues") or {}
            for node in sub_issues.get("nodes") or []:
                children.append(
                    IssueRef(
                        owner=node["repository"]["owner"]["login"],
                        repo=node["repository"]["name"],
                        number=node["number"],
                        node_id=node["id"],
                    )
                )
            page_info = sub_issues.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")

        logger.debug("Retrieved sub-issues", parent_node_id=parent_node_id, count=len(children))
        return children

    def link_as_sub_issue(self, parent_node_id: str, child_node_id: str) -> None:
        """Link an issue as a sub-issue of a parent issue."""
        if not parent_node_id:
            raise ValueError("Invalid parent issue ID")
        if not child_node_id:
            raise ValueError("Invalid child issue ID")

        logger.debug("Adding sub-issue link", parent=parent_node_id, child=child_node_id)
        self._graphql(ADD_SUB_ISSUE_MUTATION, {"parentId": parent_node_id, "childId": child_node_id})

    def post_comment(self, issue: IssueRef, body: str) -> None:
        """Add a comment to an issue."""
        logger.info("Posting comment", repository=issue.repo, issue_number=issue.number)
        self._get_issue(issue).create_comment(body)

    def get_team_membership(self, org: str, team_slug: str, user: str) -> str | None:
        """Get a user's membership state in a team, or None when not a member."""
        requester = self.client._Github__requester
        try:
            _, data = requester.requestJsonAndCheck("GET", f"/orgs/{org}/teams/{team_slug}/memberships/{user}")
        except UnknownObjectException:
            logger.debug("No team membership", org=org, team=team_slug, user=user)
            return None
        state = data.get("state")
        logger.debug("Team membership", org=org, team=team_slug, user=user, state=state)
        return state
