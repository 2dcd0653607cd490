"""Federation of a parent issue into child issues across repositories."""

import structlog

from federated_issues.backend import Backend
from federated_issues.discovery import resolve_repositories
from federated_issues.models import (
    ChildOutcome,
    FederationResult,
    FederationStatus,
    IssueContent,
    IssueEvent,
    IssueRef,
    Operation,
    RepositoryRef,
)
from federated_issues.permissions import authorize
from federated_issues.policy import Policy, load_policy
from federated_issues.settings import Settings
from federated_issues.templating import build_child_content

logger = structlog.get_logger()

NO_PERMISSION_COMMENT = "⚠️ No permissions ⚠️\nYou don't have permission to create parent issues."


class Federator:
    """Propagates one issue event from a parent issue to its child issues.

    Each run recomputes the policy, the authorization, the target
    repositories and the set of linked child issues from the remote service.
    Nothing is cached between runs.
    """

    def __init__(self, backend: Backend, settings: Settings | None = None, ref: str | None = None) -> None:
        """Initialize the federator.

        Args:
            backend: Hosting platform backend
            settings: Run settings (defaults apply when omitted)
            ref: Git ref to read the policy document from
        """
        self.backend = backend
        self.settings = settings or Settings()
        self.ref = ref

    def run(self, event: IssueEvent) -> FederationResult:
        """Handle a single issue event.

        Raises:
            ConfigurationError: The policy document is missing or invalid.
        """
        issue = event.issue
        if issue is None:
            logger.debug("Not an issue event, skipping", action=event.action)
            return FederationResult(action=event.action, status=FederationStatus.SKIPPED)

        if not issue.has_label(self.settings.required_label):
            logger.info(
                "Issue does not have required label, skipping",
                label=self.settings.required_label,
                issue_number=issue.number,
            )
            return FederationResult(action=event.action, status=FederationStatus.SKIPPED)

        policy = load_policy(self.backend, event.owner, event.repo, self.settings.config_path, self.ref)

        if not self.is_authorized(policy, issue.author, event.owner):
            logger.warning(
                "User does not have permission to create parent issues", user=issue.author, issue_number=issue.number
            )
            if self.settings.notify_missing_permissions:
                self.backend.post_comment(
                    IssueRef(owner=event.owner, repo=event.repo, number=issue.number), NO_PERMISSION_COMMENT
                )
            return FederationResult(action=event.action, status=FederationStatus.DENIED)

        targets = self.resolve_targets(policy, event.owner)
        if not targets:
            logger.warning("No target repositories found for creating child issues")
            return FederationResult(action=event.action, status=FederationStatus.NO_TARGETS)

        content = build_child_content(
            issue,
            self.settings.child_issue_title_template,
            self.settings.child_issue_body_template,
            excluded_labels={self.settings.required_label},
        )
        parent = IssueRef(
            owner=event.owner,
            repo=event.repo,
            number=issue.number,
            node_id=issue.node_id,
            title=issue.title,
            body=issue.body,
            labels=list(issue.labels),
        )

        if event.action == "labeled":
            outcomes = self.create_children(parent, content, targets)
        elif event.action == "edited":
            outcomes = self.update_children(parent, content, targets)
        elif event.action == "closed":
            if not self.settings.close_issues_on_parent_close:
                logger.info("Closing child issues on parent close is disabled, skipping")
                return FederationResult(action=event.action, status=FederationStatus.IGNORED, targets=targets)
            outcomes = self.close_children(parent, targets)
        else:
            logger.info("Action not handled", action=event.action)
            return FederationResult(action=event.action, status=FederationStatus.IGNORED, targets=targets)

        result = FederationResult(
            action=event.action, status=FederationStatus.COMPLETED, targets=targets, outcomes=outcomes
        )
        logger.info(
            "Federation finished",
            action=event.action,
            succeeded=len(result.succeeded),
            failed=len(result.failed),
            orphaned=len(result.orphaned),
        )
        return result

    def is_authorized(self, policy: Policy, actor: str, owner: str) -> bool:
        """Check whether an actor may trigger federation under a policy."""
        return authorize(policy.allowed, actor, owner, self.backend.get_team_membership)

    def resolve_targets(self, policy: Policy, owner: str) -> list[RepositoryRef]:
        """Resolve the policy's selectors into target repositories."""
        return resolve_repositories(
            policy.target_repository_selectors, owner, lambda: self.backend.list_repositories(owner)
        )

    def _parent_node_id(self, parent: IssueRef) -> str:
        if not parent.node_id:
            parent.node_id = self.backend.get_issue_node_id(parent)
        logger.info("Parent issue node ID", node_id=parent.node_id)
        return parent.node_id

    def create_children(
        self, parent: IssueRef, content: IssueContent, targets: list[RepositoryRef]
    ) -> list[ChildOutcome]:
        """Create a child issue in every target and link it to the parent.

        A child whose creation succeeded but whose link failed is reported as
        orphaned: it exists but later edits and closes cannot find it.
        """
        parent_node_id = self._parent_node_id(parent)
        outcomes: list[ChildOutcome] = []

        for repository in targets:
            logger.info("Creating child issue", repository=repository.name)
            try:
                child = self.backend.create_issue(repository, content)
            except Exception as e:
                logger.error("Failed to create child issue", repository=repository.name, error=str(e))
                outcomes.append(
                    ChildOutcome(repository=repository.name, operation=Operation.CREATE, success=False, error=str(e))
                )
                continue

            try:
                child_node_id = child.node_id or self.backend.get_issue_node_id(child)
                self.backend.link_as_sub_issue(parent_node_id, child_node_id)
            except Exception as e:
                logger.error(
                    "Failed to link child issue, child issue is orphaned",
                    repository=repository.name,
                    issue_number=child.number,
                    error=str(e),
                )
                outcomes.append(
                    ChildOutcome(
                        repository=repository.name,
                        operation=Operation.CREATE,
                        success=False,
                        issue_number=child.number,
                        error=str(e),
                        orphaned=True,
                    )
                )
                continue

            logger.info("Created and linked child issue", repository=repository.name, issue_number=child.number)
            outcomes.append(
                ChildOutcome(
                    repository=repository.name, operation=Operation.CREATE, success=True, issue_number=child.number
                )
            )

        return outcomes

    def linked_children(self, parent: IssueRef, targets: list[RepositoryRef]) -> list[IssueRef]:
        """Fetch the parent's child issues from the remote issue graph.

        With ``restrict_to_selected_repositories`` on, children in repositories
        that are no longer selected are left out.
        """
        children = self.backend.get_linked_children(self._parent_node_id(parent))
        logger.info("Found child issues", count=len(children))

        if not self.settings.restrict_to_selected_repositories:
            return children

        selected = {repository.name for repository in targets}
        kept = [child for child in children if child.repo in selected]
        for child in children:
            if child.repo not in selected:
                logger.info(
                    "Skipping child issue outside the target repositories",
                    repository=child.repo,
                    issue_number=child.number,
                )
        return kept

    def update_children(
        self, parent: IssueRef, content: IssueContent, targets: list[RepositoryRef]
    ) -> list[ChildOutcome]:
        """Push the parent's current content to every linked child."""
        outcomes: list[ChildOutcome] = []
        for child in self.linked_children(parent, targets):
            logger.info("Updating child issue", repository=child.repo, issue_number=child.number)
            try:
                self.backend.update_issue(child, content)
            except Exception as e:
                logger.warning(
                    "Failed to update child issue", repository=child.repo, issue_number=child.number, error=str(e)
                )
                outcomes.append(
                    ChildOutcome(
                        repository=child.repo,
                        operation=Operation.UPDATE,
                        success=False,
                        issue_number=child.number,
                        error=str(e),
                    )
                )
                continue

            logger.info("Updated child issue", repository=child.repo, issue_number=child.number)
            outcomes.append(
                ChildOutcome(repository=child.repo, operation=Operation.UPDATE, success=True, issue_number=child.number)
            )
        return outcomes

    def close_children(self, parent: IssueRef, targets: list[RepositoryRef]) -> list[ChildOutcome]:
        """Close every linked child."""
        outcomes: list[ChildOutcome] = []
        for child in self.linked_children(parent, targets):
            logger.info("Closing child issue", repository=child.repo, issue_number=child.number)
            try:
                self.backend.set_issue_state(child, open=False)
            except Exception as e:
                logger.warning(
                    "Failed to update status of child issue",
                    repository=child.repo,
                    issue_number=child.number,
                    error=str(e),
                )
                outcomes.append(
                    ChildOutcome(
                        repository=child.repo,
                        operation=Operation.CLOSE,
                        success=False,
                        issue_number=child.number,
                        error=str(e),
                    )
                )
                continue

            logger.info("Closed child issue", repository=child.repo, issue_number=child.number)
            outcomes.append(
                ChildOutcome(repository=child.repo, operation=Operation.CLOSE, success=True, issue_number=child.number)
            )
        return outcomes
