"""Data models for federated issues."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class RepositoryRef:
    """A repository that may receive child issues."""

    owner: str
    name: str
    node_id: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class IssueRef:
    """Lightweight handle on an issue, not a full snapshot."""

    owner: str
    repo: str
    number: int
    node_id: str | None = None
    title: str | None = None
    body: str | None = None
    labels: list[str] | None = None

    def __str__(self) -> str:
        return f"{self.repo}#{self.number}"


@dataclass
class IssueContent:
    """Material propagated from a parent issue to its children."""

    title: str
    body: str = ""
    labels: list[str] = field(default_factory=list)


@dataclass
class ParentIssue:
    """The issue carried by a trigger event."""

    number: int
    title: str
    body: str = ""
    labels: list[str] = field(default_factory=list)
    author: str = ""
    state: str = "open"
    node_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def has_label(self, label: str) -> bool:
        return label in self.labels


@dataclass
class IssueEvent:
    """A single issue event that may trigger federation."""

    action: str
    owner: str
    repo: str
    issue: ParentIssue | None = None


class Operation(str, Enum):
    """Operation attempted on a child issue."""

    CREATE = "create"
    UPDATE = "update"
    CLOSE = "close"


class FederationStatus(str, Enum):
    """How a federation run ended."""

    SKIPPED = "skipped"
    DENIED = "denied"
    NO_TARGETS = "no_targets"
    IGNORED = "ignored"
    COMPLETED = "completed"


@dataclass
class ChildOutcome:
    """Result of one operation against one child issue."""

    repository: str
    operation: Operation
    success: bool
    issue_number: int | None = None
    error: str | None = None
    orphaned: bool = False


@dataclass
class FederationResult:
    """Aggregated outcome of a federation run."""

    action: str
    status: FederationStatus
    targets: list[RepositoryRef] = field(default_factory=list)
    outcomes: list[ChildOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ChildOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> list[ChildOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def orphaned(self) -> list[ChildOutcome]:
        return [outcome for outcome in self.outcomes if outcome.orphaned]
