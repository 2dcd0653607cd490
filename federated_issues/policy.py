"""Federation policy document: who may federate and where child issues go.

The document is a JSON file stored in the parent repository::

    {
        "allowed": {"users": ["octocat"], "teams": ["sdk-maintainers", "other-org/reviewers"]},
        "targetRepositorySelectors": [
            {"method": "name-pattern", "identifier": "sdk", "patternType": "starts-with"},
            {"method": "explicit", "repositories": ["api-service"]}
        ]
    }

Every key is optional. Name-pattern selectors also accept the older
``pattern``/``operator`` keys.
"""

import json
from typing import Annotated, Literal, Union

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from federated_issues.backend import ContentSource
from federated_issues.errors import ConfigurationError, UnsupportedSelectorError

logger = structlog.get_logger()

PatternType = Literal["starts-with", "contains", "ends-with"]


class NamePatternSelector(BaseModel):
    """Select every repository of the owner whose name matches a pattern."""

    model_config = ConfigDict(frozen=True)

    method: Literal["name-pattern"] = "name-pattern"
    identifier: str = Field(
        ...,
        validation_alias=AliasChoices("identifier", "pattern"),
        description='Pattern of the repository name to match, e.g. "sdk"',
    )
    pattern_type: PatternType = Field(
        "contains",
        validation_alias=AliasChoices("pattern_type", "patternType", "operator"),
        description="How the identifier is matched against the repository name",
    )


class ExplicitSelector(BaseModel):
    """Select an explicit list of repositories by name."""

    model_config = ConfigDict(frozen=True)

    method: Literal["explicit"] = "explicit"
    repositories: list[str] = Field(default_factory=list, description='Repository names, e.g. "dotnet-sdk"')


TargetSelector = Annotated[Union[NamePatternSelector, ExplicitSelector], Field(discriminator="method")]


class AllowList(BaseModel):
    """Users and teams allowed to create parent issues. Empty means everyone."""

    users: list[str] = Field(default_factory=list)
    teams: list[str] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return not self.users and not self.teams


class Policy(BaseModel):
    """Parsed federation policy."""

    allowed: AllowList = Field(default_factory=AllowList)
    target_repository_selectors: list[TargetSelector] = Field(
        default_factory=list,
        validation_alias=AliasChoices("target_repository_selectors", "targetRepositorySelectors"),
    )


def parse_policy(text: str) -> Policy:
    """Parse and validate a policy document.

    Raises:
        UnsupportedSelectorError: A selector names an unknown ``method``.
        ConfigurationError: The document is not JSON or does not match the schema.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Configuration is not valid JSON: {e}") from e

    try:
        policy = Policy.model_validate(data)
    except ValidationError as e:
        for error in e.errors():
            if error["type"] == "union_tag_invalid":
                tag = error.get("ctx", {}).get("tag")
                raise UnsupportedSelectorError(f"Unsupported selector type: {tag}") from e
        raise ConfigurationError(f"Configuration does not match the expected schema: {e}") from e

    logger.debug(
        "Policy parsed",
        users=policy.allowed.users,
        teams=policy.allowed.teams,
        selector_count=len(policy.target_repository_selectors),
    )
    return policy


def load_policy(source: ContentSource, owner: str, repo: str, path: str, ref: str | None = None) -> Policy:
    """Read the policy document from a repository and parse it."""
    logger.info("Loading configuration", owner=owner, repo=repo, path=path, ref=ref)
    try:
        return parse_policy(source.read_file(owner, repo, path, ref))
    except ConfigurationError as e:
        raise type(e)(f"Failed to load configuration from {path}: {e}") from e
