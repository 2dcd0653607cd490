"""Resolve target repositories from the policy's selectors."""

from collections.abc import Callable, Iterable, Sequence

import structlog

from federated_issues.errors import UnsupportedSelectorError
from federated_issues.models import RepositoryRef
from federated_issues.policy import ExplicitSelector, NamePatternSelector, TargetSelector

logger = structlog.get_logger()

SUPPORTED_SELECTORS = (NamePatternSelector, ExplicitSelector)


def resolve_repositories(
    selectors: Sequence[TargetSelector],
    owner: str,
    list_all_repos: Callable[[], Iterable[RepositoryRef]],
) -> list[RepositoryRef]:
    """Resolve selectors into a list of repositories, deduplicated by name.

    Args:
        selectors: Selectors in declaration order
        owner: Owner of the parent repository; explicit names resolve against it
        list_all_repos: Lists every repository of ``owner``. Only name-pattern
            selectors call it, once per selector.

    Returns:
        Matching repositories. Order carries no meaning.

    Raises:
        UnsupportedSelectorError: A selector is neither a name-pattern nor an explicit selector.
    """
    for selector in selectors:
        if not isinstance(selector, SUPPORTED_SELECTORS):
            method = getattr(selector, "method", type(selector).__name__)
            logger.error("Unsupported selector", method=method)
            raise UnsupportedSelectorError(f"Unsupported selector type: {method}")

    repositories: dict[str, RepositoryRef] = {}
    for selector in selectors:
        for repository in _resolve_selector(selector, owner, list_all_repos):
            repositories[repository.name] = repository

    logger.info("Resolved target repositories", owner=owner, repositories=sorted(repositories))
    return list(repositories.values())


def _resolve_selector(
    selector: TargetSelector,
    owner: str,
    list_all_repos: Callable[[], Iterable[RepositoryRef]],
) -> list[RepositoryRef]:
    if isinstance(selector, ExplicitSelector):
        logger.debug("Resolving explicit selector", repositories=selector.repositories)
        return [RepositoryRef(owner=owner, name=name) for name in selector.repositories or []]

    if isinstance(selector, NamePatternSelector):
        if not selector.identifier:
            logger.warning("Skipping name-pattern selector with empty identifier")
            return []
        logger.debug(
            "Resolving name-pattern selector", identifier=selector.identifier, pattern_type=selector.pattern_type
        )
        return [
            repository
            for repository in list_all_repos()
            if matches_name(repository.name, selector.identifier, selector.pattern_type)
        ]

    raise UnsupportedSelectorError(f"Unsupported selector type: {type(selector).__name__}")


def matches_name(name: str, identifier: str, pattern_type: str = "contains") -> bool:
    """Case-sensitive literal match of a repository name against an identifier."""
    if pattern_type == "starts-with":
        return name.startswith(identifier)
    if pattern_type == "ends-with":
        return name.endswith(identifier)
    if pattern_type == "contains":
        return identifier in name
    raise UnsupportedSelectorError(f"Unsupported pattern type: {pattern_type}")
