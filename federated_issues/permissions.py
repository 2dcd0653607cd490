"""Decide whether an actor may trigger federation."""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from federated_issues.policy import AllowList

logger = structlog.get_logger()

ACTIVE_MEMBERSHIP = "active"

MembershipLookup = Callable[[str, str, str], str | None]


@dataclass(frozen=True)
class TeamRef:
    """A team, qualified by the organization that owns it."""

    org: str
    slug: str

    def __str__(self) -> str:
        return f"{self.org}/{self.slug}"


def parse_team_ref(entry: str, default_org: str) -> TeamRef:
    """Parse ``slug`` or ``org/slug`` into a team reference.

    A bare slug belongs to ``default_org``.

    Raises:
        ValueError: The organization or the slug is empty.
    """
    if "/" in entry:
        org, slug = entry.split("/", 1)
    else:
        org, slug = default_org, entry
    org, slug = org.strip(), slug.strip()
    if not org or not slug:
        raise ValueError(f"Invalid team reference: '{entry}'")
    return TeamRef(org=org, slug=slug)


def authorize(allowed: AllowList, actor: str, repo_owner: str, membership_lookup: MembershipLookup) -> bool:
    """Check an actor against the allow-list.

    An empty allow-list authorizes everyone. Otherwise the actor must be listed
    as a user or be an active member of one of the listed teams. Teams are
    checked in order and the first active membership wins. A failing lookup
    counts as "not a member" and does not stop the remaining teams from being
    checked.

    Args:
        allowed: Users and teams from the policy
        actor: Login of the user who triggered the event
        repo_owner: Organization that bare team slugs belong to
        membership_lookup: ``(org, team_slug, user) -> state or None``

    Returns:
        True if the actor may trigger federation
    """
    if allowed.is_open:
        logger.debug("Allow-list is empty, everyone is authorized", actor=actor)
        return True

    if actor in allowed.users:
        logger.debug("Actor is an allowed user", actor=actor)
        return True

    for entry in allowed.teams:
        try:
            team = parse_team_ref(entry, repo_owner)
        except ValueError as e:
            logger.warning("Skipping malformed team entry", team=entry, error=str(e))
            continue

        try:
            state = membership_lookup(team.org, team.slug, actor)
        except Exception as e:
            logger.warning("Error checking team membership", actor=actor, team=str(team), error=str(e))
            continue

        if state == ACTIVE_MEMBERSHIP:
            logger.debug("Actor is an active team member", actor=actor, team=str(team))
            return True
        logger.debug("Actor is not an active team member", actor=actor, team=str(team), state=state)

    return False
