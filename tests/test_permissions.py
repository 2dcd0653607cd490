"""Tests for the permission evaluator."""

from unittest.mock import Mock, call

import pytest

from federated_issues.permissions import TeamRef, authorize, parse_team_ref
from federated_issues.policy import AllowList

OWNER = "test-owner"


def test_open_policy_allows_everyone() -> None:
    """Test that an empty allow-list authorizes any actor without lookups."""
    lookup = Mock()

    assert authorize(AllowList(), "anyone", OWNER, lookup) is True
    lookup.assert_not_called()


def test_allowed_user() -> None:
    """Test that a listed user is authorized regardless of team state."""
    lookup = Mock(side_effect=RuntimeError("should not be called"))
    allowed = AllowList(users=["test-user"], teams=["team-a"])

    assert authorize(allowed, "test-user", OWNER, lookup) is True
    lookup.assert_not_called()


def test_unlisted_user_without_teams_is_denied() -> None:
    """Test that a user not in a non-empty user list is denied."""
    assert authorize(AllowList(users=["test-user"]), "other-user", OWNER, Mock()) is False


def test_active_member_of_team_in_other_org() -> None:
    """Test that an org-qualified team is looked up in that org."""
    lookup = Mock(return_value="active")

    assert authorize(AllowList(teams=["org2/teamA"]), "test-user", OWNER, lookup) is True
    lookup.assert_called_once_with("org2", "teamA", "test-user")


def test_bare_team_slug_uses_repository_owner() -> None:
    """Test that a bare slug is looked up in the repository owner's org."""
    lookup = Mock(return_value="active")

    assert authorize(AllowList(teams=["team-a"]), "test-user", OWNER, lookup) is True
    lookup.assert_called_once_with(OWNER, "team-a", "test-user")


@pytest.mark.parametrize("state", ["pending", None])
def test_non_active_membership_is_denied(state: str | None) -> None:
    """Test that pending or missing memberships do not authorize."""
    lookup = Mock(return_value=state)

    assert authorize(AllowList(teams=["team-a", "org2/team-b"]), "test-user", OWNER, lookup) is False
    assert lookup.call_args_list == [call(OWNER, "team-a", "test-user"), call("org2", "team-b", "test-user")]


def test_stops_at_first_active_team() -> None:
    """Test that remaining teams are not checked after an active membership."""
    lookup = Mock(side_effect=["active", "active"])

    assert authorize(AllowList(teams=["team-a", "team-b"]), "test-user", OWNER, lookup) is True
    assert lookup.call_count == 1


def test_failed_lookup_continues_with_next_team() -> None:
    """Test that an error for one team does not stop evaluation of the others."""
    lookup = Mock(side_effect=[RuntimeError("Bad credentials"), "active"])

    assert authorize(AllowList(teams=["team-a", "team-b"]), "test-user", OWNER, lookup) is True
    assert lookup.call_count == 2


def test_all_lookups_failing_denies() -> None:
    """Test that failing lookups count as non-membership."""
    lookup = Mock(side_effect=RuntimeError("Server error"))

    assert authorize(AllowList(teams=["team-a", "team-b"]), "test-user", OWNER, lookup) is False


def test_malformed_team_entry_is_skipped() -> None:
    """Test that a malformed team entry is skipped rather than failing evaluation."""
    lookup = Mock(return_value="active")

    assert authorize(AllowList(teams=["org2/", "team-b"]), "test-user", OWNER, lookup) is True
    lookup.assert_called_once_with(OWNER, "team-b", "test-user")


def test_parse_team_ref() -> None:
    """Test parsing bare and org-qualified team references."""
    assert parse_team_ref("team-a", OWNER) == TeamRef(org=OWNER, slug="team-a")
    assert parse_team_ref("org2/team-b", OWNER) == TeamRef(org="org2", slug="team-b")
    assert str(parse_team_ref("org2/team-b", OWNER)) == "org2/team-b"


@pytest.mark.parametrize("entry", ["", "org2/", "/team-a"])
def test_parse_team_ref_rejects_empty_parts(entry: str) -> None:
    """Test that team references need a non-empty org and slug."""
    with pytest.raises(ValueError, match="Invalid team reference"):
        parse_team_ref(entry, OWNER)
