import pytest

from policybot.common.actor import Actors
from policybot.pull import Context, Permission


@pytest.fixture
def prctx():
    return Context(
        team_memberships={"mhaypenny": ["cool-org/team1", "regular-org/team2"]},
        org_memberships={"mhaypenny": ["cool-org", "regular-org"]},
        collaborators={
            "mhaypenny": Permission.ADMIN,
            "jstrawnickel": Permission.WRITE,
        },
    )


def test_users(prctx):
    a = Actors(users=["mhaypenny"])
    assert a.is_actor(prctx, "mhaypenny")
    assert not a.is_actor(prctx, "ttest")


def test_teams(prctx):
    a = Actors(teams=["regular-org/team2"])
    assert a.is_actor(prctx, "mhaypenny")
    assert not a.is_actor(prctx, "ttest")


def test_organizations(prctx):
    a = Actors(organizations=["cool-org"])
    assert a.is_actor(prctx, "mhaypenny")
    assert not a.is_actor(prctx, "ttest")


def test_admins(prctx):
    a = Actors(admins=True)
    assert a.is_actor(prctx, "mhaypenny")
    assert not a.is_actor(prctx, "jstrawnickel")
    assert not a.is_actor(prctx, "ttest")


def test_write(prctx):
    a = Actors(write_collaborators=True)
    assert a.is_actor(prctx, "jstrawnickel")
    assert a.is_actor(prctx, "mhaypenny")
    assert not a.is_actor(prctx, "ttest")


def test_permissions(prctx):
    a = Actors(permissions=[Permission.TRIAGE])
    assert a.is_actor(prctx, "mhaypenny")
    assert a.is_actor(prctx, "jstrawnickel")
    assert not a.is_actor(prctx, "ttest")


def test_is_empty():
    assert Actors().is_empty()
    assert not Actors(users=["user"]).is_empty()
    assert not Actors(teams=["org/team"]).is_empty()
    assert not Actors(organizations=["org"]).is_empty()
    assert not Actors(admins=True).is_empty()
    assert not Actors(permissions=[Permission.READ]).is_empty()


def test_get_permissions_unique_and_descending():
    a = Actors(
        permissions=[Permission.READ, Permission.WRITE, Permission.READ],
        admins=True,
        write_collaborators=True,
    )
    assert a.get_permissions() == [Permission.ADMIN, Permission.WRITE, Permission.READ]
    assert Actors().get_permissions() == []


def test_from_dict():
    a = Actors.from_dict(
        {
            "users": ["user4"],
            "teams": ["team3", "team4"],
            "organizations": ["org3"],
            "admins": True,
            "permissions": ["triage"],
            "count": 5,
        }
    )
    assert a == Actors(
        users=["user4"],
        teams=["team3", "team4"],
        organizations=["org3"],
        admins=True,
        permissions=[Permission.TRIAGE],
    )


def test_from_dict_none_is_empty():
    assert Actors.from_dict(None).is_empty()


@pytest.mark.parametrize(
    "data",
    [
        {"users": "user1"},
        {"teams": [1]},
        {"admins": "yes"},
        {"permissions": ["owner"]},
        ["users"],
    ],
)
def test_from_dict_invalid(data):
    with pytest.raises(ValueError):
        Actors.from_dict(data)