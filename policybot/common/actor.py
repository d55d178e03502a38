"""Conditions describing which users may take an action."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from policybot.pull import Context, Permission


def _string_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return list(value)


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean")
    return value


@dataclass
class Actors:
    """Users allowed to act, by name, team, organization or permission.

    The set of allowed actors is the union of all conditions.
    ``admins`` and ``write_collaborators`` are older spellings of the
    admin and write permissions.
    """

    KEYS: ClassVar[frozenset[str]] = frozenset(
        {"users", "teams", "organizations", "admins", "write_collaborators", "permissions"}
    )

    users: list[str] = field(default_factory=list)
    teams: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)
    admins: bool = False
    write_collaborators: bool = False
    permissions: list[Permission] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Actors:
        """Build from a configuration mapping; keys outside KEYS are ignored."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("actors must be a mapping")
        raw_permissions = data.get("permissions") or []
        if not isinstance(raw_permissions, list):
            raise ValueError("'permissions' must be a list")
        return cls(
            users=_string_list(data, "users"),
            teams=_string_list(data, "teams"),
            organizations=_string_list(data, "organizations"),
            admins=_flag(data, "admins"),
            write_collaborators=_flag(data, "write_collaborators"),
            permissions=[Permission.parse(p) for p in raw_permissions],
        )

    def is_empty(self) -> bool:
        """Return True if no condition is defined."""
        return not (
            self.users
            or self.teams
            or self.organizations
            or self.permissions
            or self.admins
            or self.write_collaborators
        )

    def get_permissions(self) -> list[Permission]:
        """Return unique permissions, most privileged first."""
        perms = set(self.permissions)
        if self.admins:
            perms.add(Permission.ADMIN)
        if self.write_collaborators:
            perms.add(Permission.WRITE)
        return sorted(perms, reverse=True)

    def is_actor(self, prctx: Context, user: str) -> bool:
        """Return True if ``user`` satisfies at least one condition."""
        if user in self.users:
            return True
        if any(prctx.is_team_member(team, user) for team in self.teams):
            return True
        if any(prctx.is_org_member(org, user) for org in self.organizations):
            return True

        user_perm = prctx.collaborator_permission(user)
        if user_perm == Permission.NONE:
            return False
        return any(user_perm >= perm for perm in self.get_permissions())