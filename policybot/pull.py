"""Pull request data model and an in-memory pull request context."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
"""Timestamp used where an event time is unknown; compares before any real time."""


class Permission(enum.IntEnum):
    """Repository collaborator permission, ordered from least to most privileged."""

    NONE = 0
    READ = 1
    TRIAGE = 2
    WRITE = 3
    MAINTAIN = 4
    ADMIN = 5

    def __str__(self) -> str:
        return self.name.lower()

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)

    @classmethod
    def parse(cls, value: str | Permission) -> Permission:
        """Return the permission named by ``value``; raise ValueError if unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if str(member) == value:
                    return member
        raise ValueError(f"invalid permission: {value}")


class ReviewState(str, enum.Enum):
    """State of a pull request review."""

    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMMENTED = "commented"
    DISMISSED = "dismissed"
    PENDING = "pending"

    def __str__(self) -> str:
        return self.value


@dataclass(kw_only=True)
class Comment:
    """A comment on a pull request."""

    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    author: str = ""
    body: str = ""


@dataclass(kw_only=True)
class Review:
    """A review submitted on a pull request."""

    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    author: str = ""
    state: ReviewState = ReviewState.COMMENTED
    body: str = ""


@dataclass(kw_only=True)
class Commit:
    """A commit that belongs to a pull request."""

    sha: str = ""
    parents: list[str] = field(default_factory=list)
    committed_via_web: bool = False
    author: str = ""
    committer: str = ""
    pushed_at: datetime | None = None

    def users(self) -> list[str]:
        """Return the known author and committer of the commit."""
        return [user for user in (self.author, self.committer) if user]


@dataclass(kw_only=True)
class Context:
    """Pull request information held in memory.

    Team and organization memberships map a user to the teams or
    organizations they belong to; collaborators map a user to a permission.
    """

    author_login: str = ""
    commit_list: list[Commit] = field(default_factory=list)
    comment_list: list[Comment] = field(default_factory=list)
    review_list: list[Review] = field(default_factory=list)
    team_memberships: dict[str, list[str]] = field(default_factory=dict)
    org_memberships: dict[str, list[str]] = field(default_factory=dict)
    collaborators: dict[str, Permission] = field(default_factory=dict)

    def author(self) -> str:
        """Return the login of the user who opened the pull request."""
        return self.author_login

    def commits(self) -> list[Commit]:
        """Return the commits of the pull request."""
        return list(self.commit_list)

    def comments(self) -> list[Comment]:
        """Return the comments on the pull request."""
        return list(self.comment_list)

    def reviews(self) -> list[Review]:
        """Return the reviews on the pull request."""
        return list(self.review_list)

    def is_team_member(self, team: str, user: str) -> bool:
        """Return True if ``user`` belongs to ``team`` (given as ``org/team``)."""
        return team in self.team_memberships.get(user, ())

    def is_org_member(self, org: str, user: str) -> bool:
        """Return True if ``user`` belongs to the organization ``org``."""
        return org in self.org_memberships.get(user, ())

    def collaborator_permission(self, user: str) -> Permission:
        """Return the permission ``user`` holds on the repository."""
        return self.collaborators.get(user, Permission.NONE)