"""Ways in which users approve or disapprove, and the candidates they yield."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from policybot.common.regexp import Regexp
from policybot.pull import ZERO_TIME, Context, ReviewState

_KEYS = frozenset(
    {"comments", "comment_patterns", "github_review", "github_review_comment_patterns"}
)


@dataclass
class Candidate:
    """A user who took an action matching some methods, and when."""

    user: str
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME


def by_creation_time(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Return the candidates in a stable order of increasing creation time."""
    return sorted(candidates, key=lambda c: c.created_at)


def _deduplicate(candidates: Iterable[Candidate]) -> list[Candidate]:
    latest: dict[str, Candidate] = {}
    for candidate in candidates:
        previous = latest.get(candidate.user)
        if previous is None or previous.created_at < candidate.created_at:
            latest[candidate.user] = candidate
    return list(latest.values())


def _patterns(data: Mapping[str, Any], key: str) -> list[Regexp]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return [Regexp(p) for p in value]


@dataclass
class Methods:
    """Comments, comment patterns and reviews that count as an action.

    ``github_review_state`` is the state a review must have to count; it is
    not read from configuration and is set by the application.
    """

    comments: list[str] = field(default_factory=list)
    comment_patterns: list[Regexp] = field(default_factory=list)
    github_review: bool = False
    github_review_comment_patterns: list[Regexp] = field(default_factory=list)
    github_review_state: ReviewState | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Methods:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("methods must be a mapping")
        unknown = set(data) - _KEYS
        if unknown:
            raise ValueError(f"unknown methods keys: {sorted(map(str, unknown))}")

        comments = data.get("comments") or []
        if not isinstance(comments, list) or not all(isinstance(c, str) for c in comments):
            raise ValueError("'comments' must be a list of strings")
        github_review = data.get("github_review", False)
        if github_review is None:
            github_review = False
        if not isinstance(github_review, bool):
            raise ValueError("'github_review' must be a boolean")

        return cls(
            comments=list(comments),
            comment_patterns=_patterns(data, "comment_patterns"),
            github_review=github_review,
            github_review_comment_patterns=_patterns(data, "github_review_comment_patterns"),
        )

    def candidates(self, prctx: Context) -> list[Candidate]:
        """Return users whose actions match these methods.

        Each user appears once, with their most recent matching action.
        The order of the result is unspecified.
        """
        found: list[Candidate] = []

        if self.comments or self.comment_patterns:
            found.extend(
                Candidate(c.author, c.created_at, c.updated_at)
                for c in prctx.comments()
                if self.comment_matches(c.body)
            )

        if self.github_review or self.github_review_comment_patterns:
            for review in prctx.reviews():
                if review.state != self.github_review_state:
                    continue
                if self.github_review_comment_patterns and not self._review_comment_matches(
                    review.body
                ):
                    continue
                found.append(Candidate(review.author, review.created_at, review.updated_at))

        return _deduplicate(found)

    def comment_matches(self, comment_body: str) -> bool:
        """Return True if the comment contains a phrase or matches a pattern."""
        return any(phrase in comment_body for phrase in self.comments) or any(
            pattern.matches(comment_body) for pattern in self.comment_patterns
        )

    def _review_comment_matches(self, body: str) -> bool:
        return any(pattern.matches(body) for pattern in self.github_review_comment_patterns)