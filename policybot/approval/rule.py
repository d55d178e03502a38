"""Approval rules: who must approve a pull request, and how approvals count."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from policybot.common.actor import Actors
from policybot.common.methods import Candidate, Methods, by_creation_time
from policybot.common.result import (
    EvaluationStatus,
    Predicate,
    PredicateResult,
    RequestMode,
    Result,
    ReviewRequestRule,
)
from policybot.common.trigger import Trigger
from policybot.pull import Commit, Context, ReviewState

log = logging.getLogger(__name__)

DEFAULT_APPROVAL_COMMENTS = (":+1:", "👍")

_OPTION_KEYS = frozenset(
    {
        "allow_author",
        "allow_contributor",
        "invalidate_on_push",
        "ignore_edited_comments",
        "ignore_update_merges",
        "ignore_commits_by",
        "request_review",
        "methods",
    }
)
_REQUEST_REVIEW_KEYS = frozenset({"enabled", "mode"})
_REQUIRES_KEYS = frozenset({"count"}) | Actors.KEYS
_RULE_KEYS = frozenset({"name", "description", "if", "options", "requires"})


def _mapping(data: Any, what: str, keys: frozenset[str]) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping")
    unknown = set(data) - keys
    if unknown:
        raise ValueError(f"unknown {what} keys: {sorted(map(str, unknown))}")
    return data


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean")
    return value


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _wrap(message: str, exc: Exception) -> RuntimeError:
    error = RuntimeError(f"{message}: {exc}")
    error.__cause__ = exc
    return error


@dataclass
class RequestReview:
    """Whether and how reviewers are requested while a rule is pending."""

    enabled: bool = False
    mode: RequestMode | None = None


def _request_review_from_dict(data: Any) -> RequestReview:
    data = _mapping(data, "request_review", _REQUEST_REVIEW_KEYS)
    mode = data.get("mode")
    return RequestReview(
        enabled=_flag(data, "enabled"),
        mode=RequestMode(mode) if mode else None,
    )


@dataclass
class Options:
    """Options that change which approvals count."""

    allow_author: bool = False
    allow_contributor: bool = False
    invalidate_on_push: bool = False
    ignore_edited_comments: bool = False
    ignore_update_merges: bool = False
    ignore_commits_by: Actors = field(default_factory=Actors)
    request_review: RequestReview = field(default_factory=RequestReview)
    methods: Methods | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Options:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        data = _mapping(data, "options", _OPTION_KEYS)
        ignore_by = data.get("ignore_commits_by")
        _mapping(ignore_by, "ignore_commits_by", Actors.KEYS)
        methods = data.get("methods")
        return cls(
            allow_author=_flag(data, "allow_author"),
            allow_contributor=_flag(data, "allow_contributor"),
            invalidate_on_push=_flag(data, "invalidate_on_push"),
            ignore_edited_comments=_flag(data, "ignore_edited_comments"),
            ignore_update_merges=_flag(data, "ignore_update_merges"),
            ignore_commits_by=Actors.from_dict(ignore_by),
            request_review=_request_review_from_dict(data.get("request_review")),
            methods=None if methods is None else Methods.from_dict(methods),
        )

    def get_methods(self) -> Methods:
        """Return the approval methods, or the defaults, matching approving reviews."""
        if self.methods is None:
            base = Methods(comments=list(DEFAULT_APPROVAL_COMMENTS), github_review=True)
        else:
            base = self.methods
        return dataclasses.replace(base, github_review_state=ReviewState.APPROVED)


@dataclass
class Requires:
    """How many approvals are needed and from whom."""

    count: int = 0
    actors: Actors = field(default_factory=Actors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Requires:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        data = _mapping(data, "requires", _REQUIRES_KEYS)
        count = data.get("count", 0)
        if count is None:
            count = 0
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError("'count' must be an integer")
        return cls(count=count, actors=Actors.from_dict(data))


@dataclass
class Rule:
    """A named approval rule with preconditions, options and requirements.

    Predicates are attached as Predicate objects; they are not read from
    configuration.
    """

    name: str = ""
    description: str = ""
    predicates: list[Predicate] = field(default_factory=list)
    options: Options = field(default_factory=Options)
    requires: Requires = field(default_factory=Requires)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rule:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        if not isinstance(data, Mapping):
            raise ValueError("rule must be a mapping")
        data = _mapping(data, "rule", _RULE_KEYS)
        name = _text(data, "name")
        if data.get("if"):
            raise ValueError(
                f"rule '{name}': predicates under 'if' must be attached as Predicate objects"
            )
        return cls(
            name=name,
            description=_text(data, "description"),
            options=Options.from_dict(data.get("options")),
            requires=Requires.from_dict(data.get("requires")),
        )

    def trigger(self) -> Trigger:
        """Return the events after which this rule may evaluate differently."""
        t = Trigger.COMMIT
        if self.requires.count > 0:
            methods = self.options.get_methods()
            if methods.comments or methods.comment_patterns:
                t |= Trigger.COMMENT
            if methods.github_review or methods.github_review_comment_patterns:
                t |= Trigger.REVIEW
        for predicate in self.predicates:
            t |= predicate.trigger()
        return Trigger(t)

    def evaluate(self, prctx: Context) -> Result:
        """Evaluate the rule; failures are reported in ``Result.error``."""
        res = Result(
            name=self.name,
            description=self.description,
            status=EvaluationStatus.SKIPPED,
            requires=self.requires.actors,
        )

        predicate_results: list[PredicateResult] = []
        for predicate in self.predicates:
            try:
                result = predicate.evaluate(prctx)
            except Exception as exc:
                res.error = _wrap("failed to evaluate predicate", exc)
                return res
            predicate_results.append(result)

            if not result.satisfied:
                log.debug(
                    "skipping rule, predicate of type %s was not satisfied",
                    type(predicate).__name__,
                )
                res.status_description = (
                    result.description or "A precondition of this rule was not satisfied"
                )
                res.predicate_results = [result]
                return res

        res.predicate_results = predicate_results
        try:
            approved, message = self.is_approved(prctx)
        except Exception as exc:
            res.error = _wrap("failed to compute approval status", exc)
            return res

        res.status_description = message
        if approved:
            res.status = EvaluationStatus.APPROVED
        else:
            res.status = EvaluationStatus.PENDING
            res.review_request_rule = self._review_request_rule()
        return res

    def _review_request_rule(self) -> ReviewRequestRule | None:
        if not self.options.request_review.enabled:
            return None
        actors = self.requires.actors
        return ReviewRequestRule(
            users=list(actors.users),
            teams=list(actors.teams),
            organizations=list(actors.organizations),
            permissions=actors.get_permissions(),
            required_count=self.requires.count,
            mode=self.options.request_review.mode or RequestMode.RANDOM_USERS,
        )

    def is_approved(self, prctx: Context) -> tuple[bool, str]:
        """Return whether the rule is approved and a message describing why."""
        if self.requires.count <= 0:
            log.debug("rule requires no approvals")
            return True, "No approval required"

        candidates = self._filtered_candidates(prctx)
        log.debug("found %d candidates for approval", len(candidates))

        banned: set[str] = set()
        author = prctx.author()
        if not self.options.allow_author and not self.options.allow_contributor:
            banned.add(author)

        if not self.options.allow_contributor:
            for commit in self._filtered_commits(prctx):
                banned.update(u for u in commit.users() if u != author)

        approvers: list[str] = []
        for candidate in candidates:
            if candidate.user in banned:
                log.debug("rejecting approval by banned user %s", candidate.user)
                continue
            try:
                is_approver = self.requires.actors.is_actor(prctx, candidate.user)
            except Exception as exc:
                raise _wrap("failed to check candidate status", exc) from exc
            if not is_approver:
                log.debug("ignoring approval by non-whitelisted user %s", candidate.user)
                continue
            approvers.append(candidate.user)

        required = self.requires.count
        log.debug("found %d/%d required approvers", len(approvers), required)

        if required - len(approvers) <= 0:
            return True, f"Approved by {', '.join(approvers)}"

        if candidates and not approvers:
            return False, (
                f"{len(approvers)}/{required} approvals required. "
                f"Ignored {_number_of_approvals(len(candidates))} from disqualified users"
            )

        return False, f"{len(approvers)}/{required} approvals required"

    def _filtered_candidates(self, prctx: Context) -> list[Candidate]:
        try:
            candidates = self.options.get_methods().candidates(prctx)
        except Exception as exc:
            raise _wrap("failed to get approval candidates", exc) from exc

        candidates = by_creation_time(candidates)
        if self.options.ignore_edited_comments:
            candidates = self._filter_edited(candidates)
        if self.options.invalidate_on_push:
            candidates = self._filter_invalidated(prctx, candidates)
        return candidates

    def _filter_edited(self, candidates: Sequence[Candidate]) -> list[Candidate]:
        allowed = [c for c in candidates if c.updated_at == c.created_at]
        log.debug("discarded %d candidates with edited comments", len(candidates) - len(allowed))
        return allowed

    def _filter_invalidated(
        self, prctx: Context, candidates: list[Candidate]
    ) -> list[Candidate]:
        commits = self._filtered_commits(prctx)
        if not commits:
            return candidates

        last = _find_last_pushed(commits)
        if last is None or last.pushed_at is None:
            raise RuntimeError("no commit contained a push date")

        allowed = [c for c in candidates if c.created_at > last.pushed_at]
        log.debug(
            "discarded %d candidates invalidated by push of %s at %s",
            len(candidates) - len(allowed),
            last.sha,
            last.pushed_at.isoformat(),
        )
        return allowed

    def _filtered_commits(self, prctx: Context) -> list[Commit]:
        try:
            commits = prctx.commits()
        except Exception as exc:
            raise _wrap("failed to list commits", exc) from exc

        ignore_updates = self.options.ignore_update_merges
        ignore_by = self.options.ignore_commits_by
        ignore_commits = not ignore_by.is_empty()
        if not ignore_updates and not ignore_commits:
            return commits

        return [
            c
            for c in commits
            if not (ignore_updates and _is_update_merge(commits, c))
            and not (ignore_commits and _is_ignored_commit(prctx, ignore_by, c))
        ]


def _is_update_merge(commits: Sequence[Commit], commit: Commit) -> bool:
    # a simple merge made through the UI or API whose first parent is on the
    # head branch and whose second parent is already in the base branch
    if len(commit.parents) != 2 or not commit.committed_via_web:
        return False
    shas = {c.sha for c in commits}
    return commit.parents[0] in shas and commit.parents[1] not in shas


def _is_ignored_commit(prctx: Context, actors: Actors, commit: Commit) -> bool:
    users = commit.users()
    return bool(users) and all(actors.is_actor(prctx, u) for u in users)


def _find_last_pushed(commits: Sequence[Commit]) -> Commit | None:
    pushed = [c for c in commits if c.pushed_at is not None]
    last: Commit | None = None
    for commit in pushed:
        if last is None or commit.pushed_at > last.pushed_at:
            last = commit
    return last


def _number_of_approvals(count: int) -> str:
    return "1 approval" if count == 1 else f"{count} approvals"