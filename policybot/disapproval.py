"""Disapproval policy: who may block a pull request and how blocks are revoked."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from policybot.common.actor import Actors
from policybot.common.methods import Candidate, Methods, by_creation_time
from policybot.common.result import EvaluationStatus, Predicate, PredicateResult, Result
from policybot.common.trigger import Trigger
from policybot.pull import Context, ReviewState

log = logging.getLogger(__name__)

DEFAULT_DISAPPROVE_COMMENTS = (":-1:", "👎")
DEFAULT_REVOKE_COMMENTS = (":+1:", "👍")

_POLICY_KEYS = frozenset({"if", "options", "requires"})
_OPTION_KEYS = frozenset({"methods"})
_METHOD_KEYS = frozenset({"disapprove", "revoke"})


def _mapping(data: Any, what: str, keys: frozenset[str]) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping")
    unknown = set(data) - keys
    if unknown:
        raise ValueError(f"unknown {what} keys: {sorted(map(str, unknown))}")
    return data


def _wrap(message: str, exc: Exception) -> RuntimeError:
    error = RuntimeError(f"{message}: {exc}")
    error.__cause__ = exc
    return error


@dataclass
class DisapprovalMethods:
    """Methods that disapprove and methods that revoke a disapproval."""

    disapprove: Methods | None = None
    revoke: Methods | None = None


@dataclass
class Options:
    """Options of a disapproval policy."""

    methods: DisapprovalMethods = field(default_factory=DisapprovalMethods)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Options:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        data = _mapping(data, "options", _OPTION_KEYS)
        methods = _mapping(data.get("methods"), "methods", _METHOD_KEYS)
        disapprove = methods.get("disapprove")
        revoke = methods.get("revoke")
        return cls(
            methods=DisapprovalMethods(
                disapprove=None if disapprove is None else Methods.from_dict(disapprove),
                revoke=None if revoke is None else Methods.from_dict(revoke),
            )
        )

    def get_disapprove_methods(self) -> Methods:
        """Return the disapproval methods, or the defaults, matching change requests."""
        base = self.methods.disapprove
        if base is None:
            base = Methods(comments=list(DEFAULT_DISAPPROVE_COMMENTS), github_review=True)
        return dataclasses.replace(base, github_review_state=ReviewState.CHANGES_REQUESTED)

    def get_revoke_methods(self) -> Methods:
        """Return the revocation methods, or the defaults, matching approvals."""
        base = self.methods.revoke
        if base is None:
            base = Methods(comments=list(DEFAULT_REVOKE_COMMENTS), github_review=True)
        return dataclasses.replace(base, github_review_state=ReviewState.APPROVED)


@dataclass
class Policy:
    """Disapproval policy: predicates that disapprove and users who may disapprove.

    Predicates are attached as Predicate objects; they are not read from
    configuration.
    """

    predicates: list[Predicate] = field(default_factory=list)
    options: Options = field(default_factory=Options)
    requires: Actors = field(default_factory=Actors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Policy:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        data = _mapping(data, "disapproval", _POLICY_KEYS)
        if data.get("if"):
            raise ValueError(
                "disapproval predicates under 'if' must be attached as Predicate objects"
            )
        requires = _mapping(data.get("requires"), "requires", Actors.KEYS)
        return cls(
            options=Options.from_dict(data.get("options")),
            requires=Actors.from_dict(requires),
        )

    def trigger(self) -> Trigger:
        """Return the events after which this policy may evaluate differently."""
        t = Trigger.COMMIT
        if not self.requires.is_empty():
            dm = self.options.get_disapprove_methods()
            rm = self.options.get_revoke_methods()
            if dm.comments or rm.comments:
                t |= Trigger.COMMENT
            if dm.github_review or rm.github_review:
                t |= Trigger.REVIEW
        for predicate in self.predicates:
            t |= predicate.trigger()
        return Trigger(t)

    def evaluate(self, prctx: Context) -> Result:
        """Evaluate the policy; failures are reported in ``Result.error``."""
        res = Result(
            name="disapproval",
            status=EvaluationStatus.SKIPPED,
            requires=self.requires,
        )

        predicate_results: list[PredicateResult] = []
        for predicate in self.predicates:
            try:
                result = predicate.evaluate(prctx)
            except Exception as exc:
                res.error = _wrap("failed to evaluate predicate", exc)
                return res
            predicate_results.append(result)

            if result.satisfied:
                log.debug(
                    "disapproving, predicate of type %s was satisfied",
                    type(predicate).__name__,
                )
                res.status = EvaluationStatus.DISAPPROVED
                res.status_description = (
                    result.description or "A precondition of this rule was satisfied"
                )
                res.predicate_results = [result]
                return res

        res.predicate_results = predicate_results
        if self.requires.is_empty():
            log.debug("no users are allowed to disapprove; skipping")
            res.status_description = "No disapproval policy is specified or the policy is empty"
            return res

        try:
            disapproved, message = self.is_disapproved(prctx)
        except Exception as exc:
            res.error = _wrap("failed to compute disapproval status", exc)
            return res

        res.status_description = message
        res.status = EvaluationStatus.DISAPPROVED if disapproved else EvaluationStatus.SKIPPED
        return res

    def is_disapproved(self, prctx: Context) -> tuple[bool, str]:
        """Return whether the pull request is disapproved and a message saying why."""
        try:
            disapprover = self._last_actor(
                prctx, self.options.get_disapprove_methods(), "disapproval"
            )
        except Exception as exc:
            raise _wrap("failed to get last disapprover", exc) from exc

        if disapprover is None:
            return False, "No disapprovals"

        try:
            revoker = self._last_actor(prctx, self.options.get_revoke_methods(), "revocation")
        except Exception as exc:
            raise _wrap("failed to get last revoker", exc) from exc

        if revoker is None or disapprover.created_at > revoker.created_at:
            return True, f"Disapproved by {disapprover.user}"
        return False, f"Disapproval revoked by {revoker.user}"

    def _last_actor(self, prctx: Context, methods: Methods, kind: str) -> Candidate | None:
        candidates = methods.candidates(prctx)
        log.debug("found %d %s candidates", len(candidates), kind)

        allowed: list[Candidate] = []
        for candidate in candidates:
            try:
                ok = self.requires.is_actor(prctx, candidate.user)
            except Exception as exc:
                raise _wrap("failed to check candidate status", exc) from exc
            if not ok:
                log.debug(
                    "ignoring disapproval/revocation by non-whitelisted user %s",
                    candidate.user,
                )
                continue
            allowed.append(candidate)

        ordered = by_creation_time(allowed)
        return ordered[-1] if ordered else None