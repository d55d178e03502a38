"""Evaluation results and the interfaces of evaluators and predicates."""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass, field

from policybot.common.actor import Actors
from policybot.common.trigger import Trigger
from policybot.pull import Context, Permission


class EvaluationStatus(enum.IntEnum):
    """Outcome of an evaluation; the values give the ordering of outcomes."""

    SKIPPED = 0
    PENDING = 1
    APPROVED = 2
    DISAPPROVED = 3

    def __str__(self) -> str:
        return self.name.lower()

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


class RequestMode(str, enum.Enum):
    """How reviewers are picked when review requests are sent."""

    ALL_USERS = "all-users"
    RANDOM_USERS = "random-users"
    TEAMS = "teams"

    def __str__(self) -> str:
        return self.value


@dataclass(kw_only=True)
class ReviewRequestRule:
    """Who should be asked to review a pull request and how many are needed."""

    teams: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)
    permissions: list[Permission] = field(default_factory=list)
    required_count: int = 0
    mode: RequestMode = RequestMode.RANDOM_USERS


@dataclass(kw_only=True)
class PredicateResult:
    """Outcome of a single predicate, with phrases that describe it.

    ``value_phrase`` describes the values and must be plural;
    ``condition_phrase`` describes the condition. When ``conditions_map``
    is non-empty it is used instead of ``condition_values``.
    """

    satisfied: bool = False
    description: str = ""
    value_phrase: str = ""
    values: list[str] = field(default_factory=list)
    condition_phrase: str = ""
    conditions_map: dict[str, list[str]] = field(default_factory=dict)
    condition_values: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class Result:
    """Outcome of evaluating a rule, a policy or a combination of them."""

    name: str = ""
    description: str = ""
    status_description: str = ""
    status: EvaluationStatus = EvaluationStatus.SKIPPED
    error: Exception | None = None
    predicate_results: list[PredicateResult] = field(default_factory=list)
    requires: Actors = field(default_factory=Actors)
    review_request_rule: ReviewRequestRule | None = None
    children: list[Result] = field(default_factory=list)


class Evaluator(abc.ABC):
    """Something that evaluates a pull request to a Result."""

    @abc.abstractmethod
    def trigger(self) -> Trigger:
        """Return the events after which the evaluation may change."""

    @abc.abstractmethod
    def evaluate(self, prctx: Context) -> Result:
        """Evaluate the pull request; failures are reported in ``Result.error``."""


class Predicate(abc.ABC):
    """A condition on a pull request."""

    @abc.abstractmethod
    def trigger(self) -> Trigger:
        """Return the events after which the predicate may change."""

    @abc.abstractmethod
    def evaluate(self, prctx: Context) -> PredicateResult:
        """Evaluate the predicate; raise if it cannot be evaluated."""