"""Evaluators that combine approval rules with "and" and "or"."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field

from policybot.approval.rule import Rule
from policybot.common.result import EvaluationStatus, Evaluator, Result
from policybot.common.trigger import Trigger
from policybot.pull import Context

log = logging.getLogger(__name__)


@dataclass
class ApprovalEvaluator(Evaluator):
    """Top-level approval evaluator; approves when no policy is defined."""

    root: Evaluator | None = None

    def trigger(self) -> Trigger:
        if self.root is not None:
            return self.root.trigger()
        return Trigger.STATIC

    def evaluate(self, prctx: Context) -> Result:
        if self.root is not None:
            res = dataclasses.replace(self.root.evaluate(prctx))
        else:
            log.debug("No approval policy defined; skipping")
            res = Result(
                status=EvaluationStatus.APPROVED,
                status_description="No approval policy defined",
            )
        res.name = "approval"
        return res


@dataclass
class RuleRequirement(Evaluator):
    """Requirement satisfied by a single approval rule."""

    rule: Rule

    def trigger(self) -> Trigger:
        return self.rule.trigger()

    def evaluate(self, prctx: Context) -> Result:
        result = self.rule.evaluate(prctx)
        if result.error is None:
            log.debug(
                "rule %s evaluation resulted in %s:%r",
                self.rule.name,
                result.status,
                result.status_description,
            )
        return result


def _combined_trigger(requirements: list[Evaluator]) -> Trigger:
    t = Trigger.STATIC
    for child in requirements:
        t |= child.trigger()
    return Trigger(t)


def _evaluate_children(
    requirements: list[Evaluator], prctx: Context
) -> tuple[list[Result], Exception | None, int, int]:
    children = [req.evaluate(prctx) for req in requirements]
    error: Exception | None = None
    approved = pending = 0
    for child in children:
        if child.error is not None:
            error = child.error
            continue
        if child.status == EvaluationStatus.APPROVED:
            approved += 1
        elif child.status == EvaluationStatus.PENDING:
            pending += 1
    return children, error, approved, pending


@dataclass
class OrRequirement(Evaluator):
    """Approved when any child requirement is approved."""

    requirements: list[Evaluator] = field(default_factory=list)

    def trigger(self) -> Trigger:
        return _combined_trigger(self.requirements)

    def evaluate(self, prctx: Context) -> Result:
        children, error, approved, pending = _evaluate_children(self.requirements, prctx)

        status = EvaluationStatus.SKIPPED
        description = "All of the rules are skipped"
        if approved > 0:
            status = EvaluationStatus.APPROVED
            description = "One or more rules approved"
            error = None
        elif pending > 0:
            status = EvaluationStatus.PENDING
            description = "None of the rules are satisfied"
            error = None

        return Result(
            name="or",
            status=status,
            status_description=description,
            error=error,
            children=children,
        )


@dataclass
class AndRequirement(Evaluator):
    """Approved when every child requirement that is not skipped is approved."""

    requirements: list[Evaluator] = field(default_factory=list)

    def trigger(self) -> Trigger:
        return _combined_trigger(self.requirements)

    def evaluate(self, prctx: Context) -> Result:
        children, error, approved, pending = _evaluate_children(self.requirements, prctx)

        status = EvaluationStatus.SKIPPED
        description = "All of the rules are skipped"
        if approved > 0 and pending == 0:
            status = EvaluationStatus.APPROVED
            description = "All rules are approved"
        elif pending > 0:
            status = EvaluationStatus.PENDING
            description = f"{approved}/{approved + pending} rules approved"

        return Result(
            name="and",
            status=status,
            status_description=description,
            error=error,
            children=children,
        )