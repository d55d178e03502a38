"""Parsing of approval policies written as nested "and"/"or" lists of rules."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from policybot.approval.evaluate import (
    AndRequirement,
    ApprovalEvaluator,
    OrRequirement,
    RuleRequirement,
)
from policybot.approval.rule import Rule
from policybot.common.result import Evaluator

MAX_DEPTH = 10


class PolicyParseError(ValueError):
    """Raised when an approval policy is malformed."""


def parse_policy(policy: Sequence[Any] | None, rules: Mapping[str, Rule]) -> ApprovalEvaluator:
    """Build an evaluator from a policy list; the top-level list means "and"."""
    if policy is None:
        policy = []
    if isinstance(policy, (str, bytes)) or not isinstance(policy, Sequence):
        raise PolicyParseError(
            f"approval policy must be a list, but got {type(policy).__name__}"
        )
    if not policy:
        return ApprovalEvaluator()
    return ApprovalEvaluator(root=_parse({"and": list(policy)}, rules, 0))


def _parse(node: Any, rules: Mapping[str, Rule], depth: int) -> Evaluator:
    if depth > MAX_DEPTH:
        raise PolicyParseError("reached maximum recursive depth while processing policy")

    if isinstance(node, str):
        rule = rules.get(node)
        if rule is None:
            allowed = " ".join(rules)
            raise PolicyParseError(
                f"policy references undefined rule '{node}', allowed values: [{allowed}]"
            )
        return RuleRequirement(rule)

    if isinstance(node, Mapping):
        ops = list(node)
        if len(ops) != 1:
            raise PolicyParseError(
                f"multiple keys found when one was expected: [{' '.join(map(str, ops))}]"
            )
        op = ops[0]
        values = node[op]
        if not isinstance(values, list):
            raise PolicyParseError(
                f"expected list of subconditions, but got {type(values).__name__}"
            )
        if not values:
            raise PolicyParseError("empty list of subconditions is not allowed")

        subrequirements: list[Evaluator] = []
        for subpolicy in values:
            try:
                subrequirements.append(_parse(subpolicy, rules, depth + 1))
            except PolicyParseError as exc:
                raise PolicyParseError(
                    f"failed to parse subpolicies for '{op}': {exc}"
                ) from exc

        if op == "or":
            return OrRequirement(subrequirements)
        if op == "and":
            return AndRequirement(subrequirements)
        raise PolicyParseError(f"invalid conjunction '{op}', allowed values: [or, and]")

    raise PolicyParseError(
        f"malformed policy, expected string or map, but encountered {type(node).__name__}"
    )