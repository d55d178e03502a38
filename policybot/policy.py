"""Complete pull request policies: approval rules combined with disapproval."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import yaml

from policybot import disapproval
from policybot.approval.parse import PolicyParseError
from policybot.approval.parse import parse_policy as parse_approval_policy
from policybot.approval.rule import Rule
from policybot.common.result import EvaluationStatus, Evaluator, Result
from policybot.common.trigger import Trigger
from policybot.pull import Context

log = logging.getLogger(__name__)

_CONFIG_KEYS = frozenset({"policy", "approval_rules"})
_POLICY_KEYS = frozenset({"approval", "disapproval"})
_REMOTE_KEYS = frozenset({"remote", "path", "ref"})


def _mapping(data: Any, what: str, keys: frozenset[str]) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping")
    unknown = set(data) - keys
    if unknown:
        raise ValueError(f"unknown {what} keys: {sorted(map(str, unknown))}")
    return data


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


@dataclass
class RemoteConfig:
    """Points to a policy file kept in another repository.

    ``remote`` has the form ``org/repo``. An empty ``path`` means the default
    policy file location; an empty ``ref`` means the default branch.
    """

    remote: str = ""
    path: str = ""
    ref: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RemoteConfig:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        data = _mapping(data, "remote config", _REMOTE_KEYS)
        return cls(
            remote=_text(data, "remote"),
            path=_text(data, "path"),
            ref=_text(data, "ref"),
        )


@dataclass
class PolicySection:
    """The approval policy tree and the optional disapproval policy."""

    approval: list[Any] = field(default_factory=list)
    disapproval: disapproval.Policy | None = None


@dataclass
class Config:
    """A policy file: the policy section and the approval rules it refers to."""

    policy: PolicySection = field(default_factory=PolicySection)
    approval_rules: list[Rule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Build from a configuration mapping; raise ValueError if it is invalid."""
        data = _mapping(data, "config", _CONFIG_KEYS)
        section = _mapping(data.get("policy"), "policy", _POLICY_KEYS)

        approval = section.get("approval")
        if approval is None:
            approval = []
        if not isinstance(approval, list):
            raise ValueError("'approval' must be a list")

        raw_disapproval = section.get("disapproval")
        disapproval_policy = (
            None if raw_disapproval is None else disapproval.Policy.from_dict(raw_disapproval)
        )

        raw_rules = data.get("approval_rules")
        if raw_rules is None:
            raw_rules = []
        if not isinstance(raw_rules, list):
            raise ValueError("'approval_rules' must be a list")

        return cls(
            policy=PolicySection(approval=list(approval), disapproval=disapproval_policy),
            approval_rules=[Rule.from_dict(r) for r in raw_rules],
        )


def load_config(text: str | bytes) -> Config:
    """Read a policy file from YAML text."""
    return Config.from_dict(yaml.safe_load(text))


@dataclass
class PolicyEvaluator(Evaluator):
    """Combines approval and disapproval; a disapproval always wins."""

    approval: Evaluator
    disapproval: Evaluator

    def trigger(self) -> Trigger:
        return Trigger(self.approval.trigger() | self.disapproval.trigger())

    def evaluate(self, prctx: Context) -> Result:
        disapproval_result = self.disapproval.evaluate(prctx)
        approval_result = self.approval.evaluate(prctx)

        res = Result(name="policy", children=[approval_result, disapproval_result])
        for child in res.children:
            if child.error is not None:
                res.error = child.error

        if res.error is None:
            if disapproval_result.status == EvaluationStatus.DISAPPROVED:
                res.status = EvaluationStatus.DISAPPROVED
                res.status_description = disapproval_result.status_description
            else:
                res.status = approval_result.status
                res.status_description = approval_result.status_description
        return res


def parse_policy(config: Config) -> PolicyEvaluator:
    """Build the evaluator for a policy file; raise PolicyParseError if it is invalid."""
    rules_by_name = {rule.name: rule for rule in config.approval_rules}

    try:
        approval = parse_approval_policy(config.policy.approval, rules_by_name)
    except PolicyParseError as exc:
        raise PolicyParseError(f"failed to parse approval policy: {exc}") from exc

    disapproval_policy = config.policy.disapproval
    if disapproval_policy is None:
        disapproval_policy = disapproval.Policy()

    return PolicyEvaluator(approval=approval, disapproval=disapproval_policy)