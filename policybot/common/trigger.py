"""Flags naming the pull request events that may change an evaluation."""

from __future__ import annotations

import enum


class Trigger(enum.IntFlag):
    """Set of GitHub event kinds that could change a predicate or evaluation."""

    STATIC = 0
    COMMIT = 1
    COMMENT = 2
    REVIEW = 4
    LABEL = 8
    STATUS = 16
    PULL_REQUEST = 32
    ALL = 63

    def matches(self, flags: Trigger) -> bool:
        """Return True if ``flags`` shares any flag with this trigger."""
        return (int(self) & int(flags)) != 0

    def __str__(self) -> str:
        if int(self) == 0:
            return "Trigger(0x0=Static)"
        labels = [label for flag, label in _LABELS if self.matches(flag)]
        suffix = "=" + "|".join(labels) if labels else ""
        return f"Trigger(0x{int(self):x}{suffix})"

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_LABELS = (
    (Trigger.COMMIT, "Commit"),
    (Trigger.COMMENT, "Comment"),
    (Trigger.REVIEW, "Review"),
    (Trigger.LABEL, "Label"),
    (Trigger.STATUS, "Status"),
    (Trigger.PULL_REQUEST, "PullRequest"),
)