"""A match-only regular expression that can be loaded from YAML or JSON."""

from __future__ import annotations

import json
import re

import yaml


class Regexp:
    """Regular expression supporting only unanchored matching.

    A Regexp created without a pattern matches nothing.
    """

    __slots__ = ("_compiled",)

    def __init__(self, pattern: str | None = None) -> None:
        if pattern is None:
            self._compiled: re.Pattern[str] | None = None
            return
        try:
            self._compiled = re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc

    @classmethod
    def from_compiled(cls, compiled: re.Pattern[str]) -> Regexp:
        """Wrap an already compiled pattern."""
        instance = cls()
        instance._compiled = compiled
        return instance

    @classmethod
    def from_yaml(cls, text: str | bytes) -> Regexp:
        """Build a Regexp from a YAML document holding a single string."""
        return cls._from_loaded(yaml.safe_load(text))

    @classmethod
    def from_json(cls, text: str | bytes) -> Regexp:
        """Build a Regexp from a JSON document holding a single string."""
        return cls._from_loaded(json.loads(text))

    @classmethod
    def _from_loaded(cls, value: object) -> Regexp:
        if not isinstance(value, str):
            raise ValueError(f"expected a string pattern, got {type(value).__name__}")
        return cls(value)

    @property
    def pattern(self) -> str:
        """The source pattern, or an empty string if there is none."""
        return "" if self._compiled is None else self._compiled.pattern

    def matches(self, s: str) -> bool:
        """Return True if the pattern matches anywhere in ``s``."""
        if self._compiled is None:
            return False
        return self._compiled.search(s) is not None

    def __str__(self) -> str:
        return self.pattern

    def __repr__(self) -> str:
        if self._compiled is None:
            return "Regexp()"
        return f"Regexp({self.pattern!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Regexp):
            return NotImplemented
        if self._compiled is None or other._compiled is None:
            return self._compiled is other._compiled
        return (self._compiled.pattern, self._compiled.flags) == (
            other._compiled.pattern,
            other._compiled.flags,
        )

    def __hash__(self) -> int:
        if self._compiled is None:
            return hash(None)
        return hash((self._compiled.pattern, self._compiled.flags))