"""
Ranked Matchers
===============
Building blocks for the slip field extractors.

A matcher is any callable  text → Matched(value) | NO_MATCH.
Each field owns an ordered list of matchers; first_match() walks the list
and stops at the first Matched.  The order is the confidence ranking
(explicit label > currency/unit marker > bare heuristic).

PatternMatcher only looks at the FIRST occurrence of its pattern.  If that
occurrence fails validation the matcher reports NO_MATCH and the caller
moves on to the next matcher; later occurrences are never consulted.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union


@dataclass(frozen=True)
class Matched:
    value: str


class NoMatch:
    """Singleton 'nothing found' marker."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = NoMatch()

MatchResult = Union[Matched, NoMatch]
Matcher = Callable[[str], MatchResult]


class PatternMatcher:
    """
    Regex-backed matcher.

    Parameters
    ----------
    name : str
        Label used in logs and tests.
    pattern : re.Pattern
        Compiled pattern; `group` selects the captured value.
    transform : callable, optional
        Applied to the captured text before validation (e.g. strip commas).
    validator : callable, optional
        Returns False to reject a structural match.
    """

    def __init__(
        self,
        name: str,
        pattern: re.Pattern,
        group: int = 1,
        transform: Optional[Callable[[str], str]] = None,
        validator: Optional[Callable[[str], bool]] = None,
    ):
        self.name = name
        self.pattern = pattern
        self.group = group
        self.transform = transform
        self.validator = validator

    def __call__(self, text: str) -> MatchResult:
        m = self.pattern.search(text)
        if not m:
            return NO_MATCH
        value = m.group(self.group)
        if value is None:
            return NO_MATCH
        if self.transform is not None:
            value = self.transform(value)
        if self.validator is not None and not self.validator(value):
            return NO_MATCH
        return Matched(value)

    def __repr__(self) -> str:
        return f"PatternMatcher({self.name!r})"


def first_match(matchers: Iterable[Matcher], text: str) -> MatchResult:
    """Evaluate matchers in order; return the first Matched or NO_MATCH."""
    for matcher in matchers:
        result = matcher(text)
        if isinstance(result, Matched):
            return result
    return NO_MATCH


def value_of(result: MatchResult) -> Optional[str]:
    """Matched(v) → v, NO_MATCH → None."""
    return result.value if isinstance(result, Matched) else None


# ─── Validators ───────────────────────────────────────────────────────────────

def number_in_range(low: float, high: float) -> Callable[[str], bool]:
    """Validator: value parses as a float within [low, high]."""
    def _check(value: str) -> bool:
        try:
            number = float(value)
        except ValueError:
            return False
        return low <= number <= high
    return _check


def length_between(low: int, high: int) -> Callable[[str], bool]:
    """Validator: len(value) within [low, high]."""
    def _check(value: str) -> bool:
        return low <= len(value) <= high
    return _check


def strip_commas(value: str) -> str:
    return value.replace(",", "")
