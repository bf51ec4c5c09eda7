# apiexpect/matchers.py
"""
Matchers: self-validating assertions used inside expected bodies.

Any value placed in an expected pattern that inherits from Matcher is
invoked in place of the default equality check during partial matching.
Custom matchers subclass Matcher and implement match().
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Optional, Tuple


class Matcher(ABC):
    """Asserts itself against an actual decoded value."""

    @abstractmethod
    def match(self, actual: Any) -> Optional[str]:
        """Return a violation description, or None when actual is acceptable."""
        pass


# ==================== String matchers ====================

class Contains(Matcher):
    """Actual string contains the given substring."""

    def __init__(self, substring: str):
        self.substring = substring

    def match(self, actual: Any) -> Optional[str]:
        if not isinstance(actual, str):
            return f"expected string, got {type(actual).__name__}"
        if self.substring not in actual:
            return f"{actual!r} does not contain {self.substring!r}"
        return None

    def __repr__(self) -> str:
        return f"Contains({self.substring!r})"


class Matches(Matcher):
    """Actual string matches the given regular expression (search semantics)."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    def match(self, actual: Any) -> Optional[str]:
        if not isinstance(actual, str):
            return f"expected string, got {type(actual).__name__}"
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            return f"invalid regex {self.pattern!r}: {e}"
        if not compiled.search(actual):
            return f"{actual!r} does not match regex {self.pattern!r}"
        return None

    def __repr__(self) -> str:
        return f"Matches({self.pattern!r})"


class NotEmpty(Matcher):
    """Actual value is present and not a zero value ("", 0, false, [], {})."""

    def match(self, actual: Any) -> Optional[str]:
        if actual is None:
            return "expected non-empty value, got null"
        if isinstance(actual, (str, list, dict, tuple)) and len(actual) == 0:
            return "expected non-empty value, got zero value"
        if isinstance(actual, (bool, int, float)) and not actual:
            return "expected non-empty value, got zero value"
        return None

    def __repr__(self) -> str:
        return "NotEmpty()"


# ==================== Numeric matchers ====================

def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


class _Compare(Matcher):
    symbol = ""

    def __init__(self, bound: float):
        self.bound = bound

    @abstractmethod
    def _holds(self, actual: float) -> bool:
        pass

    def match(self, actual: Any) -> Optional[str]:
        number = _to_number(actual)
        if number is None:
            return f"expected number, got {type(actual).__name__}"
        if not self._holds(number):
            return f"expected {self.symbol} {self.bound}, got {actual}"
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.bound})"


class Gt(_Compare):
    """Actual > bound."""
    symbol = ">"

    def _holds(self, actual: float) -> bool:
        return actual > self.bound


class Gte(_Compare):
    """Actual >= bound."""
    symbol = ">="

    def _holds(self, actual: float) -> bool:
        return actual >= self.bound


class Lt(_Compare):
    """Actual < bound."""
    symbol = "<"

    def _holds(self, actual: float) -> bool:
        return actual < self.bound


class Lte(_Compare):
    """Actual <= bound."""
    symbol = "<="

    def _holds(self, actual: float) -> bool:
        return actual <= self.bound


# ==================== Collection matchers ====================

class Length(Matcher):
    """Actual list, mapping or string has exactly n elements."""

    def __init__(self, n: int):
        self.n = n

    def match(self, actual: Any) -> Optional[str]:
        if not isinstance(actual, (list, tuple, dict, str)):
            return f"expected list/string/map, got {type(actual).__name__}"
        if len(actual) != self.n:
            return f"expected length {self.n}, got {len(actual)}"
        return None

    def __repr__(self) -> str:
        return f"Length({self.n})"


# ==================== Status code matchers ====================

class AnyOf(Matcher):
    """Actual status code (or value) is one of the given codes."""

    def __init__(self, *codes: int):
        if len(codes) == 1 and isinstance(codes[0], Iterable) and not isinstance(codes[0], (str, bytes)):
            codes = tuple(codes[0])
        self.codes: Tuple[int, ...] = tuple(codes)

    def __len__(self) -> int:
        return len(self.codes)

    def match_status(self, actual: int) -> Optional[str]:
        if actual in self.codes:
            return None
        return f"expected status one of {list(self.codes)}, got {actual}"

    def match(self, actual: Any) -> Optional[str]:
        if isinstance(actual, bool) or actual not in self.codes:
            return f"expected one of {list(self.codes)}, got {actual!r}"
        return None

    def __repr__(self) -> str:
        return f"AnyOf({', '.join(str(c) for c in self.codes)})"
