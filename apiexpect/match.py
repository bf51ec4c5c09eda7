# apiexpect/match.py
"""
Partial (subset) matching of decoded JSON values, body expectations and
field extraction into the variable store.

Matching rules:
- a Matcher in the expected pattern is delegated to and wins over everything
- mappings match when every expected key is present and matches recursively
  (extra keys in the actual value are ignored)
- sequences match when every expected element matches some actual element,
  regardless of order; an empty expected sequence matches any sequence
- everything else is compared for equality

The first violation aborts the comparison and is reported with its path.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from apiexpect.matchers import Matcher
from apiexpect.vars import VarStore

logger = logging.getLogger(__name__)

MISSING = object()
_BRACKET_RE = re.compile(r"\[(\d+)\]")


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def _scalar_equal(actual: Any, expected: Any) -> bool:
    # JSON numbers compare by value, but booleans never equal numbers
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def partial_match(actual: Any, expected: Any) -> Optional[str]:
    """Check that actual satisfies expected; return the first violation or None."""
    if isinstance(expected, Matcher):
        return expected.match(actual)

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return f"expected object, got {_type_name(actual)}"
        for key, exp_val in expected.items():
            act_val = actual.get(key, MISSING)
            if act_val is MISSING:
                return f"missing field {key!r}"
            violation = partial_match(act_val, exp_val)
            if violation:
                return f"field {key!r}: {violation}"
        return None

    if isinstance(expected, (list, tuple)):
        if not isinstance(actual, (list, tuple)):
            return f"expected array, got {_type_name(actual)}"
        for i, exp_elem in enumerate(expected):
            if not any(partial_match(act_elem, exp_elem) is None for act_elem in actual):
                return f"array element [{i}] not found in actual"
        return None

    if not _scalar_equal(actual, expected):
        return f"expected {expected!r}, got {actual!r}"
    return None


def _as_json_object(raw: Union[bytes, str, None]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except (ValueError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _to_text(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


class ExpectBody:
    """
    Expected response body.

    pattern may be:
      - bytes or str: exact body, or a partial pattern when it parses as a JSON object
      - a mapping: a structured partial pattern, which may hold Matcher instances
      - any other JSON-serializable value: serialized as compact JSON and compared exactly
    """

    def __init__(self, pattern: Any):
        self.raw: Optional[str] = None
        self.structured: Optional[Mapping[str, Any]] = None

        if isinstance(pattern, (bytes, str)):
            self.raw = _to_text(pattern)
            self.structured = _as_json_object(self.raw)
        elif isinstance(pattern, Mapping):
            self.structured = pattern
        else:
            self.raw = json.dumps(pattern, separators=(",", ":"))

    def validate(self, actual: Union[bytes, str, None]) -> Optional[str]:
        """Return the first violation of actual against this body, or None."""
        actual = actual if actual is not None else b""
        if self.structured is not None:
            actual_obj = _as_json_object(actual)
            if actual_obj is not None:
                return partial_match(actual_obj, self.structured)
        if self.raw is None or _to_text(actual) != self.raw:
            return f"unexpected body: {_to_text(actual)}"
        return None

    def __repr__(self) -> str:
        return f"ExpectBody({self.structured if self.structured is not None else self.raw!r})"


# ==================== Field extraction ====================

@dataclass(frozen=True)
class SaveEntry:
    """Extract `field` (dotted path, e.g. "items.0.id") from a JSON body into variable `as_`."""
    field: str
    as_: str


def extract_path(obj: Any, path: str) -> Any:
    """
    Resolve a dotted path against a decoded JSON value.

    Segments address mapping keys, or integer indexes when the current node
    is a list. "items[0].id" is accepted as "items.0.id". Returns the
    MISSING sentinel when the path does not resolve.
    """
    normalized = _BRACKET_RE.sub(r".\1", path)
    parts = [p for p in normalized.split(".") if p]
    cur = obj

    for p in parts:
        if isinstance(cur, list):
            if not p.isdigit():
                return MISSING
            idx = int(p)
            if idx >= len(cur):
                return MISSING
            cur = cur[idx]
        elif isinstance(cur, dict):
            if p not in cur:
                return MISSING
            cur = cur[p]
        else:
            return MISSING

    return cur


def save_from_json(data: Union[bytes, str, None], entries: List[SaveEntry], vars: VarStore) -> None:
    """Extract every entry from a JSON body into vars; unresolved paths save nothing."""
    if not entries or not data:
        return
    try:
        decoded = json.loads(data)
    except (ValueError, TypeError):
        logger.debug("save skipped: body is not JSON")
        return

    for entry in entries:
        value = extract_path(decoded, entry.field)
        if value is MISSING:
            logger.debug(f"save skipped: {entry.field!r} not found in body")
            continue
        vars[entry.as_] = value
