# apiexpect/vars.py
"""Per-scenario variable store with {name} placeholder interpolation."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


def stringify(value: Any) -> str:
    """Render a decoded JSON value as placeholder text, using JSON spelling for literals and collections."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


class VarStore(dict):
    """
    Variables set by one step and consumed by later steps.

    Keys are variable names; values are decoded JSON values. Unknown
    placeholders are left untouched.
    """

    def interpolate(self, s: Optional[str]) -> str:
        """Replace every {key} placeholder in s with its stringified value."""
        if not s:
            return s or ""
        for key, val in self.items():
            token = "{" + key + "}"
            if token in s:
                s = s.replace(token, stringify(val))
        return s

    def interpolate_bytes(self, b: Optional[bytes]) -> bytes:
        """Replace placeholders at the byte level; bodies need not be valid UTF-8."""
        if not b:
            return b or b""
        for key, val in self.items():
            token = ("{" + key + "}").encode("utf-8")
            if token in b:
                b = b.replace(token, stringify(val).encode("utf-8"))
        return b

    def interpolate_map(self, m: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Interpolate every value of a string map (headers, query, metadata)."""
        return {k: self.interpolate(str(v)) for k, v in (m or {}).items()}

