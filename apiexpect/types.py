# apiexpect/types.py
"""
Shared types, enums, failure records and exceptions for the expect engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ConnectionKind(str, Enum):
    """Wire protocol spoken by a connection."""
    HTTP = "http"
    GRPC = "grpc"


class FailureScope(str, Enum):
    """Where in a run a failure was recorded."""
    SUITE = "suite"
    SCENARIO = "scenario"
    HOOK = "hook"
    STEP = "step"


@dataclass
class FailureRecord:
    """One recorded failure, tagged with the scenario and step it came from."""
    scope: FailureScope
    scenario: str
    label: str
    cause: BaseException

    def __str__(self) -> str:
        return f"scenario {self.scenario!r}: {self.scope.value} {self.label}: {self.cause}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "scope": self.scope.value,
            "scenario": self.scenario,
            "label": self.label,
            "error": str(self.cause),
            "error_type": type(self.cause).__name__,
        }


@dataclass
class ScenarioResult:
    """Outcome of a single scenario run."""
    name: str
    failures: List[FailureRecord] = field(default_factory=list)
    steps_run: int = 0
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": "PASS" if self.ok else "FAIL",
            "steps_run": self.steps_run,
            "duration_s": self.duration_s,
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass
class SuiteResult:
    """Aggregated outcome of a suite run."""
    scenarios: List[ScenarioResult] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def failures(self) -> List[FailureRecord]:
        return [f for sc in self.scenarios for f in sc.failures]

    @property
    def ok(self) -> bool:
        return not self.failures

    def error(self) -> Optional["SuiteFailure"]:
        """Return the joined failure, or None when every scenario passed."""
        if self.ok:
            return None
        return SuiteFailure(self.failures)

    def raise_for_failures(self) -> None:
        err = self.error()
        if err is not None:
            raise err

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        failed = sum(1 for sc in self.scenarios if not sc.ok)
        return {
            "total": len(self.scenarios),
            "passed": len(self.scenarios) - failed,
            "failed": failed,
            "duration_s": self.duration_s,
            "scenarios": [sc.to_dict() for sc in self.scenarios],
        }

    def to_json(self) -> str:
        """Export to JSON string."""
        import json
        return json.dumps(self.to_dict(), indent=2)


class ExpectError(Exception):
    """Base exception for expect engine errors."""
    pass


class ConnectionEstablishError(ExpectError):
    """Raised when a connection cannot be established."""
    pass


class ProtocolResolutionError(ExpectError):
    """Raised when a gRPC method cannot be resolved through server reflection."""
    pass


class TransportError(ExpectError):
    """Raised when a call fails on the wire (network failure, timeout)."""
    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class ExpectationError(ExpectError):
    """Raised when a response does not satisfy its expectation."""
    pass


class ConnectionMismatchError(ExpectError):
    """Raised when a step's request kind does not match its connection."""
    pass


class HookError(ExpectError):
    """Raised when a before or after hook fails."""
    def __init__(self, hook_name: str, original_error: BaseException):
        self.hook_name = hook_name
        self.original_error = original_error
        super().__init__(f"hook '{hook_name}' failed: {original_error}")


class LoaderError(ExpectError):
    """Raised when a scenario file cannot be parsed or built."""
    pass


class SuiteFailure(ExpectError):
    """Joined failure of a suite run; keeps every record for inspection."""
    def __init__(self, records: List[FailureRecord]):
        self.records = list(records)
        lines = [f"{len(self.records)} failure(s):"]
        lines.extend(f"  - {r}" for r in self.records)
        super().__init__("\n".join(lines))
