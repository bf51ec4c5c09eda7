# apiexpect/scenario.py
"""
Scenario: a named, ordered sequence of steps sharing one variable store.

Run order: before-hooks → steps → after-hooks. A failing before-hook skips
the steps; after-hooks always run. A failing step is recorded and the next
step still runs, so one run reports every failure.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Union

from apiexpect.builder import StepBuilder
from apiexpect.connection import Connection
from apiexpect.step import Step
from apiexpect.types import FailureRecord, FailureScope, HookError, ScenarioResult
from apiexpect.vars import VarStore

logger = logging.getLogger(__name__)

Hook = Callable[[], None]


def _hook_name(fn: Hook) -> str:
    return getattr(fn, "__name__", None) or repr(fn)


class Scenario:
    """Named sequence of steps executed against one or more connections."""

    def __init__(self, name: str):
        self.name = name
        self.steps: List[Step] = []
        self.before_hooks: List[Hook] = []
        self.after_hooks: List[Hook] = []

    def add_step(self, step: Union[Step, StepBuilder]) -> "Scenario":
        """Append a step (or a builder, which is built now)."""
        self.steps.append(step.build() if isinstance(step, StepBuilder) else step)
        return self

    def before(self, fn: Hook) -> "Scenario":
        """Register a setup function run before the steps; raising marks it failed."""
        self.before_hooks.append(fn)
        return self

    def after(self, fn: Hook) -> "Scenario":
        """Register a cleanup function that always runs after the scenario."""
        self.after_hooks.append(fn)
        return self

    def resolve_connection(
        self,
        step: Step,
        default: Optional[Connection],
        connections: Dict[str, Connection],
    ) -> Optional[Connection]:
        if step.connection and step.connection in connections:
            return connections[step.connection]
        return default

    def _run_hooks(self, hooks: List[Hook], stage: str, result: ScenarioResult, log: logging.Logger) -> bool:
        ok = True
        for fn in hooks:
            name = _hook_name(fn)
            try:
                fn()
            except Exception as e:
                ok = False
                log.error(f"❌ {stage} hook {name} failed: {e}")
                result.failures.append(FailureRecord(
                    scope=FailureScope.HOOK,
                    scenario=self.name,
                    label=f"{stage} {name}",
                    cause=HookError(name, e),
                ))
        return ok

    def run(
        self,
        default: Optional[Connection],
        connections: Dict[str, Connection],
        vars: Optional[VarStore] = None,
        log: Optional[logging.Logger] = None,
    ) -> ScenarioResult:
        """Execute every step in order and return the collected failures."""
        log = log or logger
        vars = vars if vars is not None else VarStore()
        result = ScenarioResult(name=self.name)
        start = time.perf_counter()

        log.info(f"▶ starting scenario {self.name!r}")

        if self._run_hooks(self.before_hooks, "before", result, log):
            for i, step in enumerate(self.steps):
                label = step.label(i)
                conn = self.resolve_connection(step, default, connections)
                log.info(f"  step {label}")
                result.steps_run += 1
                try:
                    step.run(conn, vars)
                except Exception as e:
                    log.error(f"  ❌ step {label} failed: {e}")
                    result.failures.append(FailureRecord(
                        scope=FailureScope.STEP,
                        scenario=self.name,
                        label=label,
                        cause=e,
                    ))
                else:
                    log.info(f"  ✅ step {label} passed")
        else:
            log.warning(f"⏭️ skipping steps of {self.name!r}: before hook failed")

        self._run_hooks(self.after_hooks, "after", result, log)

        result.duration_s = round(time.perf_counter() - start, 3)
        if result.failures:
            log.error(f"❌ scenario {self.name!r} failed ({len(result.failures)} failure(s))")
        else:
            log.info(f"✅ scenario {self.name!r} passed")
        return result
