# apiexpect/suite.py
from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from apiexpect.connection import Connection
from apiexpect.scenario import Scenario
from apiexpect.types import SuiteResult
from apiexpect.vars import VarStore

logger = logging.getLogger(__name__)


class Suite:
    """
    Registry of named connections and scenarios.

    The first connection registered is the default for steps without an
    explicit connection; a connection with an empty name always becomes the
    default. Scenarios run sequentially, each with a fresh VarStore.
    """

    def __init__(self):
        self.connections: Dict[str, Connection] = {}
        self.scenarios: List[Scenario] = []
        self.default_connection: Optional[Connection] = None
        self.log = logger

    def with_logger(self, log: logging.Logger) -> "Suite":
        """Override the logger used when running scenarios."""
        self.log = log
        return self

    def with_connections(self, *conns: Connection) -> "Suite":
        """Register one or more named connections."""
        for conn in conns:
            self.connections[conn.name] = conn
            if self.default_connection is None or conn.name == "":
                self.default_connection = conn
        return self

    def with_scenarios(self, *scenarios: Scenario) -> "Suite":
        self.scenarios.extend(scenarios)
        return self

    def run(self) -> SuiteResult:
        """Execute all scenarios; failures are collected, never raised."""
        result = SuiteResult()
        start = time.perf_counter()
        self.log.info(f"🧪 running {len(self.scenarios)} scenario(s) on {len(self.connections)} connection(s)")

        for sc in self.scenarios:
            result.scenarios.append(sc.run(self.default_connection, self.connections, VarStore(), self.log))

        result.duration_s = round(time.perf_counter() - start, 3)
        failed = sum(1 for sc in result.scenarios if not sc.ok)
        if failed:
            self.log.error(f"❌ {failed}/{len(result.scenarios)} scenario(s) failed in {result.duration_s}s")
        else:
            self.log.info(f"✅ all {len(result.scenarios)} scenario(s) passed in {result.duration_s}s")
        return result

    def close(self) -> None:
        """Tear down every registered connection."""
        for conn in self.connections.values():
            try:
                conn.close()
            except Exception as e:
                self.log.warning(f"closing connection {conn.name!r} failed: {e}")

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()
