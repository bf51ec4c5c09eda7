# apiexpect/loader.py
"""
Build a Suite from YAML or JSON scenario files.

Building is two-pass: connections from every file are collected first, so
a scenario in one file can use a connection declared in another; then the
scenarios are built with the full connection set. A step's protocol follows
the connection it resolves to.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from apiexpect.builder import StepBuilder, grpc_raw_call, http_step
from apiexpect.config import ExpectSettings
from apiexpect.connection import Connection
from apiexpect.grpc_connection import GRPCConnection
from apiexpect.http_connection import HTTPConnection
from apiexpect.match import ExpectBody
from apiexpect.scenario import Scenario
from apiexpect.schema import ExpectFile, FileConnection, FileStep
from apiexpect.suite import Suite
from apiexpect.types import ConnectionKind, LoaderError

logger = logging.getLogger(__name__)

SCENARIO_EXTENSIONS = {".yaml", ".yml", ".json"}


# ==================== Parsing ====================

def _parse(data: Any, source: str) -> ExpectFile:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise LoaderError(f"{source}: top level must be a mapping, got {type(data).__name__}")
    try:
        return ExpectFile.model_validate(data)
    except ValidationError as e:
        raise LoaderError(f"{source}: invalid scenario file: {e}") from e


def parse_yaml(text: Union[str, bytes], source: str = "<yaml>") -> ExpectFile:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise LoaderError(f"{source}: parse yaml: {e}") from e
    return _parse(data, source)


def parse_json(text: Union[str, bytes], source: str = "<json>") -> ExpectFile:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise LoaderError(f"{source}: parse json: {e}") from e
    return _parse(data, source)


def _scenario_files(root: Path) -> List[Path]:
    return [p for p in sorted(root.rglob("*")) if p.is_file() and p.suffix in SCENARIO_EXTENSIONS]


def _parse_path(path: Path) -> ExpectFile:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LoaderError(f"read file {str(path)!r}: {e}") from e
    if path.suffix == ".json":
        return parse_json(text, str(path))
    return parse_yaml(text, str(path))


# ==================== Public API ====================

def load_yaml(text: Union[str, bytes], settings: Optional[ExpectSettings] = None) -> Suite:
    """Parse YAML text and return a Suite ready to run."""
    return build_suite([parse_yaml(text)], settings)


def load_json(text: Union[str, bytes], settings: Optional[ExpectSettings] = None) -> Suite:
    """Parse JSON text and return a Suite ready to run."""
    return build_suite([parse_json(text)], settings)


def load_file(path: Union[str, Path], settings: Optional[ExpectSettings] = None) -> Suite:
    """Load a .yaml/.yml/.json file, detected by extension."""
    return build_suite([_parse_path(Path(path))], settings)


def load_dir(path: Union[str, Path], settings: Optional[ExpectSettings] = None) -> Suite:
    """Load every scenario file under path (recursively, in sorted order)."""
    root = Path(path)
    if not root.is_dir():
        raise LoaderError(f"not a directory: {str(root)!r}")
    files = _scenario_files(root)
    logger.debug(f"loading {len(files)} scenario file(s) from {root}")
    return build_suite([_parse_path(p) for p in files], settings)


def load_paths(paths: List[Union[str, Path]], settings: Optional[ExpectSettings] = None) -> Suite:
    """Load a mix of files and directories into a single Suite."""
    parsed: List[ExpectFile] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            parsed.extend(_parse_path(f) for f in _scenario_files(p))
        else:
            parsed.append(_parse_path(p))
    return build_suite(parsed, settings)


# ==================== Building ====================

def build_suite(files: List[ExpectFile], settings: Optional[ExpectSettings] = None) -> Suite:
    settings = settings or ExpectSettings()

    conns = [build_connection(c, settings) for f in files for c in f.connections]
    conn_map, default = connection_map(conns)

    scenarios: List[Scenario] = []
    for f in files:
        for s in f.scenarios:
            sc = Scenario(s.name)
            for st in s.steps:
                if st.request is None:
                    continue
                try:
                    sc.add_step(build_step(st, conn_map, default, settings))
                except LoaderError as e:
                    raise LoaderError(f"scenario {s.name!r}: {e}") from e
            scenarios.append(sc)

    return Suite().with_connections(*conns).with_scenarios(*scenarios)


def connection_map(conns: List[Connection]) -> Tuple[Dict[str, Connection], Optional[Connection]]:
    """Map names to connections; the first entry, or one with an empty name, is the default."""
    m: Dict[str, Connection] = {}
    default: Optional[Connection] = None
    for c in conns:
        m[c.name] = c
        if default is None or c.name == "":
            default = c
    return m, default


def build_connection(c: FileConnection, settings: ExpectSettings) -> Connection:
    if c.type in ("http", "https", ""):
        return HTTPConnection(c.name, c.url, timeout=settings.http_timeout_s, verify_ssl=settings.verify_ssl)
    if c.type == "grpc":
        return GRPCConnection(c.name, c.url)
    raise LoaderError(f"unknown connection type {c.type!r}")


def build_step(
    s: FileStep,
    conn_map: Dict[str, Connection],
    default: Optional[Connection],
    settings: ExpectSettings,
) -> StepBuilder:
    conn = conn_map.get(s.request.connection, default)
    if conn is None:
        raise LoaderError(f"no connection for request {s.request.method} {s.request.endpoint}")
    if conn.kind is ConnectionKind.HTTP:
        return build_http_step(s)
    return build_grpc_step(s, settings)


def build_http_step(s: FileStep) -> StepBuilder:
    r = s.request
    b = http_step(r.method, r.endpoint).with_connection(r.connection)
    for k, v in r.header.items():
        b.with_header(k, v)
    for k, v in r.query.items():
        b.with_query(k, v)
    if r.body is not None:
        b.with_json(r.body)
    if r.timeout:
        b.with_timeout(r.timeout)

    if s.expect is not None:
        e = s.expect
        if isinstance(e.status, list):
            b.expect_status_any(*e.status)
        else:
            b.expect_status(e.status)
        for k, v in e.header.items():
            b.expect_header(k, v)
        if e.body is not None:
            b.expect_body(ExpectBody(e.body))
        for sv in e.save:
            b.save(sv.field, sv.as_)
    return b


def build_grpc_step(s: FileStep, settings: ExpectSettings) -> StepBuilder:
    r = s.request
    b = grpc_raw_call(r.connection, r.endpoint, r.body)
    for k, v in r.header.items():
        b.with_header(k, v)
    timeout = r.timeout or settings.grpc_timeout_s
    if timeout:
        b.with_timeout(timeout)

    if s.expect is not None:
        e = s.expect
        b.expect_grpc_code(e.code)
        if e.body is not None:
            b.expect_grpc_body(ExpectBody(e.body))
        for sv in e.save:
            b.save_grpc(sv.field, sv.as_)
    return b
