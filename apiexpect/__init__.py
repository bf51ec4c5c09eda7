"""apiexpect: scenario-driven integration testing for HTTP and gRPC services."""

import logging

from apiexpect.builder import (
    DELETE,
    GET,
    PATCH,
    POST,
    PUT,
    StepBuilder,
    grpc_call,
    grpc_raw_call,
    http_step,
)
from apiexpect.config import ExpectSettings
from apiexpect.connection import Connection
from apiexpect.grpc_connection import GRPC, GRPCConnection, MethodDescriptorCache
from apiexpect.grpc_request import GRPCExpect, GRPCRequest, GRPCResult
from apiexpect.http_connection import DEFAULT_HTTP_TIMEOUT_S, HTTP, HTTPConnection
from apiexpect.http_request import HTTPExpect, HTTPRequest
from apiexpect.loader import load_dir, load_file, load_json, load_paths, load_yaml
from apiexpect.match import ExpectBody, SaveEntry, extract_path, partial_match
from apiexpect.matchers import (
    AnyOf,
    Contains,
    Gt,
    Gte,
    Length,
    Lt,
    Lte,
    Matcher,
    Matches,
    NotEmpty,
)
from apiexpect.scenario import Scenario
from apiexpect.step import Step
from apiexpect.suite import Suite
from apiexpect.testing import assert_suite_passes
from apiexpect.types import (
    ConnectionEstablishError,
    ConnectionKind,
    ConnectionMismatchError,
    ExpectationError,
    ExpectError,
    FailureRecord,
    FailureScope,
    HookError,
    LoaderError,
    ProtocolResolutionError,
    ScenarioResult,
    SuiteFailure,
    SuiteResult,
    TransportError,
)
from apiexpect.vars import VarStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Execution model
    "Suite",
    "Scenario",
    "Step",
    "StepBuilder",
    "VarStore",
    # Connections
    "Connection",
    "ConnectionKind",
    "HTTPConnection",
    "HTTP",
    "DEFAULT_HTTP_TIMEOUT_S",
    "GRPCConnection",
    "GRPC",
    "MethodDescriptorCache",
    # Requests / expectations
    "HTTPRequest",
    "HTTPExpect",
    "GRPCRequest",
    "GRPCExpect",
    "GRPCResult",
    "ExpectBody",
    "SaveEntry",
    # Builders
    "http_step",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "grpc_call",
    "grpc_raw_call",
    # Matching
    "partial_match",
    "extract_path",
    "Matcher",
    "Contains",
    "Matches",
    "NotEmpty",
    "Gt",
    "Gte",
    "Lt",
    "Lte",
    "Length",
    "AnyOf",
    # Loading / running
    "load_yaml",
    "load_json",
    "load_file",
    "load_dir",
    "load_paths",
    "assert_suite_passes",
    "ExpectSettings",
    # Results and errors
    "SuiteResult",
    "ScenarioResult",
    "FailureRecord",
    "FailureScope",
    "ExpectError",
    "ConnectionEstablishError",
    "ProtocolResolutionError",
    "TransportError",
    "ExpectationError",
    "ConnectionMismatchError",
    "HookError",
    "LoaderError",
    "SuiteFailure",
]
