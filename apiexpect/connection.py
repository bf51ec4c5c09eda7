# apiexpect/connection.py
"""
Base class for connections.
All connections must inherit from Connection and declare their kind.
"""

from __future__ import annotations
from abc import ABC, abstractmethod

from apiexpect.types import ConnectionKind


class Connection(ABC):
    """
    A named, protocol-typed handle to a service under test.
    Owns its transport resource; establishment is lazy and idempotent.
    """

    def __init__(self, name: str):
        self.name = name

    @property
    @abstractmethod
    def kind(self) -> ConnectionKind:
        """Wire protocol spoken by this connection."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Tear down the transport resource, if one was opened."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
