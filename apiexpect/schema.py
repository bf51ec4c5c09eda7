# apiexpect/schema.py
"""Pydantic models for YAML/JSON scenario files."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from apiexpect.vars import stringify


class FileConnection(BaseModel):
    name: str = ""
    type: str = ""
    url: str


class FileSaveEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    as_: str = Field(alias="as")


class FileRequest(BaseModel):
    connection: str = ""
    method: str = "GET"
    endpoint: str = ""
    body: Any = None
    header: Dict[str, str] = Field(default_factory=dict)
    query: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = None

    @field_validator("header", "query", mode="before")
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        # YAML turns `page: 2` into an int; headers and query values are strings on the wire
        if isinstance(v, dict):
            return {str(k): "" if val is None else stringify(val) for k, val in v.items()}
        return v if v is not None else {}


class FileExpectation(BaseModel):
    status: Union[int, List[int]] = 0
    code: str = ""
    header: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    save: List[FileSaveEntry] = Field(default_factory=list)


class FileStep(BaseModel):
    request: Optional[FileRequest] = None
    expect: Optional[FileExpectation] = None


class FileScenario(BaseModel):
    name: str = ""
    steps: List[FileStep] = Field(default_factory=list)


class ExpectFile(BaseModel):
    connections: List[FileConnection] = Field(default_factory=list)
    scenarios: List[FileScenario] = Field(default_factory=list)
