"""
Query parameter model.

A QueryParameter is one named value bound into a statement. The optional binding kind
overrides the type SQLAlchemy would otherwise infer from the Python value, which matters
for binary payloads, XML documents and SQL Server's legacy IMAGE columns.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Union


class BindingKind(str, Enum):
    PLAIN = "plain"
    BINARY = "binary"
    XML = "xml"
    IMAGE = "image"


@dataclass(frozen=True)
class QueryParameter:
    """
    Named statement parameter.

    - name: placeholder name. A leading '@' or ':' is accepted and stripped to
      form the bind key, so "@ID", ":ID" and "ID" all bind the `:ID` placeholder.
    - value: the value to bind. None binds SQL NULL. A non-string iterable is
      expanded into one placeholder per element (see query.binding).
    - is_output: the parameter is an output slot; its post-execution value is
      returned in ExecutionResult.outputs.
    - binding_kind: forces a specific encoding instead of type inference.
    - expand: when False, an iterable value binds as one scalar instead of being
      expanded (entity column values bind this way).
    """

    name: str
    value: Any = None
    is_output: bool = False
    binding_kind: BindingKind = BindingKind.PLAIN
    expand: bool = True

    @property
    def key(self) -> str:
        return self.name.lstrip("@:")

    @property
    def is_special(self) -> bool:
        return self.binding_kind is not BindingKind.PLAIN

    @classmethod
    def single(cls, name: str, value: Any) -> list["QueryParameter"]:
        """Parameter list holding exactly one input parameter."""
        return [cls(name, value)]

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"


def binary_parameter(name: str, value: bytes | None) -> QueryParameter:
    """Bind `value` as a binary large object (VARBINARY(max) on SQL Server)."""
    return QueryParameter(name, value, binding_kind=BindingKind.BINARY)


def xml_parameter(name: str, value: str | None) -> QueryParameter:
    """Bind an XML document as text (the XML type on SQL Server)."""
    return QueryParameter(name, value, binding_kind=BindingKind.XML)


def image_parameter(name: str, value: bytes | None) -> QueryParameter:
    """Bind `value` using the legacy IMAGE encoding."""
    return QueryParameter(name, value, binding_kind=BindingKind.IMAGE)


def output_parameter(name: str, value: Any = None) -> QueryParameter:
    return QueryParameter(name, value, is_output=True)


# What callers may pass wherever parameters are accepted.
Parameters = Union[Iterable[QueryParameter], Mapping[str, Any], None]


def normalize_parameters(parameters: Parameters) -> list[QueryParameter]:
    """
    Return `parameters` as a list of QueryParameter.

    A mapping is read as {name: value} input parameters, in insertion order.
    """
    if parameters is None:
        return []
    if isinstance(parameters, Mapping):
        return [QueryParameter(name, value) for name, value in parameters.items()]

    normalized = list(parameters)
    for parameter in normalized:
        if not isinstance(parameter, QueryParameter):
            raise TypeError(f"Expected QueryParameter, got {type(parameter).__name__}")
    return normalized


__all__ = [
    "BindingKind",
    "QueryParameter",
    "Parameters",
    "binary_parameter",
    "xml_parameter",
    "image_parameter",
    "output_parameter",
    "normalize_parameters",
]
