"""
Row mapper and bulk extractor capabilities.

A row mapper turns one result row into one value. A bulk extractor receives the whole
open result and returns a materialized list; use it when mapping needs look-ahead or
cross-row context (grouping parent/child rows, pivoting, de-duplication).

Plain callables are accepted wherever a mapper or extractor is.
"""
from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar, Union, runtime_checkable

from sqlalchemy.engine import Result, Row

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class RowMapper(Protocol[T_co]):
    def map(self, row: Row) -> T_co:
        """Map a single result row to a target object."""
        ...


@runtime_checkable
class DataExtractor(Protocol[T_co]):
    def extract(self, result: Result, *args: Any) -> list[T_co]:
        """Consume `result` and return the mapped objects."""
        ...


MapperLike = Union[RowMapper[T], Callable[[Row], T]]
ExtractorLike = Union[DataExtractor[T], Callable[..., list[T]]]


def apply_mapper(mapper: MapperLike, row: Row) -> Any:
    if isinstance(mapper, RowMapper):
        return mapper.map(row)
    return mapper(row)


def apply_extractor(extractor: ExtractorLike, result: Result, *args: Any) -> list:
    if isinstance(extractor, DataExtractor):
        return list(extractor.extract(result, *args))
    return list(extractor(result, *args))


__all__ = [
    "RowMapper",
    "DataExtractor",
    "MapperLike",
    "ExtractorLike",
    "apply_mapper",
    "apply_extractor",
]
