"""
Typed aggregation stages used to build joined views.

Each stage takes the rows produced by the previous one and returns new rows.
A ``Pipeline`` runs its stages in order and reports any failure inside a stage
as an ``AggregationError`` naming that stage.

Example:
    rows = (
        Pipeline()
        .then(Match(lambda s: s.user_id == user_id))
        .then(Sort(lambda s: s.submission_date, descending=True))
        .then(Limit(5))
        .run(submissions)
    )
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, List, Sequence, Tuple, TypeVar

from ..errors import AggregationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Stage:
    name = "stage"

    def apply(self, rows: List[Any]) -> List[Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class Match(Stage):
    predicate: Callable[[Any], bool]
    name = "match"

    def apply(self, rows: List[Any]) -> List[Any]:
        return [row for row in rows if self.predicate(row)]


@dataclass(frozen=True)
class Lookup(Stage):
    """Attach ``resolve(row)`` to each row, producing ``(row, joined)`` pairs."""

    resolve: Callable[[Any], Any]
    name = "lookup"

    def apply(self, rows: List[Any]) -> List[Tuple[Any, Any]]:
        return [(row, self.resolve(row)) for row in rows]


@dataclass(frozen=True)
class Project(Stage):
    transform: Callable[[Any], Any]
    name = "project"

    def apply(self, rows: List[Any]) -> List[Any]:
        return [self.transform(row) for row in rows]


@dataclass(frozen=True)
class Sort(Stage):
    key: Callable[[Any], Any]
    descending: bool = False
    name = "sort"

    def apply(self, rows: List[Any]) -> List[Any]:
        return sorted(rows, key=self.key, reverse=self.descending)


@dataclass(frozen=True)
class Limit(Stage):
    count: int
    name = "limit"

    def apply(self, rows: List[Any]) -> List[Any]:
        if self.count < 0:
            raise ValueError(f"limit must not be negative, got {self.count}")
        return rows[: self.count]


@dataclass(frozen=True)
class Pipeline(Generic[T]):
    stages: Tuple[Stage, ...] = ()

    def then(self, stage: Stage) -> "Pipeline[T]":
        return replace(self, stages=self.stages + (stage,))

    def run(self, rows: Sequence[Any]) -> List[T]:
        current = list(rows)
        for position, stage in enumerate(self.stages):
            try:
                current = stage.apply(current)
            except AggregationError:
                raise
            except Exception as e:
                logger.error(f"Aggregation stage {position} ({stage.name}) failed: {type(e).__name__}: {e}")
                raise AggregationError(f"Failed at {stage.name} stage.") from e
        return current
