"""
Name: Metadata Filters

Responsibilities:
  - Parse the caller's metadata predicate into validated clauses
  - Evaluate clauses against a document's metadata (in-memory backend)
  - Expose clauses so other backends can translate them (SQL)

Collaborators:
  - infrastructure.index.in_memory: calls matches()
  - infrastructure.index.postgres: translates clauses to JSONB predicates

Constraints:
  - Pure: no IO
  - Clauses are AND-ed; range operators only match numbers

Notes:
  - Syntax: {"field": value} or {"field": {"$op": operand, ...}}
  - Operators: $eq $ne $in $nin $gt $gte $lt $lte
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from ..exceptions import InvalidFilterError

EQUALITY_OPERATORS = frozenset({"$eq", "$ne"})
MEMBERSHIP_OPERATORS = frozenset({"$in", "$nin"})
RANGE_OPERATORS = frozenset({"$gt", "$gte", "$lt", "$lte"})
OPERATORS = EQUALITY_OPERATORS | MEMBERSHIP_OPERATORS | RANGE_OPERATORS

_SCALARS = (str, int, float, bool, type(None))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _scalar_equals(left: Any, right: Any) -> bool:
    """R: Equality without bool/int coercion (True != 1); 1 == 1.0 still holds."""
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


@dataclass(frozen=True)
class FilterClause:
    field: str
    op: str
    operand: Any

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        present = self.field in metadata
        value = metadata.get(self.field)

        if self.op == "$eq":
            return present and _scalar_equals(value, self.operand)
        if self.op == "$ne":
            return not (present and _scalar_equals(value, self.operand))
        if self.op == "$in":
            return present and any(_scalar_equals(value, item) for item in self.operand)
        if self.op == "$nin":
            return not (present and any(_scalar_equals(value, item) for item in self.operand))

        # R: Range operators: numbers only, missing/non-numeric never matches
        if not present or not _is_number(value):
            return False
        if self.op == "$gt":
            return value > self.operand
        if self.op == "$gte":
            return value >= self.operand
        if self.op == "$lt":
            return value < self.operand
        return value <= self.operand


@dataclass(frozen=True)
class MetadataFilter:
    """R: Conjunction of FilterClause; an empty filter matches everything."""

    clauses: Tuple[FilterClause, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def matches(self, metadata: Mapping[str, Any] | None) -> bool:
        data = metadata or {}
        return all(clause.matches(data) for clause in self.clauses)

    @classmethod
    def parse(cls, raw: Optional[Mapping[str, Any]]) -> "MetadataFilter":
        """
        R: Validate and normalize a raw predicate.

        Raises:
            InvalidFilterError: On unknown operators or bad operand types
        """
        if raw is None:
            return cls()
        if isinstance(raw, MetadataFilter):
            return raw
        if not isinstance(raw, Mapping):
            raise InvalidFilterError("filters must be a mapping of field -> condition")

        clauses: list[FilterClause] = []
        for field_name, condition in raw.items():
            if not isinstance(field_name, str) or not field_name:
                raise InvalidFilterError("filter field names must be non-empty strings")

            if isinstance(condition, Mapping):
                if not condition:
                    raise InvalidFilterError(f"empty condition for field {field_name!r}")
                for op, operand in condition.items():
                    clauses.append(_build_clause(field_name, op, operand))
            else:
                clauses.append(_build_clause(field_name, "$eq", condition))

        return cls(tuple(clauses))


def _build_clause(field_name: str, op: Any, operand: Any) -> FilterClause:
    if op not in OPERATORS:
        raise InvalidFilterError(f"unknown filter operator {op!r} for field {field_name!r}")

    if op in EQUALITY_OPERATORS:
        if not isinstance(operand, _SCALARS):
            raise InvalidFilterError(f"{op} operand for {field_name!r} must be a scalar")
        return FilterClause(field_name, op, operand)

    if op in MEMBERSHIP_OPERATORS:
        if not isinstance(operand, (list, tuple)) or not operand:
            raise InvalidFilterError(f"{op} operand for {field_name!r} must be a non-empty list")
        if not all(isinstance(item, _SCALARS) for item in operand):
            raise InvalidFilterError(f"{op} values for {field_name!r} must be scalars")
        return FilterClause(field_name, op, tuple(operand))

    if not _is_number(operand):
        raise InvalidFilterError(f"{op} operand for {field_name!r} must be a number")
    return FilterClause(field_name, op, operand)
