"""Filter predicates understood by the record store.

A predicate is a conjunction of clauses and OR groups. The store renders it
to a SQL ``WHERE`` fragment; the same predicate can be evaluated against
records already in memory, so both paths apply identical semantics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Sequence, Tuple, Union


class Op(str, Enum):
    EQ = "eq"
    ICONTAINS = "icontains"  # case-insensitive substring, Unicode casefolded
    CONTAINS = "contains"
    GTE = "gte"
    LTE = "lte"


def to_db_value(value: Any) -> Any:
    """Convert a Python value to something sqlite3 binds natively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _text(value: Any) -> str:
    return str(to_db_value(value))


@dataclass(frozen=True)
class Clause:
    field: str
    op: Op
    value: Any

    def to_sql(self) -> Tuple[str, List[Any]]:
        if self.op is Op.EQ:
            return f"{self.field} = ?", [to_db_value(self.value)]
        if self.op is Op.ICONTAINS:
            # casefold() is registered on every pooled connection
            return f"instr(casefold({self.field}), ?) > 0", [_text(self.value).casefold()]
        if self.op is Op.CONTAINS:
            return f"instr({self.field}, ?) > 0", [_text(self.value)]
        if self.op is Op.GTE:
            return f"{self.field} >= ?", [to_db_value(self.value)]
        return f"{self.field} <= ?", [to_db_value(self.value)]

    def matches(self, record: Any) -> bool:
        actual = getattr(record, self.field)
        if actual is None:
            return False
        if self.op is Op.EQ:
            return actual == self.value
        if self.op is Op.ICONTAINS:
            return _text(self.value).casefold() in _text(actual).casefold()
        if self.op is Op.CONTAINS:
            return _text(self.value) in _text(actual)
        if self.op is Op.GTE:
            return actual >= self.value
        return actual <= self.value


@dataclass(frozen=True)
class AnyOf:
    """Logical OR of clauses, used for free-text search across columns."""
    clauses: Tuple[Clause, ...]

    def __post_init__(self) -> None:
        if not self.clauses:
            raise ValueError("AnyOf needs at least one clause")

    def to_sql(self) -> Tuple[str, List[Any]]:
        parts: List[str] = []
        params: List[Any] = []
        for clause in self.clauses:
            sql, clause_params = clause.to_sql()
            parts.append(sql)
            params.extend(clause_params)
        return "(" + " OR ".join(parts) + ")", params

    def matches(self, record: Any) -> bool:
        return any(clause.matches(record) for clause in self.clauses)


Condition = Union[Clause, AnyOf]


@dataclass(frozen=True)
class Predicate:
    """Logical AND of conditions; an empty predicate matches everything."""
    clauses: Tuple[Condition, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return bool(self.clauses)

    def and_(self, condition: Condition) -> "Predicate":
        return Predicate(self.clauses + (condition,))

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Return ``(where_fragment, params)``; fragment is ``""`` when empty."""
        if not self.clauses:
            return "", []
        parts: List[str] = []
        params: List[Any] = []
        for condition in self.clauses:
            sql, condition_params = condition.to_sql()
            parts.append(sql)
            params.extend(condition_params)
        return " WHERE " + " AND ".join(parts), params

    def matches(self, record: Any) -> bool:
        return all(condition.matches(record) for condition in self.clauses)

    def apply(self, records: Sequence[Any]) -> List[Any]:
        return [record for record in records if self.matches(record)]


MATCH_ALL = Predicate()
