# app/core/filters.py
"""
Declarative row filters.

The visibility policy describes *which* rows a caller may see as a small
expression tree; the repository turns that tree into a SQLAlchemy
clause. Keeping the two apart lets the policy be tested without a
database, and lets the same tree be checked against a single row in
memory.
"""

from dataclasses import dataclass
from typing import Any, Tuple, Union

from sqlalchemy import and_, false, or_, true


# ----------------------------------------------------------------
# NODES
# ----------------------------------------------------------------
EQ = "eq"
IN = "in"
IS_NULL = "is_null"

OPERATORS = {EQ, IN, IS_NULL}


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    value: Any = None

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator '{self.op}'")


@dataclass(frozen=True)
class AllOf:
    clauses: Tuple["Filter", ...] = ()


@dataclass(frozen=True)
class AnyOf:
    clauses: Tuple["Filter", ...] = ()


Filter = Union[Condition, AllOf, AnyOf]

# An empty AND is true, an empty OR is false
ALLOW_ALL = AllOf(())
DENY_ALL = AnyOf(())


def eq(field: str, value: Any) -> Condition:
    return Condition(field, EQ, value)


def is_null(field: str) -> Condition:
    return Condition(field, IS_NULL)


def in_(field: str, values) -> Condition:
    return Condition(field, IN, tuple(values))


def all_of(*clauses: Filter) -> Filter:
    flat = []
    for clause in clauses:
        if clause == ALLOW_ALL:
            continue
        if clause == DENY_ALL:
            return DENY_ALL
        flat.append(clause)
    if len(flat) == 1:
        return flat[0]
    return AllOf(tuple(flat))


def any_of(*clauses: Filter) -> Filter:
    flat = []
    for clause in clauses:
        if clause == DENY_ALL:
            continue
        if clause == ALLOW_ALL:
            return ALLOW_ALL
        flat.append(clause)
    if len(flat) == 1:
        return flat[0]
    return AnyOf(tuple(flat))


# ----------------------------------------------------------------
# IN-MEMORY EVALUATION
# ----------------------------------------------------------------
def _field_value(row, field: str):
    if isinstance(row, dict):
        return row.get(field)
    return getattr(row, field, None)


def _normalise(value):
    # enums stored as str subclasses compare by value
    return value.value if hasattr(value, "value") else value


def evaluate(node: Filter, row) -> bool:
    """True if `row` (a model instance or dict) satisfies the filter."""
    if isinstance(node, AllOf):
        return all(evaluate(c, row) for c in node.clauses)
    if isinstance(node, AnyOf):
        return any(evaluate(c, row) for c in node.clauses)

    actual = _normalise(_field_value(row, node.field))
    if node.op == IS_NULL:
        return actual is None
    if actual is None:
        return False
    if node.op == EQ:
        return actual == _normalise(node.value)
    if node.op == IN:
        return actual in {_normalise(v) for v in node.value}
    raise ValueError(f"Unsupported filter operator '{node.op}'")


# ----------------------------------------------------------------
# SQLALCHEMY COMPILATION
# ----------------------------------------------------------------
def to_clause(node: Filter, model):
    """Compile the filter into a WHERE clause against a SQLModel table."""
    if isinstance(node, AllOf):
        if not node.clauses:
            return true()
        return and_(*(to_clause(c, model) for c in node.clauses))
    if isinstance(node, AnyOf):
        if not node.clauses:
            return false()
        return or_(*(to_clause(c, model) for c in node.clauses))

    column = getattr(model, node.field)
    if node.op == IS_NULL:
        return column.is_(None)
    if node.op == EQ:
        return column == _normalise(node.value)
    if node.op == IN:
        values = [_normalise(v) for v in node.value]
        if not values:
            return false()
        return column.in_(values)
    raise ValueError(f"Unsupported filter operator '{node.op}'")
