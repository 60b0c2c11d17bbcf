"""Filter predicates — a small tagged vocabulary for list endpoints.

Learn: Routes translate query params into predicates; services hand them to
apply_predicates(), the single place that turns them into SQL. Each
predicate names a mapped column by attribute name, so an unknown field
is rejected instead of silently ignored.

    preds = [Equals("status", "active"), Range("created_at", start=since)]
    q = apply_predicates(select(Folder), Folder, preds)
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Sequence, Union

from sqlalchemy import Select, inspect

from lexdesk.errors import ValidationFailed


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any
    kind: ClassVar[str] = "equals"


@dataclass(frozen=True)
class In:
    field: str
    values: tuple
    kind: ClassVar[str] = "in"


@dataclass(frozen=True)
class Range:
    """Inclusive bounds; either side may be open."""
    field: str
    start: Any = None
    end: Any = None
    kind: ClassVar[str] = "range"


@dataclass(frozen=True)
class IsNull:
    field: str
    is_null: bool = True
    kind: ClassVar[str] = "is_null"


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""
    field: str
    value: str
    kind: ClassVar[str] = "contains"


Predicate = Union[Equals, In, Range, IsNull, Contains]


def _column(model, field: str):
    mapper = inspect(model)
    if field not in mapper.column_attrs:
        raise ValidationFailed(f"Unknown filter field: {field}")
    return getattr(model, field)


def _escape_like(value: str) -> str:
    """Make % and _ in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_clause(model, predicate: Predicate):
    """Translate one predicate into a SQL expression."""
    col = _column(model, predicate.field)

    if isinstance(predicate, Equals):
        return col == predicate.value
    if isinstance(predicate, In):
        return col.in_(list(predicate.values))
    if isinstance(predicate, Range):
        if predicate.start is None and predicate.end is None:
            raise ValidationFailed(f"Range on {predicate.field} needs a bound")
        if predicate.start is not None and predicate.end is not None:
            return col.between(predicate.start, predicate.end)
        if predicate.start is not None:
            return col >= predicate.start
        return col <= predicate.end
    if isinstance(predicate, IsNull):
        return col.is_(None) if predicate.is_null else col.isnot(None)
    if isinstance(predicate, Contains):
        return col.ilike(f"%{_escape_like(predicate.value)}%", escape="\\")

    raise ValidationFailed(f"Unsupported predicate: {predicate!r}")


def apply_predicates(
    query: Select,
    model,
    predicates: Optional[Sequence[Predicate]] = None,
) -> Select:
    """AND every predicate onto the query."""
    for predicate in predicates or ():
        query = query.where(to_clause(model, predicate))
    return query
