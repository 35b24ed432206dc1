"""
Programmatic query predicates.

A Predicate is a small tagged expression (field, operator, value) that
is turned into a SQLAlchemy clause when the query runs. Values always
travel as bound parameters; field names are checked against the
model's mapped columns before any unit of work is opened.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List

from sqlalchemy import inspect
from sqlalchemy.sql.elements import ColumnElement

from roster.core.exceptions import InvalidArgument


class Operator(str, Enum):
    """Comparison operators a predicate can use."""

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    LIKE = "like"
    IN = "in"


@dataclass(frozen=True)
class Predicate:
    """
    Condition on a single mapped column.

    Attributes:
        field: Mapped column attribute name (e.g. "college")
        value: Value to compare against (a collection for Operator.IN)
        op: Comparison operator, equality by default

    Example:
        Predicate("college", "XYZ University")
        Predicate("id", [1, 2, 3], Operator.IN)
    """

    field: str
    value: Any
    op: Operator = Operator.EQ

    def __post_init__(self):
        try:
            object.__setattr__(self, "op", Operator(self.op))
        except ValueError as exc:
            raise InvalidArgument(f"Unsupported predicate operator: {self.op!r}") from exc

    def to_clause(self, model) -> ColumnElement:
        """
        Interpret the predicate against a model.

        Args:
            model: Mapped class the predicate applies to

        Returns:
            SQLAlchemy boolean clause with the value bound as a parameter

        Raises:
            InvalidArgument: If the field is not a mapped column
        """
        column = column_for(model, self.field)
        op = self.op
        if op is Operator.EQ:
            return column.is_(None) if self.value is None else column == self.value
        if op is Operator.NE:
            return column.is_not(None) if self.value is None else column != self.value
        if op is Operator.LT:
            return column < self.value
        if op is Operator.LE:
            return column <= self.value
        if op is Operator.GT:
            return column > self.value
        if op is Operator.GE:
            return column >= self.value
        if op is Operator.LIKE:
            return column.like(self.value)
        if isinstance(self.value, (str, bytes)) or not isinstance(self.value, Iterable):
            raise InvalidArgument(f"Operator 'in' needs a collection of values for {self.field!r}")
        return column.in_(list(self.value))


def column_for(model, field: str):
    """
    Resolve a field name to the model's column attribute.

    Raises:
        InvalidArgument: If the field is not a mapped column
    """
    mapper = inspect(model)
    if not isinstance(field, str) or field not in mapper.columns:
        allowed = ", ".join(sorted(mapper.columns.keys()))
        raise InvalidArgument(
            f"Unknown field {field!r} for {model.__name__}; expected one of: {allowed}"
        )
    return getattr(model, field)


def validate_predicates(model, predicates: Iterable[Predicate]) -> List[Predicate]:
    """
    Check predicates against a model without running a query.

    Returns:
        The predicates as a list

    Raises:
        InvalidArgument: On a non-Predicate argument or unknown field
    """
    checked = []
    for predicate in predicates:
        if not isinstance(predicate, Predicate):
            raise InvalidArgument(f"Expected a Predicate, got {type(predicate).__name__}")
        predicate.to_clause(model)
        checked.append(predicate)
    return checked
