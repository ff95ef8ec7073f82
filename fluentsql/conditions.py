"""
Compilation of condition sequences into WHERE fragments.

Two rendering modes share one code path so the clause structure never differs:

- inline (``params is None``): values are written into the SQL text. Text is
  wrapped in single quotes as-is, without escaping, so this form is meant for
  inspection and logging.
- bound (``params`` is a list): every value becomes a ``%s`` placeholder and is
  appended to ``params`` in clause order. This is what gets executed.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Sequence

from fluentsql.errors import ValidationError
from fluentsql.types import AnyCondition, Condition, ConditionGroup, Raw

NULL_OPERATORS = frozenset({"IS NULL", "IS NOT NULL"})
SCALAR_TYPES = (str, int, float, Decimal, datetime, date, time, type(None))


def check_value(value: Any, column: str) -> None:
    if isinstance(value, Raw) or isinstance(value, SCALAR_TYPES):
        return
    raise ValidationError(
        f"Unsupported value for column '{column}': {type(value).__name__}"
    )


def render_value(value: Any, params: list[Any] | None = None) -> str:
    if isinstance(value, Raw):
        return value.sql

    if params is not None:
        params.append(value)
        return "%s"

    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return f"'{value.isoformat(sep=' ')}'"
    if isinstance(value, (date, time)):
        return f"'{value.isoformat()}'"
    return f"'{value}'"


def render_values(values: Iterable[Any], params: list[Any] | None = None) -> str:
    return ", ".join(render_value(v, params) for v in values)


def _compile_condition(cond: Condition, params: list[Any] | None) -> str:
    operator = cond.operator.upper()

    if operator == "BETWEEN":
        low, high = cond.value
        return (
            f"{cond.column} BETWEEN {render_value(low, params)} "
            f"AND {render_value(high, params)}"
        )
    if operator == "IN":
        return f"{cond.column} IN ({render_values(cond.value, params)})"
    if operator in NULL_OPERATORS:
        return f"{cond.column} {operator}"
    return f"{cond.column} {cond.operator} {render_value(cond.value, params)}"


def compile_conditions(
    conditions: Sequence[AnyCondition], params: list[Any] | None = None
) -> str:
    """Render ``conditions`` as a WHERE fragment (without the WHERE keyword).

    The combinator of a condition joins it to everything before it, so the
    first condition is never prefixed. Groups are wrapped in parentheses and
    compiled recursively.
    """
    fragments = []
    for index, cond in enumerate(conditions):
        prefix = "" if index == 0 else f" {cond.combinator} "
        if isinstance(cond, ConditionGroup):
            inner = compile_conditions(cond.conditions, params)
            fragments.append(f"{prefix}({inner})")
        else:
            fragments.append(prefix + _compile_condition(cond, params))

    return "".join(fragments)
