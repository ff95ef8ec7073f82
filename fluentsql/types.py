from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Required, TypedDict, Union

Query = str
Row = dict[str, Any]
Rows = list[Row]

Combinator = Literal["AND", "OR"]
Direction = Literal["ASC", "DESC"]
Aggregate = Literal["COUNT", "SUM", "AVG", "MAX", "MIN"]
FieldOption = Literal["primary", "autoincrement", "unique"]
ColumnKey = Literal["PRI", "UNI", "MUL", ""]


class ForeignKey(TypedDict):
    table: str
    column: str


class Field(TypedDict, total=False):
    name: Required[str]
    type: Required[str]
    default_value: Any
    length: int
    options: list[FieldOption]
    foreign_key: ForeignKey


class ColumnMeta(TypedDict):
    type: str
    default_value: str | None
    key: ColumnKey
    extra: str


class OrderSpec(TypedDict):
    column: str
    direction: Direction


class QueryResponse(TypedDict):
    status: Literal["success", "error"]
    message: str
    data: Any


@dataclass(frozen=True)
class Raw:
    """A SQL expression emitted verbatim, e.g. ``Raw("NOW()")``"""

    sql: str


@dataclass
class Condition:
    column: str
    operator: str
    value: Any = None
    combinator: Combinator = "AND"


@dataclass
class ConditionGroup:
    conditions: list[Condition | ConditionGroup] = field(default_factory=list)
    combinator: Combinator = "AND"


AnyCondition = Union[Condition, ConditionGroup]


@dataclass
class WriteResult:
    affected_rows: int
    insert_id: int | None = None


Result = Union[Rows, WriteResult]
