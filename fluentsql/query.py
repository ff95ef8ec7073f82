from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from loguru import logger

from fluentsql.columns import Columns
from fluentsql.conditions import (
    NULL_OPERATORS,
    check_value,
    compile_conditions,
    render_value,
    render_values,
)
from fluentsql.ddl import create_table_sql, drop_table_sql, quote_identifier, validate_fields
from fluentsql.errors import (
    ExecutionError,
    InvalidArgument,
    PreconditionFailed,
    ValidationError,
)
from fluentsql.executor import Executor
from fluentsql.types import (
    Aggregate,
    AnyCondition,
    Combinator,
    Condition,
    ConditionGroup,
    Field,
    OrderSpec,
    Result,
    Row,
    Rows,
    WriteResult,
)

_UNSET: Any = object()


class TableQuery:
    """Fluent builder for statements against a single table.

    Configuration methods mutate the builder and return it for chaining.
    ``build_query`` and ``build_conditions`` render SQL with the values written
    inline; the async terminal methods (``get``, ``first``, ``find``,
    ``insert``, ``update``, ``delete``, ``create``, ``drop``) execute the same
    statement with bound parameters.

    A builder is meant for one logical query. Use ``clone`` to reuse one as a
    template, and never share an instance between concurrent tasks.

    Example::

        rows = await (
            db.table("users")
            .select(["id", "name"])
            .where("age", ">", 25)
            .or_where("name", "=", "Jane")
            .order_by("name")
            .get()
        )
    """

    def __init__(self, table_name: str, executor: Executor | None = None):
        if not table_name or not isinstance(table_name, str):
            raise ValidationError("A table name is required")

        self.table_name = table_name
        self.executor = executor
        self._columns: list[str] = []
        self._distinct = False
        self._aggregate: tuple[Aggregate, str] | None = None
        self._conditions: list[AnyCondition] = []
        self._next_combinator: Combinator = "AND"
        self._joins: list[str] = []
        self._group_by: list[str] = []
        self._order_by: list[OrderSpec] = []
        self._limit: int | None = None
        self._page: int | None = None

    def __str__(self) -> str:
        return self.build_query()

    @property
    def conditions(self) -> list[AnyCondition]:
        return list(self._conditions)

    def clone(self) -> TableQuery:
        other = TableQuery(self.table_name, self.executor)
        other._columns = list(self._columns)
        other._distinct = self._distinct
        other._aggregate = self._aggregate
        other._conditions = copy.deepcopy(self._conditions)
        other._next_combinator = self._next_combinator
        other._joins = list(self._joins)
        other._group_by = list(self._group_by)
        other._order_by = [spec.copy() for spec in self._order_by]
        other._limit = self._limit
        other._page = self._page
        return other

    def group(self) -> TableQuery:
        """Scratch builder on the same table, to be passed to ``where_group``"""
        return TableQuery(self.table_name)

    def columns(self) -> Columns:
        return Columns(self.table_name, self.executor)

    # --- Projection ---

    def select(self, columns: Sequence[str] = ()) -> TableQuery:
        if isinstance(columns, str):
            columns = [columns]
        self._columns = list(columns)
        self._aggregate = None
        return self

    def distinct(self) -> TableQuery:
        self._distinct = True
        return self

    def _set_aggregate(self, func: Aggregate, column: str) -> TableQuery:
        self._aggregate = (func, column)
        self._columns = []
        return self

    def count(self, column: str = "*") -> TableQuery:
        return self._set_aggregate("COUNT", column)

    def sum(self, column: str = "*") -> TableQuery:
        return self._set_aggregate("SUM", column)

    def avg(self, column: str = "*") -> TableQuery:
        return self._set_aggregate("AVG", column)

    def max(self, column: str = "*") -> TableQuery:
        return self._set_aggregate("MAX", column)

    def min(self, column: str = "*") -> TableQuery:
        return self._set_aggregate("MIN", column)

    # --- Conditions ---

    def _check_condition(self, column: str, operator: str, value: Any):
        if not column or not isinstance(column, str):
            raise ValidationError("A condition needs a column")
        if not operator or not isinstance(operator, str):
            raise ValidationError(f"Invalid operator for column '{column}': {operator!r}")

        keyword = operator.upper()
        if keyword in NULL_OPERATORS:
            return
        if keyword in ("BETWEEN", "IN"):
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                raise ValidationError(f"{keyword} on '{column}' needs a list of values")
            values = list(value)
            if keyword == "BETWEEN" and len(values) != 2:
                raise ValidationError(f"BETWEEN on '{column}' needs exactly two values")
            if keyword == "IN" and not values:
                raise ValidationError(f"IN on '{column}' needs at least one value")
            for item in values:
                check_value(item, column)
            return
        check_value(value, column)

    def _push(
        self,
        column: str,
        operator: str,
        value: Any = None,
        combinator: Combinator | None = None,
    ) -> TableQuery:
        self._check_condition(column, operator, value)
        if operator.upper() in ("BETWEEN", "IN"):
            value = list(value)

        if combinator is None:
            combinator = self._next_combinator
            self._next_combinator = "AND"
        self._conditions.append(Condition(column, operator, value, combinator))
        return self

    @staticmethod
    def _resolve_operator(column: str, operator: Any, value: Any) -> tuple[str, Any]:
        if value is _UNSET:
            if operator is _UNSET:
                raise ValidationError(f"Condition on '{column}' needs a value")
            if isinstance(operator, str) and operator.upper() in NULL_OPERATORS:
                return operator, None
            # where("name", "Jane") compares for equality
            return "=", operator
        if operator is None or operator is _UNSET:
            return "=", value
        return operator, value

    def where(self, column: str, operator: Any = _UNSET, value: Any = _UNSET) -> TableQuery:
        operator, value = self._resolve_operator(column, operator, value)
        return self._push(column, operator, value)

    def or_where(
        self, column: str, operator: Any = _UNSET, value: Any = _UNSET
    ) -> TableQuery:
        operator, value = self._resolve_operator(column, operator, value)
        return self._push(column, operator, value, combinator="OR")

    def where_between(self, column: str, values: Sequence[Any]) -> TableQuery:
        bounds = list(values)[:2]
        if len(bounds) < 2 or bounds[0] is None or bounds[1] is None:
            return self
        return self._push(column, "BETWEEN", bounds)

    def where_in(self, column: str, values: Iterable[Any]) -> TableQuery:
        if isinstance(values, (str, bytes)):
            raise ValidationError(f"IN on '{column}' needs a list of values")
        values = list(values)
        if not values:
            return self
        return self._push(column, "IN", values)

    def where_null(self, column: str) -> TableQuery:
        return self._push(column, "IS NULL")

    def where_not_null(self, column: str) -> TableQuery:
        return self._push(column, "IS NOT NULL")

    def where_group(self, group: TableQuery | Callable[[TableQuery], Any]) -> TableQuery:
        """Add the conditions of a nested builder as one parenthesized condition.

        ``group`` is either a builder obtained from ``group()`` or a callable
        that receives such a builder and adds conditions to it. A group with no
        conditions is ignored.
        """
        if isinstance(group, TableQuery):
            nested = group
        elif callable(group):
            nested = self.group()
            group(nested)
        else:
            raise ValidationError("where_group() needs a builder or a callable")

        if not nested._conditions:
            return self

        self._conditions.append(
            ConditionGroup(copy.deepcopy(nested._conditions), self._next_combinator)
        )
        self._next_combinator = "AND"
        return self

    def and_(self) -> TableQuery:
        self._next_combinator = "AND"
        return self

    def or_(self) -> TableQuery:
        self._next_combinator = "OR"
        return self

    # --- Joins, grouping, ordering, pagination ---

    def _join(self, kind: str, table: str, first: str, operator: str, second: str):
        self._joins.append(f"{kind} {table} ON {first} {operator} {second}")
        return self

    def join(self, table: str, first: str, operator: str, second: str) -> TableQuery:
        return self._join("JOIN", table, first, operator, second)

    def left_join(self, table: str, first: str, operator: str, second: str) -> TableQuery:
        return self._join("LEFT JOIN", table, first, operator, second)

    def right_join(self, table: str, first: str, operator: str, second: str) -> TableQuery:
        return self._join("RIGHT JOIN", table, first, operator, second)

    def group_by(self, column: str) -> TableQuery:
        self._group_by.append(column)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> TableQuery:
        normalized = direction.upper() if isinstance(direction, str) else None
        if normalized not in ("ASC", "DESC"):
            raise InvalidArgument(f"Invalid direction: {direction}. Use 'ASC' or 'DESC'.")
        self._order_by.append({"column": column, "direction": normalized})
        return self

    def limit(self, number: int) -> TableQuery:
        if isinstance(number, bool) or not isinstance(number, int) or number < 0:
            raise InvalidArgument(f"Invalid limit: {number!r}")
        self._limit = number
        return self

    def page(self, number: int) -> TableQuery:
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise InvalidArgument(f"Invalid page: {number!r}. Pages start at 1.")
        self._page = number
        return self

    # --- Compilation ---

    def _base_clause(self) -> str:
        table = quote_identifier(self.table_name)
        if self._aggregate is not None:
            func, column = self._aggregate
            return f"SELECT {func}({column}) AS {func.lower()} FROM {table}"

        projection = ", ".join(self._columns) if self._columns else "*"
        distinct = "DISTINCT " if self._distinct else ""
        return f"SELECT {distinct}{projection} FROM {table}"

    def _compile(self, include_select: bool, params: list[Any] | None) -> str:
        parts = [self._base_clause()] if include_select else []

        if self._joins:
            parts.append(" ".join(self._joins))

        if where := compile_conditions(self._conditions, params):
            parts.append(f"WHERE {where}")

        if self._group_by:
            parts.append(f"GROUP BY {', '.join(self._group_by)}")

        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._limit and self._page is not None:
            parts.append(f"OFFSET {(self._page - 1) * self._limit}")

        # A single aggregate row has nothing to order
        if self._order_by and self._aggregate is None:
            order = ", ".join(f"{o['column']} {o['direction']}" for o in self._order_by)
            parts.append(f"ORDER BY {order}")

        return " ".join(parts)

    def build_query(self, include_select: bool = True) -> str:
        return self._compile(include_select, None)

    def build_conditions(self) -> str:
        return compile_conditions(self._conditions)

    def to_sql(self, include_select: bool = True) -> tuple[str, list[Any]]:
        """The statement with ``%s`` placeholders, and the values to bind"""
        params: list[Any] = []
        sql = self._compile(include_select, params)
        return sql, params

    # --- Execution ---

    async def _execute(self, sql: str, params: list[Any] | None = None) -> Result:
        if self.executor is None:
            raise ExecutionError("No database connection has been established")
        return await self.executor.execute(sql, params)

    async def get(self) -> Rows:
        sql, params = self.to_sql()
        return await self._execute(sql, params)

    async def first(self) -> Row | None:
        rows = await self.get()
        return rows[0] if rows else None

    async def find(self, value: Any, column: str = "id") -> Row | None:
        self.where(column, "=", value)
        return await self.first()

    @staticmethod
    def _check_row(row: Any, operation: str):
        if not isinstance(row, Mapping) or not row:
            raise ValidationError(
                f"{operation}() requires non-empty mappings of column/value pairs"
            )
        for column, value in row.items():
            check_value(value, column)

    async def insert(self, rows: list[Mapping[str, Any]]) -> list[Row | None]:
        """Insert ``rows`` one statement at a time.

        Every row is validated before the first statement runs. Each inserted
        row is read back by its generated ``id``. Rows inserted before a failing
        statement are not rolled back.
        """
        if not isinstance(rows, list) or not rows:
            raise ValidationError("insert() requires a non-empty list of rows")
        for row in rows:
            self._check_row(row, "insert")

        table = quote_identifier(self.table_name)
        inserted = []
        for row in rows:
            params: list[Any] = []
            columns = ", ".join(quote_identifier(column) for column in row)
            values = render_values(row.values(), params)
            result = await self._execute(
                f"INSERT INTO {table} ({columns}) VALUES ({values})", params
            )

            insert_id = result.insert_id if isinstance(result, WriteResult) else None
            lookup = TableQuery(self.table_name, self.executor)
            inserted.append(await lookup.where("id", "=", insert_id or 0).first())

        return inserted

    async def update(self, patch: Mapping[str, Any]) -> Result:
        self._check_row(patch, "update")
        if not self._conditions:
            raise PreconditionFailed("update() requires at least one WHERE condition")

        params: list[Any] = []
        assignments = ", ".join(
            f"{quote_identifier(column)} = {render_value(value, params)}"
            for column, value in patch.items()
        )
        where = compile_conditions(self._conditions, params)
        table = quote_identifier(self.table_name)
        return await self._execute(f"UPDATE {table} SET {assignments} WHERE {where}", params)

    async def delete(self) -> Result:
        if not self._conditions:
            raise PreconditionFailed("delete() requires at least one WHERE condition")

        params: list[Any] = []
        where = compile_conditions(self._conditions, params)
        table = quote_identifier(self.table_name)
        return await self._execute(f"DELETE FROM {table} WHERE {where}", params)

    async def create(self, fields: list[Field]) -> bool:
        validate_fields(fields, allow_empty=False)
        await self._execute(create_table_sql(self.table_name, fields))
        logger.info(f"Table '{self.table_name}' is in place ({len(fields)} columns)")
        return True

    async def drop(self) -> bool:
        await self._execute(drop_table_sql(self.table_name))
        logger.info(f"Dropped table '{self.table_name}'")
        return True
