"""
Read-before-write schema evolution for a single table.

Every operation introspects the live table first (nothing is cached) and only
emits the ALTER statements needed to reach the requested field list. The
statements of one call run one after the other without a transaction: if one
of them fails, the ones before it stay applied.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from fluentsql.ddl import (
    NO_DEFAULT,
    add_column_sql,
    default_literal,
    drop_column_sql,
    full_type,
    is_text_type,
    modify_column_sql,
    quote_identifier,
    validate_fields,
)
from fluentsql.errors import ExecutionError
from fluentsql.executor import Executor
from fluentsql.types import ColumnMeta, Field, Result


def _text(value: Any) -> Any:
    # Some driver versions hand back SHOW COLUMNS cells as bytes
    if isinstance(value, (bytes, bytearray)):
        return value.decode()
    return value


def _desired_default(field: Field) -> str | None:
    """The default the column ends up with once its definition is applied"""
    if "default_value" not in field:
        return None

    value = field["default_value"]
    if is_text_type(field["type"]):
        return str(value) if value else None
    if value is None or value == NO_DEFAULT or value == "":
        return None
    return default_literal(value)


def _live_default(column: ColumnMeta) -> str | None:
    value = column["default_value"]
    return None if value is None else str(value)


def needs_modify(field: Field, column: ColumnMeta) -> bool:
    options = set(field.get("options") or ())
    return (
        column["type"].lower() != full_type(field).lower()
        or _desired_default(field) != _live_default(column)
        or ("autoincrement" in options and "auto_increment" not in column["extra"].lower())
        or ("unique" in options and column["key"] != "UNI")
        or ("primary" in options and column["key"] != "PRI")
    )


class Columns:
    def __init__(self, table_name: str, executor: Executor | None = None):
        self.table_name = table_name
        self.executor = executor

    async def _execute(self, sql: str, params: list[Any] | None = None) -> Result:
        if self.executor is None:
            raise ExecutionError("No database connection has been established")
        return await self.executor.execute(sql, params)

    async def get(self) -> dict[str, ColumnMeta]:
        """Live column metadata keyed by column name, empty if the table is missing"""
        tables = await self._execute("SHOW TABLES LIKE %s", [self.table_name])
        if not tables:
            return {}

        rows = await self._execute(f"SHOW COLUMNS FROM {quote_identifier(self.table_name)}")
        return {
            _text(row["Field"]): {
                "type": _text(row["Type"]),
                "default_value": _text(row["Default"]),
                "key": _text(row["Key"]) or "",
                "extra": _text(row["Extra"]) or "",
            }
            for row in rows
        }

    async def add(self, fields: list[Field]) -> bool:
        """Add the fields that are not columns yet; existing columns are left alone"""
        validate_fields(fields)
        current = await self.get()

        for field in fields:
            if field["name"] in current:
                continue
            await self._execute(add_column_sql(self.table_name, field))
            logger.info(f"Added column '{field['name']}' to '{self.table_name}'")

        return True

    async def edit(self, fields: list[Field]) -> bool:
        """Modify existing columns whose type, default or options differ.

        PRIMARY KEY and UNIQUE are left out of the new definition when the live
        column already carries them, and a foreign key is only attached to a
        column that is not indexed yet.
        """
        validate_fields(fields)
        current = await self.get()

        for field in fields:
            column = current.get(field["name"])
            if column is None or not needs_modify(field, column):
                continue

            skip = []
            if column["key"] == "PRI":
                skip.append("primary")
            if column["key"] == "UNI":
                skip.append("unique")

            sql = modify_column_sql(
                self.table_name, field, skip, with_foreign_key=column["key"] != "MUL"
            )
            await self._execute(sql)
            logger.info(f"Modified column '{field['name']}' of '{self.table_name}'")

        return True

    async def delete(self, fields: Sequence[str | Field]) -> bool:
        """Drop the named columns; names that are not columns are skipped"""
        if isinstance(fields, str):
            fields = [fields]
        current = await self.get()

        for item in fields:
            name = item["name"] if isinstance(item, Mapping) else item
            if name not in current:
                continue
            await self._execute(drop_column_sql(self.table_name, name))
            logger.info(f"Dropped column '{name}' from '{self.table_name}'")

        return True
