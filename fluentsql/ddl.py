"""
Column definitions for CREATE TABLE and ALTER TABLE statements.

A column definition is assembled in a fixed order::

    `name` TYPE(length) [DEFAULT ...] [PRIMARY KEY] [AUTO_INCREMENT] [UNIQUE]

followed, for fields with a foreign key, by a separate FOREIGN KEY clause.

Default values follow a three-way rule that depends on the column type:

- ``default_value`` missing from the field: no DEFAULT clause at all.
- text family (VARCHAR, CHAR, TEXT, ENUM, SET): a non-empty value is quoted,
  ``None`` or ``""`` gives ``DEFAULT NULL``.
- any other type: ``"NONE"`` or ``None`` gives no clause, ``""`` gives
  ``DEFAULT NULL``, anything else is written unquoted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Collection, Sequence, get_args

from fluentsql.errors import ValidationError
from fluentsql.types import Field, FieldOption

TEXT_FAMILY = frozenset({"VARCHAR", "CHAR", "TEXT", "ENUM", "SET"})
UNSIZED_TYPES = frozenset({"TEXT", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT"})
NO_DEFAULT = "NONE"
VALID_OPTIONS = frozenset(get_args(FieldOption))


def quote_identifier(name: str) -> str:
    escaped = name.replace("`", "``")
    return f"`{escaped}`"


def base_type(type_: str) -> str:
    return type_.split("(", 1)[0].strip().upper()


def is_text_type(type_: str) -> bool:
    return base_type(type_) in TEXT_FAMILY


def validate_fields(fields: Sequence[Field], allow_empty: bool = True) -> None:
    if isinstance(fields, (str, bytes)) or not isinstance(fields, Sequence):
        raise ValidationError("Fields must be given as a list of field descriptors")
    if not fields and not allow_empty:
        raise ValidationError("At least one field is required")

    for field in fields:
        if not isinstance(field, Mapping):
            raise ValidationError(f"Invalid field descriptor: {field!r}")

        name, type_ = field.get("name"), field.get("type")
        if not name or not type_ or not isinstance(name, str) or not isinstance(type_, str):
            raise ValidationError("Every field must have a name and a type")

        unknown = set(field.get("options") or ()) - VALID_OPTIONS
        if unknown:
            raise ValidationError(
                f"Field '{name}' has unknown options: {', '.join(sorted(unknown))}"
            )

        foreign_key = field.get("foreign_key")
        if foreign_key and not (foreign_key.get("table") and foreign_key.get("column")):
            raise ValidationError(
                f"Foreign key of field '{name}' needs both a table and a column"
            )


def full_type(field: Field) -> str:
    type_ = field["type"]
    length = field.get("length")
    if length and base_type(type_) not in UNSIZED_TYPES:
        return f"{type_}({length})"
    return type_


def default_literal(value: Any) -> str:
    """A non-text default as MySQL writes it back in SHOW COLUMNS"""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def default_clause(field: Field) -> str:
    if "default_value" not in field:
        return ""

    value: Any = field["default_value"]
    if is_text_type(field["type"]):
        return f" DEFAULT '{value}'" if value else " DEFAULT NULL"

    if value is None or value == NO_DEFAULT:
        return ""
    if value == "":
        return " DEFAULT NULL"
    return f" DEFAULT {default_literal(value)}"


def options_clause(field: Field, skip: Collection[str] = ()) -> str:
    options = set(field.get("options") or ()) - set(skip)
    clause = ""
    if "primary" in options:
        clause += " PRIMARY KEY"
    if "autoincrement" in options:
        clause += " AUTO_INCREMENT"
    if "unique" in options:
        clause += " UNIQUE"
    return clause


def column_definition(field: Field, skip_options: Collection[str] = ()) -> str:
    return (
        f"{quote_identifier(field['name'])} {full_type(field)}"
        f"{default_clause(field)}{options_clause(field, skip_options)}"
    )


def foreign_key_clause(field: Field, alter: bool = False) -> str:
    foreign_key = field.get("foreign_key")
    if not foreign_key:
        return ""

    keyword = "ADD FOREIGN KEY" if alter else "FOREIGN KEY"
    return (
        f", {keyword} ({quote_identifier(field['name'])}) "
        f"REFERENCES {quote_identifier(foreign_key['table'])}"
        f"({quote_identifier(foreign_key['column'])})"
    )


def create_table_sql(table: str, fields: Sequence[Field]) -> str:
    definitions = ", ".join(
        column_definition(field) + foreign_key_clause(field) for field in fields
    )
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} ({definitions})"


def drop_table_sql(table: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_identifier(table)}"


def add_column_sql(table: str, field: Field) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table)} ADD COLUMN "
        f"{column_definition(field)}{foreign_key_clause(field, alter=True)}"
    )


def modify_column_sql(
    table: str,
    field: Field,
    skip_options: Collection[str] = (),
    with_foreign_key: bool = True,
) -> str:
    sql = (
        f"ALTER TABLE {quote_identifier(table)} MODIFY COLUMN "
        f"{column_definition(field, skip_options)}"
    )
    if with_foreign_key:
        sql += foreign_key_clause(field, alter=True)
    return sql


def drop_column_sql(table: str, name: str) -> str:
    return f"ALTER TABLE {quote_identifier(table)} DROP COLUMN {quote_identifier(name)}"
