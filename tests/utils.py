import re
from typing import Any

from fluentsql.errors import ExecutionError
from fluentsql.types import WriteResult


class FakeExecutor:
    """Records every statement and replays queued responses.

    A queued exception is raised instead of returned. Once the queue is empty
    every statement returns an empty row list.
    """

    def __init__(self, responses: list[Any] | None = None):
        self.statements: list[tuple[str, list[Any]]] = []
        self.responses = list(responses or [])
        self.closed = False

    @property
    def sql(self) -> list[str]:
        return [sql for sql, _ in self.statements]

    async def execute(self, sql: str, params=None):
        self.statements.append((sql, list(params) if params else []))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return []

    async def close(self):
        self.closed = True


_FOREIGN_KEY_RE = re.compile(r", (?:ADD )?FOREIGN KEY")
_DEFINITION_RE = re.compile(r"^`(?P<name>[^`]+)` (?P<type>\S+)(?P<rest>.*)$")
_DEFAULT_RE = re.compile(r" DEFAULT (?:'(?P<quoted>[^']*)'|(?P<bare>\S+))")


def _parse_definition(definition: str) -> dict[str, Any]:
    """Turn a column definition emitted by fluentsql.ddl into a SHOW COLUMNS row"""
    has_foreign_key = bool(_FOREIGN_KEY_RE.search(definition))
    definition = _FOREIGN_KEY_RE.split(definition)[0]
    match = _DEFINITION_RE.match(definition)
    assert match is not None, f"Unparseable column definition: {definition}"
    rest = match.group("rest")

    default = None
    if found := _DEFAULT_RE.search(rest):
        if found.group("quoted") is not None:
            default = found.group("quoted")
        elif found.group("bare") != "NULL":
            default = found.group("bare")

    if " PRIMARY KEY" in rest:
        key = "PRI"
    elif " UNIQUE" in rest:
        key = "UNI"
    elif has_foreign_key:
        key = "MUL"
    else:
        key = ""

    return {
        "Field": match.group("name"),
        "Type": match.group("type").lower(),
        "Null": "NO" if key == "PRI" else "YES",
        "Key": key,
        "Default": default,
        "Extra": "auto_increment" if " AUTO_INCREMENT" in rest else "",
    }


class FakeMetadataStore(FakeExecutor):
    """An executor that keeps table definitions in memory.

    It understands the DDL fluentsql emits and answers SHOW TABLES / SHOW
    COLUMNS the way MySQL does. Statements containing ``fail_on`` raise.
    """

    def __init__(self, fail_on: str | None = None):
        super().__init__()
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.fail_on = fail_on

    def _columns_of(self, table: str) -> dict[str, dict[str, Any]]:
        if table not in self.tables:
            raise ExecutionError(f"Table 'test.{table}' doesn't exist", errno=1146)
        return self.tables[table]

    async def execute(self, sql: str, params=None):
        self.statements.append((sql, list(params) if params else []))
        if self.fail_on and self.fail_on in sql:
            raise ExecutionError(f"Simulated failure on: {sql}", errno=1064)

        if sql.startswith("SHOW TABLES LIKE"):
            name = params[0]
            return [{"Tables_in_test": name}] if name in self.tables else []

        if match := re.match(r"SHOW COLUMNS FROM `([^`]+)`$", sql):
            return [dict(row) for row in self._columns_of(match.group(1)).values()]

        if match := re.match(r"CREATE TABLE IF NOT EXISTS `([^`]+)` \((.*)\)$", sql):
            table, body = match.groups()
            if table not in self.tables:
                columns = {}
                for definition in re.split(r", (?=`)", body):
                    row = _parse_definition(definition)
                    columns[row["Field"]] = row
                self.tables[table] = columns
            return WriteResult(affected_rows=0)

        if match := re.match(r"ALTER TABLE `([^`]+)` (ADD|MODIFY|DROP) COLUMN (.*)$", sql):
            table, action, rest = match.groups()
            columns = self._columns_of(table)
            if action == "DROP":
                del columns[rest.strip("`")]
            else:
                row = _parse_definition(rest)
                if action == "MODIFY" and not row["Key"]:
                    row["Key"] = columns[row["Field"]]["Key"]
                columns[row["Field"]] = row
            return WriteResult(affected_rows=0)

        if match := re.match(r"DROP TABLE IF EXISTS `([^`]+)`$", sql):
            self.tables.pop(match.group(1), None)
            return WriteResult(affected_rows=0)

        return []
