import orjson
import pytest
from typer.testing import CliRunner

from fluentsql import cli
from fluentsql.database import Database
from fluentsql.errors import ExecutionError
from tests.utils import FakeExecutor, FakeMetadataStore

runner = CliRunner()


@pytest.fixture
def open_with(monkeypatch):
    """Points the CLI at the given executor instead of a real MySQL server."""

    def _open_with(executor):
        opened = []

        def _open_database(env_file):
            opened.append(env_file)
            return Database(executor)

        monkeypatch.setattr(cli, "_open_database", _open_database)
        return opened

    return _open_with


def test_query_prints_response(open_with):
    executor = FakeExecutor([[{"id": 1, "name": "Alice"}]])
    opened = open_with(executor)

    result = runner.invoke(cli.app, ["query", "SELECT * FROM users", "-e", "prod.env"])

    assert result.exit_code == 0
    assert orjson.loads(result.stdout) == {
        "status": "success",
        "message": "Query executed successfully",
        "data": [{"id": 1, "name": "Alice"}],
    }
    assert opened == ["prod.env"]
    assert executor.closed


def test_query_failure_exits_non_zero(open_with):
    open_with(FakeExecutor([ExecutionError("Unknown column 'nope' in 'field list'")]))

    result = runner.invoke(cli.app, ["query", "SELECT nope FROM users"])

    assert result.exit_code == 1
    response = orjson.loads(result.stdout)
    assert response["status"] == "error"
    assert response["message"] == "Unknown column 'nope' in 'field list'"


def test_schema_columns(open_with):
    store = FakeMetadataStore()
    store.tables["users"] = {
        "id": {
            "Field": "id",
            "Type": "int",
            "Null": "NO",
            "Key": "PRI",
            "Default": None,
            "Extra": "auto_increment",
        }
    }
    open_with(store)

    result = runner.invoke(cli.app, ["schema", "columns", "users"])

    assert result.exit_code == 0
    assert orjson.loads(result.stdout) == {
        "id": {"type": "int", "default_value": None, "key": "PRI", "extra": "auto_increment"}
    }


def test_schema_columns_of_missing_table(open_with):
    open_with(FakeMetadataStore())

    result = runner.invoke(cli.app, ["schema", "columns", "ghosts"])

    assert result.exit_code == 0
    assert orjson.loads(result.stdout) == {}
