from __future__ import annotations

from loguru import logger

from fluentsql.config import Config
from fluentsql.errors import ExecutionError, QueryError, ValidationError
from fluentsql.executor import (
    GENERIC_ERROR_MESSAGE,
    Executor,
    MySQLExecutor,
    execute_batch,
)
from fluentsql.query import TableQuery
from fluentsql.types import Query, QueryResponse, Result


class Database:
    """Entry point tying builders and raw queries to one executor.

    The executor (and the connection pool behind it) is passed in explicitly;
    create one ``Database`` per pool you want to share.
    """

    def __init__(self, executor: Executor):
        self.executor = executor

    @classmethod
    def from_config(cls, config: Config) -> "Database":
        return cls(MySQLExecutor(config))

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def table(self, table_name: str) -> TableQuery:
        return TableQuery(table_name, self.executor)

    async def raw(self, sql: Query) -> Result | list[Result]:
        if not isinstance(sql, str):
            raise ValidationError("The SQL query must be a string.")
        return await execute_batch(self.executor, sql)

    async def query(self, sql: Query) -> QueryResponse:
        """Run free-form SQL and report the outcome instead of raising.

        Statements separated by ``;`` run in order; ``data`` holds the result of
        a single statement, or the list of results when there are several.
        """
        if not isinstance(sql, str):
            raise ValidationError("The SQL query must be a string.")

        try:
            data = await execute_batch(self.executor, sql)
        except Exception as e:
            logger.exception("Error executing raw query")
            message = e.message if isinstance(e, QueryError) else str(e)
            return {
                "status": "error",
                "message": message or GENERIC_ERROR_MESSAGE,
                "data": None,
            }

        return {
            "status": "success",
            "message": "Query executed successfully",
            "data": data,
        }

    async def ping(self) -> bool:
        try:
            await self.executor.execute("SELECT 1")
            return True
        except ExecutionError:
            return False

    async def close(self):
        await self.executor.close()
