from __future__ import annotations

import asyncio
import threading
from typing import Any, Protocol, Sequence

import mysql.connector
from loguru import logger
from mysql.connector import errorcode, pooling

from fluentsql.config import Config
from fluentsql.ddl import quote_identifier
from fluentsql.errors import ExecutionError, MissingDatabaseError
from fluentsql.types import Query, Result, WriteResult

GENERIC_ERROR_MESSAGE = "An error occurred while executing the query."


class Executor(Protocol):
    async def execute(
        self, sql: Query, params: Sequence[Any] | None = None
    ) -> Result: ...

    async def close(self) -> None: ...


def split_statements(sql: str) -> list[Query]:
    """Split ``sql`` on semicolons that are not inside quotes or backticks"""
    statements: list[str] = []
    current: list[str] = []
    quote: str | None = None
    escaped = False

    for char in sql:
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
        elif char in ("'", '"', "`"):
            quote = char
        elif char == ";":
            statements.append("".join(current))
            current = []
            continue
        current.append(char)

    statements.append("".join(current))
    return [stmt.strip() for stmt in statements if stmt.strip()]


async def execute_batch(executor: Executor, sql: Query) -> Result | list[Result]:
    """Run every statement in ``sql`` in order.

    A single statement gives back its own result, several give back a list.
    """
    results = [await executor.execute(stmt) for stmt in split_statements(sql)]
    if len(results) == 1:
        return results[0]
    return results


def _to_execution_error(error: mysql.connector.Error) -> ExecutionError:
    message = error.msg or str(error) or GENERIC_ERROR_MESSAGE
    error_cls = (
        MissingDatabaseError
        if error.errno == errorcode.ER_BAD_DB_ERROR
        else ExecutionError
    )
    return error_cls(message, errno=error.errno, sqlstate=error.sqlstate)


class MySQLExecutor:
    """Runs statements through a mysql.connector connection pool.

    The driver is blocking, so every call is pushed to a worker thread. The
    driver's pool raises instead of waiting when it is exhausted, so at most
    ``pool_size`` statements are in flight at once and the rest wait for a
    free slot. If the configured database does not exist, it is created on a
    temporary connection and the statement is retried once.
    """

    def __init__(self, config: Config):
        self.config = config
        self._pool: pooling.MySQLConnectionPool | None = None
        self._pool_lock = threading.Lock()
        self._slots = asyncio.Semaphore(config.pool_size)

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                self._pool = pooling.MySQLConnectionPool(
                    pool_name=self.config.pool_name,
                    pool_size=self.config.pool_size,
                    **self.config.connection_params(),
                )
                logger.info(
                    f"🔌 Connection pool '{self.config.pool_name}' ready "
                    f"({self.config.pool_size} connections) for "
                    f"{self.config.host}:{self.config.port}/{self.config.database}"
                )
            return self._pool

    def _discard_pool(self):
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            # Closes the idle connections only; checked-out ones are closed
            # by _run_sync once they come back to the retired pool
            pool._remove_connections()

    def _run_sync(self, sql: Query, params: Sequence[Any] | None) -> Result:
        pool = self._get_pool()
        try:
            conn = pool.get_connection()
        except mysql.connector.Error as e:
            raise _to_execution_error(e) from e

        try:
            cursor = conn.cursor(dictionary=True)
            try:
                cursor.execute(sql, tuple(params) if params else None)
                if cursor.with_rows:
                    return cursor.fetchall()
                return WriteResult(
                    affected_rows=cursor.rowcount, insert_id=cursor.lastrowid or None
                )
            finally:
                cursor.close()
        except mysql.connector.Error as e:
            raise _to_execution_error(e) from e
        finally:
            # Hands the connection back to the pool
            conn.close()
            if pool is not self._pool:
                pool._remove_connections()

    def _create_database_sync(self):
        self._discard_pool()
        try:
            conn = mysql.connector.connect(
                **self.config.connection_params(include_database=False)
            )
        except mysql.connector.Error as e:
            raise _to_execution_error(e) from e

        try:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"CREATE DATABASE IF NOT EXISTS {quote_identifier(self.config.database)}"
                )
            finally:
                cursor.close()
        except mysql.connector.Error as e:
            raise _to_execution_error(e) from e
        finally:
            conn.close()

    async def execute(self, sql: Query, params: Sequence[Any] | None = None) -> Result:
        logger.debug(f"Executing: {sql} ({len(params) if params else 0} params)")
        async with self._slots:
            try:
                return await asyncio.to_thread(self._run_sync, sql, params)
            except MissingDatabaseError as e:
                logger.warning(
                    f"Database '{self.config.database}' is missing ({e.message}), "
                    "creating it and retrying"
                )

            await asyncio.to_thread(self._create_database_sync)
            try:
                return await asyncio.to_thread(self._run_sync, sql, params)
            except MissingDatabaseError as e:
                raise ExecutionError(e.message, errno=e.errno, sqlstate=e.sqlstate) from e

    async def close(self) -> None:
        await asyncio.to_thread(self._discard_pool)
