from fluentsql.columns import Columns
from fluentsql.conditions import compile_conditions
from fluentsql.config import Config
from fluentsql.database import Database
from fluentsql.errors import (
    ExecutionError,
    InvalidArgument,
    MissingDatabaseError,
    PreconditionFailed,
    QueryError,
    ValidationError,
)
from fluentsql.executor import Executor, MySQLExecutor, execute_batch, split_statements
from fluentsql.query import TableQuery
from fluentsql.types import Condition, ConditionGroup, Field, Raw, WriteResult

__all__ = [
    "Columns",
    "Condition",
    "ConditionGroup",
    "Config",
    "Database",
    "ExecutionError",
    "Executor",
    "Field",
    "InvalidArgument",
    "MissingDatabaseError",
    "MySQLExecutor",
    "PreconditionFailed",
    "QueryError",
    "Raw",
    "TableQuery",
    "ValidationError",
    "WriteResult",
    "compile_conditions",
    "execute_batch",
    "split_statements",
]
