from __future__ import annotations


class QueryError(Exception):
    """Base class for every error raised by fluentsql"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(QueryError, ValueError):
    """Malformed input to a builder call, raised before any I/O"""


class InvalidArgument(ValidationError):
    pass


class PreconditionFailed(QueryError):
    """A destructive statement was requested without any WHERE condition"""


class ExecutionError(QueryError):
    """The database driver reported a failure"""

    def __init__(
        self, message: str, errno: int | None = None, sqlstate: str | None = None
    ):
        super().__init__(message)
        self.errno = errno
        self.sqlstate = sqlstate


class MissingDatabaseError(ExecutionError):
    """The configured database does not exist on the server (ER_BAD_DB_ERROR)"""
