from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# mysql.connector refuses pools larger than this
MAX_POOL_SIZE = 32


@dataclass
class Config:
    database: str
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    pool_name: str = "fluentsql"
    pool_size: int = 5
    connect_timeout: int = 10
    charset: str = "utf8mb4"

    def __post_init__(self):
        if not self.database:
            raise ValueError("'database' is required")
        if not self.host:
            raise ValueError("'host' is required")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")
        if not 0 < self.pool_size <= MAX_POOL_SIZE:
            raise ValueError(
                f"'pool_size' must be between 1 and {MAX_POOL_SIZE}, got {self.pool_size}"
            )

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """Build a config from MYSQL_* environment variables.

        Variables found in ``env_file`` (or a ``.env`` in the working directory)
        never override the ones already set in the process environment.
        """
        load_dotenv(env_file, override=False)

        kwargs: dict[str, Any] = {"database": os.getenv("MYSQL_DATABASE", "")}
        if host := os.getenv("MYSQL_HOST"):
            kwargs["host"] = host
        if port := os.getenv("MYSQL_PORT"):
            kwargs["port"] = int(port)
        if user := os.getenv("MYSQL_USER"):
            kwargs["user"] = user
        if (password := os.getenv("MYSQL_PASSWORD")) is not None:
            kwargs["password"] = password
        if pool_size := os.getenv("MYSQL_POOL_SIZE"):
            kwargs["pool_size"] = int(pool_size)

        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return cls.from_env(path)

    def connection_params(self, include_database: bool = True) -> dict[str, Any]:
        params: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "charset": self.charset,
            "connect_timeout": self.connect_timeout,
            "autocommit": True,
        }
        if include_database:
            params["database"] = self.database
        return params
