import asyncio
from typing import Optional

import orjson
import typer
from loguru import logger
from typer import Argument, Option, Typer

from .config import Config
from .database import Database


schema_app = Typer()

app = Typer()
app.add_typer(schema_app, name="schema")


def _open_database(env_file: Optional[str]) -> Database:
    config = Config.from_file(env_file) if env_file else Config.from_env()
    return Database.from_config(config)


def _echo_json(data):
    typer.echo(orjson.dumps(data, default=str, option=orjson.OPT_INDENT_2).decode())


async def _query(sql: str, env_file: Optional[str]) -> bool:
    async with _open_database(env_file) as db:
        response = await db.query(sql)
    _echo_json(response)
    return response["status"] == "success"


async def _columns(table: str, env_file: Optional[str]):
    async with _open_database(env_file) as db:
        columns = await db.table(table).columns().get()
    if not columns:
        logger.warning(f"Table '{table}' does not exist")
    _echo_json(columns)


@app.command()
def query(
    sql: str = Argument(..., help="SQL to run, statements separated by ';'"),
    env_file: Optional[str] = Option(None, "--env-file", "-e"),
):
    if not asyncio.run(_query(sql, env_file)):
        raise typer.Exit(code=1)


@schema_app.command()
def columns(
    table: str = Argument(...),
    env_file: Optional[str] = Option(None, "--env-file", "-e"),
):
    asyncio.run(_columns(table, env_file))
