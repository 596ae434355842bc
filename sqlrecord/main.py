from __future__ import annotations

import json
import sys
from typing import List, Optional, Tuple

import typer
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sqlrecord.config import get_settings
from sqlrecord.exceptions import DatabaseConnectionError, SqlRecordError
from sqlrecord.infrastructure.connection import Connection
from sqlrecord.reporter import print_rows
from sqlrecord.utils.logging import configure_logging

app = typer.Typer(help="sqlrecord CLI: inspect the configured database.")


def _open_connection() -> Connection:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return Connection(settings.connection_config())


def connect_with_retry(connection: Connection, attempts: int) -> None:
    """
    Open ``connection``, retrying transient failures with exponential backoff.

    Retrying is a CLI concern: the connection itself never retries.
    """

    @retry(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(DatabaseConnectionError),
        reraise=True,
    )
    def _connect() -> None:
        connection.connect()

    _connect()


def _parse_where(expressions: List[str]) -> List[Tuple[str, str]]:
    pairs = []
    for expression in expressions:
        column, sep, value = expression.partition("=")
        if not sep or not column.strip():
            raise typer.BadParameter(f"Expected COLUMN=VALUE, got '{expression}'", param_hint="--where")
        pairs.append((column.strip(), value))
    return pairs


@app.command()
def info() -> None:
    """
    Show effective connection settings (credentials omitted).
    """
    settings = get_settings()
    config = settings.connection_config()
    typer.echo(f"DSN={config.dsn} | user={config.username} | env={settings.app_env}")


@app.command()
def ping(
    retries: int = typer.Option(
        1,
        "--retries",
        "-r",
        help="Connection attempts before giving up (exponential backoff between attempts).",
    ),
) -> None:
    """
    Connect to the database and run SELECT 1.
    """
    with _open_connection() as db:
        try:
            connect_with_retry(db, retries)
            db.fetch("SELECT 1 AS ok")
        except SqlRecordError as exc:
            typer.echo(f"FAILED: {exc}", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"OK: {db.config.dsn}")


@app.command()
def rows(
    table: str = typer.Argument(..., help="Table to read."),
    where: Optional[List[str]] = typer.Option(
        None,
        "--where",
        "-w",
        help="Equality filter COLUMN=VALUE; repeat to AND several filters.",
    ),
    order_by: Optional[str] = typer.Option(None, "--order-by", "-o", help="Column to sort by."),
    desc: bool = typer.Option(False, "--desc", help="Sort descending."),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum rows to show (0 for no limit)."),
    as_json: bool = typer.Option(False, "--json", help="Emit rows as JSON instead of a table."),
) -> None:
    """
    Print rows from TABLE.
    """
    filters = _parse_where(where or [])
    with _open_connection() as db:
        builder = db.table(table)
        for column, value in filters:
            builder.where(column, "=", value)
        if order_by:
            builder.order_by(order_by, "DESC" if desc else "ASC")
        builder.limit(limit)
        try:
            result = builder.get()
        except SqlRecordError as exc:
            typer.echo(f"FAILED: {exc}", err=True)
            raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result, indent=2, default=str))
    else:
        print_rows(result, title=table)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
