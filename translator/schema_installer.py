"""
Schema Installer — Creates a SQLite schema from a MySQL schema batch.

The batch is split into statements, every statement is translated up front
(a translation failure aborts the whole install before anything runs), then
all translated queries execute inside a single transaction. A commit that
hits a busy/locked database is retried; any other error rolls back.

Usage:
    python schema_installer.py --db site.sqlite --schema schema.sql --prefix wp_
"""

import json
import logging
import sqlite3
import sys
import time
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sql_lexer import split_statements
from sqlite_translator import SQLiteTranslator
from translation_errors import TranslationError
from translation_result import ExecutedQuery
from translator_config import TranslatorConfig, load_config

console = Console()
logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

# SQLITE_BUSY, SQLITE_LOCKED
LOCK_ERROR_CODES = (5, 6)


class SchemaInstallError(Exception):
    """Executing a translated schema failed; the transaction was rolled back."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message)
        self.query = query


def is_lock_error(error: sqlite3.Error) -> bool:
    code = getattr(error, "sqlite_errorcode", None)
    if code is not None:
        return code & 0xFF in LOCK_ERROR_CODES
    message = str(error).lower()
    return "locked" in message or "busy" in message


class SchemaInstaller:
    """Translates a MySQL schema batch and executes it against a SQLite database."""

    def __init__(self, db_path: str, table_prefix: str = "", config: Optional[TranslatorConfig] = None):
        self.db_path = db_path
        self.config = config or load_config()
        self.translator = SQLiteTranslator(self.config, table_prefix=table_prefix)
        self.results: List[Dict[str, Any]] = []

    def translate_schema(self, schema_sql: str) -> List[ExecutedQuery]:
        """Translate every statement of the batch, in order."""
        queries: List[ExecutedQuery] = []
        self.results = []
        for statement in split_statements(schema_sql):
            translation = self.translator.translate(statement)
            queries.extend(translation)
            self.results.append({
                "statement": statement,
                "kind": translation.kind.value,
                "queries": len(translation),
            })
        return queries

    def install(self, schema_sql: str, connection: Optional[sqlite3.Connection] = None) -> int:
        """Create the schema; return the number of executed queries."""
        try:
            queries = self.translate_schema(schema_sql)
        except TranslationError as e:
            logger.error(f"Schema translation failed: {e}")
            raise

        own_connection = connection is None
        if own_connection:
            connection = sqlite3.connect(self.db_path, isolation_level=None)
        try:
            self._execute(connection, queries)
        finally:
            if own_connection:
                connection.close()

        logger.info(f"Installed {len(self.results)} statements as {len(queries)} queries into {self.db_path}")
        return len(queries)

    def _execute(self, connection: sqlite3.Connection, queries: List[ExecutedQuery]) -> None:
        query = None
        try:
            connection.execute("BEGIN")
            for query in queries:
                connection.execute(query.sql, dict(query.params))
            query = None
            self._commit(connection)
        except sqlite3.Error as e:
            if connection.in_transaction:
                connection.execute("ROLLBACK")
            failed = query.sql if query is not None else None
            logger.error(f"Error occurred while creating tables or indexes. Query was: {failed!r}")
            raise SchemaInstallError(f"Error occurred while creating tables or indexes: {e}", failed) from e

    def _commit(self, connection: sqlite3.Connection) -> None:
        attempt = 0
        while True:
            try:
                connection.execute("COMMIT")
                return
            except sqlite3.OperationalError as e:
                if not is_lock_error(e) or attempt >= self.config.max_retries:
                    raise
                attempt += 1
                logger.warning(f"Database locked on commit, retrying ({attempt}/{self.config.max_retries})")
                time.sleep(self.config.retry_delay_seconds)

    def print_summary(self) -> None:
        table = Table(title="Schema Installation")
        table.add_column("Kind", style="cyan")
        table.add_column("Statements", justify="right")
        table.add_column("Queries", justify="right")

        by_kind: Dict[str, List[int]] = {}
        for r in self.results:
            counts = by_kind.setdefault(r["kind"], [0, 0])
            counts[0] += 1
            counts[1] += r["queries"]
        for kind, (statements, queries) in sorted(by_kind.items()):
            table.add_row(kind, str(statements), str(queries))
        console.print(table)

    def save_results(self, output_path: str) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.results, f, indent=2)


@click.command()
@click.option("--db", "db_path", required=True, help="Path to the SQLite database file")
@click.option("--schema", "-s", "schema_path", required=True, type=click.Path(exists=True),
              help="Path to the MySQL schema batch")
@click.option("--prefix", "-p", "table_prefix", default="", help="Table name prefix of the schema")
@click.option("--config", "-c", "config_path", help="JSON file overriding translator settings")
def main(db_path: str, schema_path: str, table_prefix: str, config_path: str):
    """Translate a MySQL schema and create it in a SQLite database."""
    console.print("[bold]MySQL → SQLite Schema Installer[/bold]")
    console.print(f"Schema: {schema_path}")
    console.print(f"Database: {db_path}")

    with open(schema_path, "r", encoding="utf-8") as f:
        schema_sql = f.read()

    installer = SchemaInstaller(db_path, table_prefix=table_prefix, config=load_config(config_path))
    try:
        count = installer.install(schema_sql)
    except (TranslationError, SchemaInstallError) as e:
        console.print(f"[red]Installation failed:[/red] {escape(str(e))}")
        sys.exit(1)

    installer.print_summary()
    console.print(f"[bold green]Executed {count} queries[/bold green]")


if __name__ == "__main__":
    main()
