"""
MySQL → SQLite Translator
Converts MySQL statements (DDL, DML, transaction control) into statements
SQLite can execute, each paired with the named parameters extracted from its
string literals.

Usage:
    python sqlite_translator.py --inline "SELECT YEAR(post_date) FROM wp_posts WHERE post_type = 'post'"
    python sqlite_translator.py --input schema.sql --output schema_sqlite.sql --prefix wp_
"""

import json
import logging
import sys
from typing import Callable, Dict, List, Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ddl_translator import DDLTranslator, Statement
from dml_translator import DMLTranslator
from literal_extractor import extract_literals
from sql_lexer import Token, split_statements, tokenize
from statement_classifier import DDL_KINDS, DML_KINDS, StatementKind, classify
from translation_errors import TranslationError
from translation_result import TranslationResult, assemble
from translator_config import TranslatorConfig, load_config

console = Console()
logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")


class SQLiteTranslator:
    """Translates one MySQL statement at a time into an ordered TranslationResult.

    ``table_prefix`` names the schema's table prefix for callers and reports. It
    never rewrites output: index names already carry the prefix through the
    table name (``wp_posts__post_name``).
    """

    def __init__(self, config: Optional[TranslatorConfig] = None, table_prefix: str = ""):
        self.config = config or load_config()
        self.table_prefix = table_prefix
        self.ddl = DDLTranslator(self.config)
        self.dml = DMLTranslator(self.config)

        self._dispatch: Dict[StatementKind, Callable[[StatementKind, Sequence[Token], str], List[Statement]]] = {
            StatementKind.TRANSACTION: self._passthrough,
            StatementKind.IGNORABLE: self._noop,
            StatementKind.ALTER_ADD_FULLTEXT_KEY: self._noop,
        }
        for kind in DDL_KINDS:
            self._dispatch[kind] = self.ddl.translate
        for kind in DML_KINDS:
            self._dispatch[kind] = self._translate_dml

        missing = set(StatementKind) - set(self._dispatch)
        if missing:
            raise RuntimeError(f"No translation strategy for {sorted(k.value for k in missing)}")

    def translate(self, sql: str) -> TranslationResult:
        """Translate a single MySQL statement."""
        tokens = tokenize(sql)
        kind = classify(tokens, sql)
        statements = self._dispatch[kind](kind, tokens, sql)
        logger.debug(f"[{kind.value}] {sql.strip()[:80]!r} → {len(statements)} queries")
        return assemble(statements, kind=kind, table_prefix=self.table_prefix)

    def _translate_dml(self, kind: StatementKind, tokens: Sequence[Token], sql: str) -> List[Statement]:
        tokens, params = extract_literals(tokens, self.config.placeholder_prefix)
        return [(self.dml.translate(kind, tokens, sql), params)]

    def _passthrough(self, kind: StatementKind, tokens: Sequence[Token], sql: str) -> List[Statement]:
        return [(sql, {})]

    def _noop(self, kind: StatementKind, tokens: Sequence[Token], sql: str) -> List[Statement]:
        logger.info(f"Ignoring statement with no SQLite equivalent: {sql.strip()[:80]!r}")
        return [(self.config.noop_sql, {})]

    def translate_file(self, input_path: str, output_path: str) -> int:
        """Translate every statement of a MySQL batch file; return the query count."""
        with open(input_path, "r", encoding="utf-8") as f:
            source_sql = f.read()

        # Translate everything before writing anything.
        queries = []
        for statement in split_statements(source_sql):
            queries.extend(self.translate(statement))

        with open(output_path, "w", encoding="utf-8") as f:
            f.write("-- Auto-translated from MySQL to SQLite\n")
            f.write("-- Review carefully before executing\n\n")
            for query in queries:
                if query.params:
                    f.write(f"-- params: {json.dumps(dict(query.params), ensure_ascii=False)}\n")
                f.write(f"{query.sql};\n\n")

        logger.info(f"Translated {len(queries)} queries → {output_path}")
        return len(queries)


def translate(sql: str, table_prefix: str = "") -> TranslationResult:
    """Translate a single statement with the default configuration."""
    return SQLiteTranslator(table_prefix=table_prefix).translate(sql)


@click.command()
@click.option("--input", "-i", "input_path", help="Path to source MySQL SQL file")
@click.option("--output", "-o", "output_path", help="Path to output SQLite SQL file")
@click.option("--inline", help="Translate a single inline SQL statement")
@click.option("--prefix", "-p", "table_prefix", default="", help="Table name prefix of the schema")
@click.option("--config", "-c", "config_path", help="JSON file overriding the mapping tables")
def main(input_path: str, output_path: str, inline: str, table_prefix: str, config_path: str):
    """Translate MySQL SQL to SQLite SQL."""
    translator = SQLiteTranslator(load_config(config_path), table_prefix=table_prefix)

    try:
        if inline:
            result = translator.translate(inline)
            table = Table(title=f"MySQL → SQLite ({result.kind.value})")
            table.add_column("#", justify="right")
            table.add_column("SQLite")
            table.add_column("Params")
            for i, query in enumerate(result, 1):
                params = json.dumps(dict(query.params), ensure_ascii=False) if query.params else ""
                table.add_row(str(i), escape(query.sql), escape(params))
            console.print(table)
        elif input_path and output_path:
            translator.translate_file(input_path, output_path)
        else:
            click.echo("Provide either --input/--output or --inline. Use --help for details.")
    except TranslationError as e:
        logger.error(f"Translation failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
