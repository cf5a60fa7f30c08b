"""
DDL Translator — Rewrites MySQL schema statements for SQLite.

Handles CREATE TABLE, ALTER TABLE ADD COLUMN / ADD KEY / ADD UNIQUE KEY,
standalone CREATE INDEX and DROP INDEX. Inline keys are split out of
CREATE TABLE into separate CREATE INDEX statements named
``<table>__<key name>``, since SQLite index names are global to the database
while MySQL key names are only unique per table.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from sql_lexer import (
    Token,
    TokenKind,
    WORDS,
    is_plain_identifier,
    matching_paren,
    quote_identifier,
    quote_string,
    significant,
    split_top_level,
)
from statement_classifier import StatementKind
from translation_errors import UnsupportedConstruct
from translator_config import TranslatorConfig

logger = logging.getLogger(__name__)

Statement = Tuple[str, Dict[str, str]]

TYPE_MODIFIERS = ("UNSIGNED", "SIGNED", "ZEROFILL")
INDEX_OPTIONS = ("USING", "COMMENT", "KEY_BLOCK_SIZE", "VISIBLE", "INVISIBLE", "WITH", "PARSER")
CURRENT_TIME_DEFAULTS = {
    "CURRENT_TIMESTAMP": "CURRENT_TIMESTAMP",
    "NOW": "CURRENT_TIMESTAMP",
    "LOCALTIME": "CURRENT_TIMESTAMP",
    "LOCALTIMESTAMP": "CURRENT_TIMESTAMP",
    "CURRENT_DATE": "CURRENT_DATE",
    "CURRENT_TIME": "CURRENT_TIME",
}
CONSTRAINT_KINDS = ("PRIMARY", "UNIQUE", "FOREIGN", "CHECK")
# Table options that change what the table is, rather than how MySQL stores it.
UNSUPPORTED_TABLE_OPTIONS = ("PARTITION", "AS", "SELECT", "LIKE", "UNION")


class ColumnDefinition(NamedTuple):
    name: str
    source_type: str
    target_type: str
    nullability: Optional[bool] = None
    default: Optional[str] = None
    auto_increment: bool = False
    primary_key: bool = False
    unique: bool = False


class IndexColumn(NamedTuple):
    name: str
    direction: Optional[str] = None

    def to_sql(self) -> str:
        name = self.name if is_plain_identifier(self.name) else quote_identifier(self.name)
        return f"{name} {self.direction}" if self.direction else name


class IndexDefinition(NamedTuple):
    name: str
    table: str
    unique: bool
    columns: Tuple[IndexColumn, ...]

    @property
    def index_name(self) -> str:
        return f"{self.table}__{self.name}"

    def to_sql(self, if_not_exists: bool = False) -> str:
        unique = "UNIQUE " if self.unique else ""
        exists = "IF NOT EXISTS " if if_not_exists else ""
        columns = ",".join(c.to_sql() for c in self.columns)
        return (
            f"CREATE {unique}INDEX {exists}{quote_identifier(self.index_name)} "
            f"ON {quote_identifier(self.table)} ({columns})"
        )


def render_tokens(tokens: Sequence[Token]) -> str:
    """Re-emit significant tokens for SQLite, keeping the original spacing."""
    out = []
    prev = None
    for token in tokens:
        if prev is not None and token.start > prev.end:
            out.append(" ")
        if token.kind is TokenKind.QUOTED_IDENTIFIER:
            out.append(quote_identifier(token.value))
        elif token.kind is TokenKind.STRING:
            out.append(quote_string(token.value))
        else:
            out.append(token.text)
        prev = token
    return "".join(out)


class TokenCursor:
    """Forward-only reader over the significant tokens of one statement."""

    def __init__(self, tokens: Sequence[Token], sql: Optional[str] = None):
        self.tokens = list(tokens)
        if self.tokens and self.tokens[-1].is_punct(";"):
            self.tokens.pop()
        self.pos = 0
        self.sql = sql

    def peek(self, offset: int = 0) -> Optional[Token]:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise UnsupportedConstruct("Unexpected end of statement", self.sql)
        self.pos += 1
        return token

    def accept_word(self, *words: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.is_word(*words):
            self.pos += 1
            return token
        return None

    def expect_word(self, *words: str) -> Token:
        token = self.accept_word(*words)
        if token is None:
            found = self.peek().text if self.peek() else "end of statement"
            raise UnsupportedConstruct(f"Expected {' or '.join(words)}, found {found!r}", self.sql)
        return token

    def accept_words(self, *sequence: str) -> bool:
        """Consume a whole keyword sequence, or nothing."""
        for offset, word in enumerate(sequence):
            token = self.peek(offset)
            if token is None or not token.is_word(word):
                return False
        self.pos += len(sequence)
        return True

    def accept_punct(self, char: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.is_punct(char):
            self.pos += 1
            return token
        return None

    def accept_operator(self, operator: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.kind is TokenKind.OPERATOR and token.text == operator:
            self.pos += 1
            return token
        return None

    def identifier(self) -> str:
        token = self.advance()
        if token.kind is TokenKind.QUOTED_IDENTIFIER or token.kind in WORDS:
            return token.value
        raise UnsupportedConstruct(f"Expected an identifier, found {token.text!r}", self.sql)

    def table_name(self) -> str:
        name = self.identifier()
        if self.peek() is not None and self.peek().is_punct("."):
            raise UnsupportedConstruct("Database-qualified table names are not supported", self.sql)
        return name

    def parenthesized(self) -> List[Token]:
        """Consume ``( ... )`` and return the tokens inside."""
        token = self.peek()
        if token is None or not token.is_punct("("):
            found = token.text if token else "end of statement"
            raise UnsupportedConstruct(f"Expected '(', found {found!r}", self.sql)
        close = matching_paren(self.tokens, self.pos, self.sql)
        inner = self.tokens[self.pos + 1:close]
        self.pos = close + 1
        return inner

    def rest(self) -> List[Token]:
        remaining = self.tokens[self.pos:]
        self.pos = len(self.tokens)
        return remaining


class DDLTranslator:
    """Translates MySQL DDL statements into SQLite statements."""

    def __init__(self, config: TranslatorConfig):
        self.config = config
        self._handlers = {
            StatementKind.CREATE_TABLE: self.translate_create_table,
            StatementKind.CREATE_INDEX: self.translate_create_index,
            StatementKind.ALTER_ADD_COLUMN: self.translate_add_column,
            StatementKind.ALTER_ADD_KEY: self.translate_add_key,
            StatementKind.ALTER_ADD_UNIQUE_KEY: self.translate_add_key,
            StatementKind.DROP_INDEX: self.translate_drop_index,
        }

    def translate(self, kind: StatementKind, tokens: Sequence[Token], sql: str) -> List[Statement]:
        handler = self._handlers.get(kind)
        if handler is None:
            raise UnsupportedConstruct(f"{kind.value} is not a DDL statement", sql)
        return handler(tokens, sql)

    # ── Types ─────────────────────────────────────────────────────────────

    def map_type(self, type_name: str, sql: Optional[str] = None) -> str:
        """Map a MySQL base type name (no length or modifiers) to its SQLite type."""
        target = self.config.type_map.get(type_name.lower())
        if target is None:
            raise UnsupportedConstruct(f"Unsupported column type {type_name!r}", sql)
        return target

    def _read_type(self, cursor: TokenCursor) -> Tuple[str, Token, Token]:
        """Consume a column type; return (target type, first token, last token)."""
        first = cursor.advance()
        if first.kind not in WORDS:
            raise UnsupportedConstruct(f"Expected a column type, found {first.text!r}", cursor.sql)
        base = first.text
        last = first
        if first.is_word("DOUBLE") and cursor.peek() is not None and cursor.peek().is_word("PRECISION"):
            last = cursor.advance()
            base = "double precision"
        if cursor.peek() is not None and cursor.peek().is_punct("("):
            cursor.parenthesized()
            last = cursor.tokens[cursor.pos - 1]
        while True:
            modifier = cursor.accept_word(*TYPE_MODIFIERS)
            if modifier is None:
                break
            last = modifier
        return self.map_type(base, cursor.sql), first, last

    # ── Keys ──────────────────────────────────────────────────────────────

    def _key_columns(self, tokens: Sequence[Token], sql: str) -> Tuple[IndexColumn, ...]:
        """Parse a key column list, dropping prefix lengths such as ``(191)``."""
        columns = []
        for part in split_top_level(tokens):
            cursor = TokenCursor(part, sql)
            name = cursor.identifier()
            if cursor.peek() is not None and cursor.peek().is_punct("("):
                length = cursor.parenthesized()
                if len(length) != 1 or length[0].kind is not TokenKind.NUMBER:
                    raise UnsupportedConstruct("Unsupported key part length", sql)
            direction = cursor.accept_word("ASC", "DESC")
            if not cursor.at_end():
                raise UnsupportedConstruct(f"Unsupported key part {cursor.peek().text!r}", sql)
            columns.append(IndexColumn(name, direction.upper if direction else None))
        if not columns:
            raise UnsupportedConstruct("Key without columns", sql)
        return tuple(columns)

    def _skip_index_options(self, cursor: TokenCursor) -> None:
        while not cursor.at_end():
            option = cursor.expect_word(*INDEX_OPTIONS)
            if option.is_word("VISIBLE", "INVISIBLE"):
                continue
            if option.is_word("WITH"):
                cursor.expect_word("PARSER")
            cursor.accept_operator("=")
            cursor.advance()

    def _read_key(self, cursor: TokenCursor, table: str, unique: bool) -> IndexDefinition:
        """Parse ``[name] [USING x] (cols) [options]`` after KEY / INDEX."""
        name = None
        token = cursor.peek()
        if token is not None and not token.is_punct("(") and not token.is_word("USING"):
            name = cursor.identifier()
        if cursor.accept_word("USING"):
            cursor.advance()
        columns = self._key_columns(cursor.parenthesized(), cursor.sql)
        self._skip_index_options(cursor)
        return IndexDefinition(name or columns[0].name, table, unique, columns)

    # ── CREATE TABLE ──────────────────────────────────────────────────────

    def _read_default(self, cursor: TokenCursor) -> str:
        token = cursor.advance()
        if token.kind is TokenKind.STRING:
            return quote_string(token.value)
        if token.kind is TokenKind.NUMBER:
            return token.text
        if token.kind is TokenKind.OPERATOR and token.text in ("-", "+"):
            number = cursor.advance()
            if number.kind is not TokenKind.NUMBER:
                raise UnsupportedConstruct(f"Unsupported DEFAULT value near {number.text!r}", cursor.sql)
            return token.text + number.text
        if token.is_punct("("):
            cursor.pos -= 1
            start = cursor.pos
            cursor.parenthesized()
            return render_tokens(cursor.tokens[start:cursor.pos])
        if token.is_word("NULL", "TRUE", "FALSE"):
            return token.upper
        if token.upper in CURRENT_TIME_DEFAULTS and token.kind in WORDS:
            if cursor.peek() is not None and cursor.peek().is_punct("("):
                cursor.parenthesized()
            return CURRENT_TIME_DEFAULTS[token.upper]
        nxt = cursor.peek()
        if token.is_word("B", "X") and nxt is not None and nxt.kind is TokenKind.STRING and nxt.start == token.end:
            cursor.advance()
            if token.upper == "B":
                return str(int(nxt.value or "0", 2))
            return f"X'{nxt.value}'"
        raise UnsupportedConstruct(f"Unsupported DEFAULT value {token.text!r}", cursor.sql)

    def _read_column(self, tokens: Sequence[Token], sql: str) -> ColumnDefinition:
        cursor = TokenCursor(tokens, sql)
        name = cursor.identifier()
        target_type, first, last = self._read_type(cursor)
        source_type = sql[first.start:last.end] if sql else first.text

        column = ColumnDefinition(name, source_type, target_type)
        while not cursor.at_end():
            if cursor.accept_words("NOT", "NULL"):
                column = column._replace(nullability=False)
            elif cursor.accept_word("NULL"):
                column = column._replace(nullability=True)
            elif cursor.accept_word("DEFAULT"):
                column = column._replace(default=self._read_default(cursor))
            elif cursor.accept_word("AUTO_INCREMENT"):
                column = column._replace(auto_increment=True)
            elif cursor.accept_word("PRIMARY"):
                cursor.accept_word("KEY")
                column = column._replace(primary_key=True)
            elif cursor.accept_word("KEY"):
                column = column._replace(primary_key=True)
            elif cursor.accept_word("UNIQUE"):
                cursor.accept_word("KEY")
                column = column._replace(unique=True)
            elif cursor.accept_word("COMMENT"):
                cursor.advance()
            elif cursor.accept_words("CHARACTER", "SET") or cursor.accept_word("CHARSET", "COLLATE"):
                cursor.accept_operator("=")
                cursor.advance()
            elif cursor.accept_words("ON", "UPDATE"):
                cursor.advance()
                if cursor.peek() is not None and cursor.peek().is_punct("("):
                    cursor.parenthesized()
            else:
                raise UnsupportedConstruct(
                    f"Unsupported attribute {cursor.peek().text!r} on column {name!r}", sql
                )
        return column

    def _render_column(self, column: ColumnDefinition, autoincrement: bool) -> str:
        parts = [quote_identifier(column.name), column.target_type]
        if column.nullability is False:
            parts.append("NOT NULL")
        elif column.nullability is True:
            parts.append("NULL")
        if column.default is not None:
            parts.append(f"DEFAULT {column.default}")
        if column.unique:
            parts.append("UNIQUE")
        if autoincrement:
            parts.append("PRIMARY KEY AUTOINCREMENT")
        return " ".join(parts)

    def translate_create_table(self, tokens: Sequence[Token], sql: str) -> List[Statement]:
        cursor = TokenCursor(significant(tokens), sql)
        cursor.expect_word("CREATE")
        temporary = cursor.accept_word("TEMPORARY") is not None
        cursor.expect_word("TABLE")
        if_not_exists = cursor.accept_words("IF", "NOT", "EXISTS")
        table = cursor.table_name()
        if cursor.peek() is not None and cursor.peek().is_word(*UNSUPPORTED_TABLE_OPTIONS):
            raise UnsupportedConstruct(f"CREATE TABLE ... {cursor.peek().text} is not supported", sql)
        body = cursor.parenthesized()

        for option in cursor.rest():
            if option.is_word(*UNSUPPORTED_TABLE_OPTIONS):
                raise UnsupportedConstruct(f"Table option {option.text} is not supported", sql)

        columns: List[ColumnDefinition] = []
        indexes: List[IndexDefinition] = []
        primary: List[str] = []

        for definition in split_top_level(body):
            if not definition:
                raise UnsupportedConstruct("Empty column definition", sql)
            part = TokenCursor(definition, sql)
            if part.accept_word("CONSTRAINT"):
                if part.peek() is not None and not part.peek().is_word(*CONSTRAINT_KINDS):
                    part.identifier()
                if part.peek() is None or not part.peek().is_word(*CONSTRAINT_KINDS):
                    raise UnsupportedConstruct("Unsupported CONSTRAINT definition", sql)
            if part.accept_word("PRIMARY"):
                part.expect_word("KEY")
                if part.accept_word("USING"):
                    part.advance()
                primary.extend(c.name for c in self._key_columns(part.parenthesized(), sql))
                self._skip_index_options(part)
            elif part.accept_word("UNIQUE"):
                part.accept_word("KEY", "INDEX")
                indexes.append(self._read_key(part, table, unique=True))
            elif part.accept_word("KEY", "INDEX"):
                indexes.append(self._read_key(part, table, unique=False))
            elif part.peek().is_word("FULLTEXT", "SPATIAL"):
                logger.warning(f"Dropping {part.peek().upper} key on {table}: no SQLite equivalent")
            elif part.peek().is_word("FOREIGN", "CHECK"):
                raise UnsupportedConstruct(f"{part.peek().upper} constraints are not supported", sql)
            else:
                columns.append(self._read_column(definition, sql))

        if not columns:
            raise UnsupportedConstruct(f"CREATE TABLE {table} has no columns", sql)

        inline_primary = [c.name for c in columns if c.primary_key]
        if primary and inline_primary:
            raise UnsupportedConstruct(f"Multiple primary keys defined on {table}", sql)
        primary = primary or inline_primary

        by_name = {c.name.lower(): c for c in columns}
        for name in primary:
            if name.lower() not in by_name:
                raise UnsupportedConstruct(f"PRIMARY KEY references unknown column {name!r}", sql)

        autoincrement_column = None
        if len(primary) == 1:
            candidate = by_name[primary[0].lower()]
            if candidate.auto_increment and candidate.target_type == "integer":
                autoincrement_column = candidate.name

        lines = []
        for column in columns:
            is_autoincrement = column.name == autoincrement_column
            if column.auto_increment and not is_autoincrement:
                logger.warning(
                    f"Dropping AUTO_INCREMENT on {table}.{column.name}: "
                    f"only a sole integer primary key can auto-increment in SQLite"
                )
            lines.append(self._render_column(column, is_autoincrement))
        if primary and autoincrement_column is None:
            lines.append(f"PRIMARY KEY ({', '.join(quote_identifier(n) for n in primary)})")

        head = "CREATE "
        if temporary:
            head += "TEMPORARY "
        head += "TABLE "
        if if_not_exists:
            head += "IF NOT EXISTS "
        create = head + quote_identifier(table) + " (\n" + ",\n".join(f"    {line}" for line in lines) + "\n)"

        statements: List[Statement] = [(create, {})]
        used_names = set()
        for index in indexes:
            name = index.name
            suffix = 2
            while name.lower() in used_names:
                name = f"{index.name}_{suffix}"
                suffix += 1
            used_names.add(name.lower())
            statements.append((index._replace(name=name).to_sql(if_not_exists), {}))

        logger.debug(f"CREATE TABLE {table}: {len(columns)} columns, {len(indexes)} indexes")
        return statements

    # ── ALTER TABLE ───────────────────────────────────────────────────────

    def translate_add_column(self, tokens: Sequence[Token], sql: str) -> List[Statement]:
        """Rewrite the column type in place and drop MySQL-only attributes; the rest passes through."""
        sig = significant(tokens)
        cursor = TokenCursor(sig, sql)
        cursor.expect_word("ALTER")
        cursor.expect_word("TABLE")
        table = cursor.table_name()
        cursor.expect_word("ADD")
        cursor.accept_word("COLUMN")
        column = cursor.identifier()
        target_type, first, last = self._read_type(cursor)

        edits: List[Tuple[int, int, str]] = [(first.start, last.end, target_type)]

        def removal(start_index: int, end_index: int) -> Tuple[int, int, str]:
            previous = cursor.tokens[start_index - 1]
            return previous.end, cursor.tokens[end_index].end, ""

        while not cursor.at_end():
            start = cursor.pos
            token = cursor.peek()
            if cursor.accept_words("CHARACTER", "SET") or cursor.accept_word("CHARSET", "COLLATE"):
                cursor.accept_operator("=")
                cursor.advance()
                edits.append(removal(start, cursor.pos - 1))
            elif cursor.accept_word("FIRST"):
                edits.append(removal(start, start))
            elif cursor.accept_word("AFTER"):
                cursor.advance()
                edits.append(removal(start, cursor.pos - 1))
            elif cursor.accept_word("COMMENT"):
                cursor.advance()
                edits.append(removal(start, cursor.pos - 1))
            elif cursor.accept_words("ON", "UPDATE"):
                cursor.advance()
                if cursor.peek() is not None and cursor.peek().is_punct("("):
                    cursor.parenthesized()
                edits.append(removal(start, cursor.pos - 1))
            elif cursor.accept_word("AUTO_INCREMENT"):
                logger.warning(f"Dropping AUTO_INCREMENT on added column {table}.{column}")
                edits.append(removal(start, start))
            else:
                cursor.advance()
                if token.kind is TokenKind.STRING and quote_string(token.value) != token.text:
                    edits.append((token.start, token.end, quote_string(token.value)))

        translated = sql
        for start, end, replacement in sorted(edits, reverse=True):
            translated = translated[:start] + replacement + translated[end:]
        return [(translated, {})]

    def translate_add_key(self, tokens: Sequence[Token], sql: str) -> List[Statement]:
        cursor = TokenCursor(significant(tokens), sql)
        cursor.expect_word("ALTER")
        cursor.expect_word("TABLE")
        table = cursor.table_name()
        cursor.expect_word("ADD")
        unique = cursor.accept_word("UNIQUE") is not None
        if unique:
            cursor.accept_word("KEY", "INDEX")
        else:
            cursor.expect_word("KEY", "INDEX")
        index = self._read_key(cursor, table, unique)
        return [(index.to_sql(), {})]

    def translate_create_index(self, tokens: Sequence[Token], sql: str) -> List[Statement]:
        cursor = TokenCursor(significant(tokens), sql)
        cursor.expect_word("CREATE")
        unique = cursor.accept_word("UNIQUE") is not None
        cursor.expect_word("INDEX")
        name = cursor.identifier()
        if cursor.accept_word("USING"):
            cursor.advance()
        cursor.expect_word("ON")
        table = cursor.table_name()
        columns = self._key_columns(cursor.parenthesized(), sql)
        self._skip_index_options(cursor)
        return [(IndexDefinition(name, table, unique, columns).to_sql(), {})]

    def translate_drop_index(self, tokens: Sequence[Token], sql: str) -> List[Statement]:
        cursor = TokenCursor(significant(tokens), sql)
        if cursor.accept_word("ALTER"):
            cursor.expect_word("TABLE")
            table = cursor.table_name()
            cursor.expect_word("DROP")
            cursor.expect_word("INDEX", "KEY")
            name = cursor.identifier()
        else:
            cursor.expect_word("DROP")
            cursor.expect_word("INDEX")
            name = cursor.identifier()
            cursor.expect_word("ON")
            table = cursor.table_name()
        if not cursor.at_end():
            raise UnsupportedConstruct(f"Unexpected {cursor.peek().text!r} after DROP INDEX", sql)
        return [(f"DROP INDEX {quote_identifier(f'{table}__{name}')}", {})]
