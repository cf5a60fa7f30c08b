"""
MySQL SQL Lexer — Splits a MySQL-dialect statement into typed tokens.

The token stream covers the source text with no gaps: whitespace and comments
are kept as their own (trivia) tokens, so joining every token's text gives
back the original statement byte for byte.

Usage:
    from sql_lexer import tokenize, split_statements
    tokens = tokenize("SELECT `ID` FROM wp_posts WHERE post_type = 'post'")
"""

import re
import logging
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence

from translation_errors import LexError, UnsupportedConstruct

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    QUOTED_IDENTIFIER = "quoted_identifier"
    STRING = "string"
    NUMBER = "number"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    WHITESPACE = "whitespace"
    COMMENT = "comment"
    PLACEHOLDER = "placeholder"


TRIVIA = (TokenKind.WHITESPACE, TokenKind.COMMENT)
WORDS = (TokenKind.KEYWORD, TokenKind.IDENTIFIER)

# MySQL keywords the translator cares about; any other word lexes as an identifier.
KEYWORDS = frozenset({
    "ADD", "AFTER", "ALL", "ALTER", "AND", "AS", "ASC", "AUTO_INCREMENT",
    "BEGIN", "BETWEEN", "BY", "CALL", "CASE", "CHARACTER", "CHARSET", "CHECK",
    "COLLATE", "COLUMN", "COMMENT", "COMMIT", "CONSTRAINT", "CREATE", "CROSS",
    "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP", "DEFAULT", "DELETE",
    "DESC", "DISTINCT", "DROP", "ELSE", "END", "ENGINE", "EXISTS", "FALSE",
    "FIRST", "FOREIGN", "FROM", "FULLTEXT", "GROUP", "HAVING", "IF", "IGNORE",
    "IN", "INDEX", "INNER", "INSERT", "INTERVAL", "INTO", "IS", "JOIN", "KEY",
    "LEFT", "LIKE", "LIMIT", "NOT", "NULL", "OFFSET", "ON", "OR", "ORDER",
    "OUTER", "PRIMARY", "PROCEDURE", "REFERENCES", "REPLACE", "RIGHT",
    "ROLLBACK", "SELECT", "SET", "SIGNED", "SPATIAL", "START", "TABLE",
    "TEMPORARY", "THEN", "TRANSACTION", "TRUE", "UNION", "UNIQUE", "UNSIGNED",
    "UPDATE", "USING", "VALUES", "WHEN", "WHERE", "ZEROFILL",
})


# Words SQLite reserves; an identifier spelled like one of these must stay quoted.
SQLITE_KEYWORDS = frozenset({
    "ABORT", "ACTION", "ADD", "AFTER", "ALL", "ALTER", "ALWAYS", "ANALYZE",
    "AND", "AS", "ASC", "ATTACH", "AUTOINCREMENT", "BEFORE", "BEGIN",
    "BETWEEN", "BY", "CASCADE", "CASE", "CAST", "CHECK", "COLLATE", "COLUMN",
    "COMMIT", "CONFLICT", "CONSTRAINT", "CREATE", "CROSS", "CURRENT",
    "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP", "DATABASE", "DEFAULT",
    "DEFERRABLE", "DEFERRED", "DELETE", "DESC", "DETACH", "DISTINCT", "DO",
    "DROP", "EACH", "ELSE", "END", "ESCAPE", "EXCEPT", "EXCLUDE", "EXCLUSIVE",
    "EXISTS", "EXPLAIN", "FAIL", "FILTER", "FIRST", "FOLLOWING", "FOR",
    "FOREIGN", "FROM", "FULL", "GENERATED", "GLOB", "GROUP", "GROUPS",
    "HAVING", "IF", "IGNORE", "IMMEDIATE", "IN", "INDEX", "INDEXED",
    "INITIALLY", "INNER", "INSERT", "INSTEAD", "INTERSECT", "INTO", "IS",
    "ISNULL", "JOIN", "KEY", "LAST", "LEFT", "LIKE", "LIMIT", "MATCH",
    "MATERIALIZED", "NATURAL", "NO", "NOT", "NOTHING", "NOTNULL", "NULL",
    "NULLS", "OF", "OFFSET", "ON", "OR", "ORDER", "OTHERS", "OUTER", "OVER",
    "PARTITION", "PLAN", "PRAGMA", "PRECEDING", "PRIMARY", "QUERY", "RAISE",
    "RANGE", "RECURSIVE", "REFERENCES", "REGEXP", "REINDEX", "RELEASE",
    "RENAME", "REPLACE", "RESTRICT", "RETURNING", "RIGHT", "ROLLBACK", "ROW",
    "ROWS", "SAVEPOINT", "SELECT", "SET", "TABLE", "TEMP", "TEMPORARY",
    "THEN", "TIES", "TO", "TRANSACTION", "TRIGGER", "UNBOUNDED", "UNION",
    "UNIQUE", "UPDATE", "USING", "VACUUM", "VALUES", "VIEW", "VIRTUAL", "WHEN",
    "WHERE", "WINDOW", "WITH", "WITHOUT",
})
OPERATORS = (
    "<=>", "->>",
    "<=", ">=", "<>", "!=", "||", "&&", "<<", ">>", ":=", "->",
    "=", "<", ">", "!", "+", "-", "*", "/", "%", "&", "|", "^", "~",
)
PUNCTUATION = "(),;."

_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[^\W\d][\w$]*")
_DIGIT_WORD_RE = re.compile(r"[\w$]+")
_NUMBER_RE = re.compile(r"0[xX][0-9a-fA-F]+(?![\w$])|(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")
_BAD_EXPONENT_RE = re.compile(r"[eE][+-]?(?!\d)")
_LINE_COMMENT_RE = re.compile(r"(?:#|--(?=\s|$))[^\n]*")
_VARIABLE_RE = re.compile(r"@@?(?:[\w$.]+|`[^`]*`|'[^']*'|\"[^\"]*\")")
_NAMED_PLACEHOLDER_RE = re.compile(r":[^\W\d]\w*")
_PLAIN_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# MySQL backslash escapes inside string literals. \% and \_ keep the backslash.
_ESCAPES = {
    "0": "\0",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "Z": "\x1a",
    "%": "\\%",
    "_": "\\_",
}


class Token(NamedTuple):
    kind: TokenKind
    text: str
    start: int
    end: int

    @property
    def upper(self) -> str:
        return self.text.upper()

    @property
    def is_trivia(self) -> bool:
        return self.kind in TRIVIA

    def is_word(self, *words: str) -> bool:
        """True for a keyword or bare identifier whose text is one of ``words``."""
        return self.kind in WORDS and self.text.upper() in words

    def is_punct(self, char: str) -> bool:
        return self.kind is TokenKind.PUNCTUATION and self.text == char

    @property
    def value(self) -> str:
        """Decoded value: string contents, or the bare name of an identifier."""
        if self.kind is TokenKind.STRING:
            return decode_string(self.text)
        if self.kind is TokenKind.QUOTED_IDENTIFIER:
            return decode_identifier(self.text)
        return self.text


def decode_string(text: str) -> str:
    """Undo MySQL quoting of a single- or double-quoted literal."""
    quote = text[0]
    body = text[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
        elif ch == quote and i + 1 < len(body) and body[i + 1] == quote:
            out.append(quote)
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def decode_identifier(text: str) -> str:
    """Strip backtick or double-quote delimiters from an identifier."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "`\"":
        quote = text[0]
        return text[1:-1].replace(quote * 2, quote)
    return text


def quote_identifier(name: str) -> str:
    """Double-quote an identifier for SQLite."""
    return '"' + name.replace('"', '""') + '"'


def quote_string(value: str) -> str:
    """Single-quote a literal for SQLite (no backslash escapes there)."""
    return "'" + value.replace("'", "''") + "'"


def is_plain_identifier(name: str) -> bool:
    """Whether ``name`` can appear unquoted in both MySQL and SQLite."""
    upper = name.upper()
    return bool(_PLAIN_IDENTIFIER_RE.match(name)) and upper not in KEYWORDS and upper not in SQLITE_KEYWORDS


def _scan_quoted(sql: str, pos: int) -> int:
    """Return the end offset of the quoted span starting at ``pos``."""
    quote = sql[pos]
    i = pos + 1
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch == "\\" and quote != "`":
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    what = "identifier" if quote == "`" else "string literal"
    raise LexError(f"Unterminated quoted {what} starting at offset {pos}", sql, pos)


def _previous_significant(tokens: List[Token]) -> Optional[Token]:
    for token in reversed(tokens):
        if not token.is_trivia:
            return token
    return None


def _scan_number(sql: str, pos: int, tokens: List[Token]) -> Optional[Token]:
    """Lex a numeric literal at ``pos``, or return None if it is really a word."""
    if sql[pos] == ".":
        prev = _previous_significant(tokens)
        if prev is not None and (
            prev.kind in (TokenKind.IDENTIFIER, TokenKind.QUOTED_IDENTIFIER) or prev.is_punct(")")
        ):
            return None

    match = _NUMBER_RE.match(sql, pos)
    text = match.group()
    end = match.end()
    nxt = sql[end:end + 1]

    if sql[pos:pos + 2].lower() == "0x":
        if not text.lower().startswith("0x"):
            raise LexError(f"Invalid hexadecimal literal at offset {pos}", sql, pos)
        return Token(TokenKind.NUMBER, text, pos, end)

    if nxt in ("e", "E") and _BAD_EXPONENT_RE.match(sql, end):
        if "." in text or sql[end + 1:end + 2] in ("+", "-"):
            raise LexError(f"Invalid numeric literal {sql[pos:end + 2]!r} at offset {pos}", sql, pos)
    if nxt == "." and "." in text:
        raise LexError(f"Invalid numeric literal at offset {pos}", sql, pos)
    if nxt and (nxt.isalnum() or nxt in "_$"):
        if text.isdigit():
            # MySQL allows identifiers that begin with digits, e.g. 1st_column.
            return None
        raise LexError(f"Invalid numeric literal at offset {pos}", sql, pos)

    return Token(TokenKind.NUMBER, text, pos, end)


def tokenize(sql: str) -> List[Token]:
    """Split ``sql`` into tokens covering the whole input."""
    tokens: List[Token] = []
    pos = 0
    n = len(sql)

    while pos < n:
        ch = sql[pos]

        if ch.isspace():
            end = _WHITESPACE_RE.match(sql, pos).end()
            tokens.append(Token(TokenKind.WHITESPACE, sql[pos:end], pos, end))
            pos = end
            continue

        match = _LINE_COMMENT_RE.match(sql, pos)
        if match:
            tokens.append(Token(TokenKind.COMMENT, match.group(), pos, match.end()))
            pos = match.end()
            continue

        if sql.startswith("/*", pos):
            close = sql.find("*/", pos + 2)
            if close == -1:
                raise LexError(f"Unterminated comment starting at offset {pos}", sql, pos)
            end = close + 2
            tokens.append(Token(TokenKind.COMMENT, sql[pos:end], pos, end))
            pos = end
            continue

        if ch == "`":
            end = _scan_quoted(sql, pos)
            tokens.append(Token(TokenKind.QUOTED_IDENTIFIER, sql[pos:end], pos, end))
            pos = end
            continue

        if ch in ("'", '"'):
            end = _scan_quoted(sql, pos)
            tokens.append(Token(TokenKind.STRING, sql[pos:end], pos, end))
            pos = end
            continue

        if ch.isdigit() or (ch == "." and sql[pos + 1:pos + 2].isdigit()):
            token = _scan_number(sql, pos, tokens)
            if token is not None:
                tokens.append(token)
                pos = token.end
                continue
            if ch.isdigit():
                end = _DIGIT_WORD_RE.match(sql, pos).end()
                tokens.append(Token(TokenKind.IDENTIFIER, sql[pos:end], pos, end))
                pos = end
                continue

        match = _WORD_RE.match(sql, pos)
        if match:
            text = match.group()
            kind = TokenKind.KEYWORD if text.upper() in KEYWORDS else TokenKind.IDENTIFIER
            tokens.append(Token(kind, text, pos, match.end()))
            pos = match.end()
            continue

        match = _VARIABLE_RE.match(sql, pos)
        if match:
            tokens.append(Token(TokenKind.IDENTIFIER, match.group(), pos, match.end()))
            pos = match.end()
            continue

        if ch == "?":
            tokens.append(Token(TokenKind.PLACEHOLDER, ch, pos, pos + 1))
            pos += 1
            continue

        match = _NAMED_PLACEHOLDER_RE.match(sql, pos)
        if match:
            tokens.append(Token(TokenKind.PLACEHOLDER, match.group(), pos, match.end()))
            pos = match.end()
            continue

        operator = next((op for op in OPERATORS if sql.startswith(op, pos)), None)
        if operator:
            tokens.append(Token(TokenKind.OPERATOR, operator, pos, pos + len(operator)))
            pos += len(operator)
            continue

        if ch in PUNCTUATION:
            tokens.append(Token(TokenKind.PUNCTUATION, ch, pos, pos + 1))
            pos += 1
            continue

        raise LexError(f"Unexpected character {ch!r} at offset {pos}", sql, pos)

    return tokens


def significant(tokens: Sequence[Token]) -> List[Token]:
    """Drop whitespace and comments."""
    return [t for t in tokens if not t.is_trivia]


def matching_paren(tokens: Sequence[Token], open_index: int, sql: Optional[str] = None) -> int:
    """Index of the ``)`` closing the ``(`` at ``open_index``."""
    depth = 0
    for i in range(open_index, len(tokens)):
        token = tokens[i]
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
            if depth == 0:
                return i
    raise UnsupportedConstruct("Unbalanced parentheses", sql)


def split_top_level(tokens: Sequence[Token], separator: str = ",") -> List[List[Token]]:
    """Split a token list on ``separator`` punctuation outside parentheses."""
    parts: List[List[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
        elif depth == 0 and token.is_punct(separator):
            parts.append([])
            continue
        parts[-1].append(token)
    return parts


def split_statements(sql: str) -> List[str]:
    """Split a semicolon-delimited batch into individual statements.

    Semicolons inside literals, quoted identifiers and comments do not split.
    Empty and comment-only statements are dropped.
    """
    statements = []
    for chunk in split_top_level(tokenize(sql), ";"):
        if all(t.is_trivia for t in chunk):
            continue
        statements.append("".join(t.text for t in chunk).strip())
    logger.debug(f"Split batch into {len(statements)} statements")
    return statements
