"""
Statement Classifier — Picks a translation strategy from the leading keywords.

Statements the translator does not understand are rejected, except for the
explicit IGNORABLE_STATEMENTS list, which translates to the canonical no-op.
"""

import logging
from enum import Enum
from typing import List, Sequence

from sql_lexer import WORDS, Token, TokenKind, significant, split_top_level
from translation_errors import UnsupportedConstruct

logger = logging.getLogger(__name__)


class StatementKind(Enum):
    CREATE_TABLE = "create_table"
    CREATE_INDEX = "create_index"
    ALTER_ADD_COLUMN = "alter_add_column"
    ALTER_ADD_KEY = "alter_add_key"
    ALTER_ADD_UNIQUE_KEY = "alter_add_unique_key"
    ALTER_ADD_FULLTEXT_KEY = "alter_add_fulltext_key"
    DROP_INDEX = "drop_index"
    DROP_TABLE = "drop_table"
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    TRANSACTION = "transaction"
    IGNORABLE = "ignorable"


DDL_KINDS = frozenset({
    StatementKind.CREATE_TABLE,
    StatementKind.CREATE_INDEX,
    StatementKind.ALTER_ADD_COLUMN,
    StatementKind.ALTER_ADD_KEY,
    StatementKind.ALTER_ADD_UNIQUE_KEY,
    StatementKind.DROP_INDEX,
})

DML_KINDS = frozenset({
    StatementKind.SELECT,
    StatementKind.INSERT,
    StatementKind.UPDATE,
    StatementKind.DELETE,
    StatementKind.DROP_TABLE,
})

# Statements with no meaning in SQLite. Leading word sequences, matched exactly.
IGNORABLE_STATEMENTS = (
    ("SET",),
    ("CALL",),
    ("CREATE", "PROCEDURE"),
    ("DROP", "PROCEDURE"),
    ("CREATE", "FULLTEXT", "INDEX"),
)

TRANSACTION_STATEMENTS = (
    ("BEGIN",),
    ("START", "TRANSACTION"),
    ("COMMIT",),
    ("ROLLBACK",),
)

DML_LEADERS = {
    "SELECT": StatementKind.SELECT,
    "INSERT": StatementKind.INSERT,
    "REPLACE": StatementKind.INSERT,
    "UPDATE": StatementKind.UPDATE,
    "DELETE": StatementKind.DELETE,
}

# Words after ALTER TABLE t ADD that introduce something other than a column.
_NON_COLUMN_ADDITIONS = {"PRIMARY", "FOREIGN", "CONSTRAINT", "SPATIAL", "CHECK", "PARTITION"}


def _starts_with(words: List[str], sequence: Sequence[str]) -> bool:
    return tuple(words[:len(sequence)]) == tuple(sequence)


def _leading_words(tokens: Sequence[Token], limit: int = 4) -> List[str]:
    words = []
    for token in tokens:
        if token.kind not in WORDS:
            break
        words.append(token.upper)
        if len(words) == limit:
            break
    return words


def _after_definer(sig: List[Token], sql: str) -> List[Token]:
    """Tokens following ``CREATE DEFINER = user``; user is name[@host] or CURRENT_USER[()]."""
    pos = 2
    if len(sig) < 4 or sig[pos].kind is not TokenKind.OPERATOR or sig[pos].text != "=":
        raise UnsupportedConstruct("Malformed DEFINER clause", sql)
    user = sig[pos + 1]
    pos += 2
    if user.is_word("CURRENT_USER") and len(sig) > pos + 1 and sig[pos].is_punct("(") and sig[pos + 1].is_punct(")"):
        pos += 2
    if pos < len(sig) and sig[pos].text.startswith("@"):
        pos += 1
    return sig[pos:]


def _classify_alter(sig: List[Token], sql: str) -> StatementKind:
    """ALTER TABLE <name> <specification>; only a single specification is modeled."""
    if len(sig) < 4 or not sig[1].is_word("TABLE"):
        raise UnsupportedConstruct("Only ALTER TABLE statements are supported", sql)

    spec = sig[3:]
    if len(split_top_level(spec)) > 1:
        raise UnsupportedConstruct("ALTER TABLE with several specifications is not supported", sql)

    action = spec[0]
    rest = spec[1:]
    if action.is_word("ADD") and rest:
        target = rest[0]
        if target.is_word("COLUMN"):
            return StatementKind.ALTER_ADD_COLUMN
        if target.is_word("KEY", "INDEX"):
            return StatementKind.ALTER_ADD_KEY
        if target.is_word("UNIQUE"):
            return StatementKind.ALTER_ADD_UNIQUE_KEY
        if target.is_word("FULLTEXT"):
            return StatementKind.ALTER_ADD_FULLTEXT_KEY
        if target.is_word(*_NON_COLUMN_ADDITIONS) or target.is_punct("("):
            raise UnsupportedConstruct(f"ALTER TABLE ADD {target.text} is not supported", sql)
        return StatementKind.ALTER_ADD_COLUMN
    if action.is_word("DROP") and rest and rest[0].is_word("INDEX", "KEY"):
        return StatementKind.DROP_INDEX

    raise UnsupportedConstruct(f"ALTER TABLE {action.text} is not supported", sql)


def classify(tokens: Sequence[Token], sql: str = None) -> StatementKind:
    """Return the StatementKind for a tokenized statement."""
    sig = significant(tokens)
    if not sig:
        raise UnsupportedConstruct("Empty statement", sql)

    words = _leading_words(sig)
    if not words:
        raise UnsupportedConstruct(f"Unrecognized statement start {sig[0].text!r}", sql)

    if words == ["CREATE", "DEFINER"]:
        words = ["CREATE"] + _leading_words(_after_definer(sig, sql), limit=3)

    for sequence in TRANSACTION_STATEMENTS:
        if _starts_with(words, sequence):
            return StatementKind.TRANSACTION

    for sequence in IGNORABLE_STATEMENTS:
        if _starts_with(words, sequence):
            return StatementKind.IGNORABLE

    leader = words[0]
    if leader in DML_LEADERS:
        return DML_LEADERS[leader]

    if leader == "CREATE":
        rest = [w for w in words[1:] if w != "TEMPORARY"]
        if rest[:1] == ["TABLE"]:
            return StatementKind.CREATE_TABLE
        if rest[:1] == ["INDEX"] or rest[:2] == ["UNIQUE", "INDEX"]:
            return StatementKind.CREATE_INDEX

    if leader == "DROP":
        rest = [w for w in words[1:] if w != "TEMPORARY"]
        if rest[:1] == ["TABLE"]:
            return StatementKind.DROP_TABLE
        if rest[:1] == ["INDEX"]:
            return StatementKind.DROP_INDEX

    if leader == "ALTER":
        return _classify_alter(sig, sql)

    raise UnsupportedConstruct(f"Unsupported statement {' '.join(words)!r}", sql)
