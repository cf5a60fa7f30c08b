"""
DML Translator — Rewrites SELECT / INSERT / UPDATE / DELETE for SQLite.

The statement is re-emitted token by token. Only two things change:
backtick-quoted identifiers become double-quoted, and calls to MySQL
functions without a SQLite equivalent are rewritten through the function map
(YEAR(d) → STRFTIME('%Y',d), NOW() → CURRENT_TIMESTAMP, RAND() → RANDOM()).
String literals have already been replaced by placeholders at this point.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from sql_lexer import Token, TokenKind, WORDS, matching_paren, quote_identifier, quote_string, significant
from statement_classifier import StatementKind
from translation_errors import UnsupportedConstruct
from translator_config import TranslatorConfig

logger = logging.getLogger(__name__)

# A word right after one of these names a table, not a function.
_TABLE_CONTEXT = ("INTO", "TABLE", "UPDATE", "FROM", "JOIN")


class DMLTranslator:
    """Translates MySQL DML statements into SQLite statements."""

    def __init__(self, config: TranslatorConfig):
        self.function_map: Mapping[str, Mapping[str, str]] = config.function_map

    def translate(self, kind: StatementKind, tokens: Sequence[Token], sql: Optional[str] = None) -> str:
        tokens = list(tokens)
        sig = significant(tokens)
        upper = [t.upper for t in sig]

        for i in range(len(upper) - 2):
            if upper[i:i + 3] == ["ON", "DUPLICATE", "KEY"]:
                raise UnsupportedConstruct("INSERT ... ON DUPLICATE KEY UPDATE is not supported", sql)

        if kind is StatementKind.INSERT and len(sig) > 1 and sig[1].is_word("IGNORE"):
            position = tokens.index(sig[1])
            tokens[position] = sig[1]._replace(text="OR IGNORE")

        translated = self._rewrite(tokens, sql)
        logger.debug(f"[{kind.value}] {translated}")
        return translated

    def _call_paren(self, tokens: List[Token], index: int) -> Optional[int]:
        """Index of the ``(`` opening a call to the word at ``index``, if any."""
        for j in range(index - 1, -1, -1):
            if not tokens[j].is_trivia:
                if tokens[j].is_word(*_TABLE_CONTEXT) or tokens[j].is_punct("."):
                    return None
                break
        for j in range(index + 1, len(tokens)):
            if not tokens[j].is_trivia:
                return j if tokens[j].is_punct("(") else None
        return None

    def _rewrite_call(self, name: Token, args: str) -> str:
        rule = self.function_map[name.upper]
        if "strftime" in rule:
            return f"STRFTIME({quote_string(rule['strftime'])},{args})"
        if "replace" in rule:
            return rule["replace"]
        return f"{rule['rename']}({args})"

    def _rewrite(self, tokens: List[Token], sql: Optional[str]) -> str:
        out = []
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token.kind is TokenKind.QUOTED_IDENTIFIER:
                out.append(quote_identifier(token.value))
            elif token.kind in WORDS and token.upper in self.function_map:
                open_index = self._call_paren(tokens, i)
                if open_index is not None:
                    close = matching_paren(tokens, open_index, sql)
                    args = self._rewrite(tokens[open_index + 1:close], sql).strip()
                    out.append(self._rewrite_call(token, args))
                    i = close + 1
                    continue
                out.append(token.text)
            else:
                out.append(token.text)
            i += 1
        return "".join(out)
