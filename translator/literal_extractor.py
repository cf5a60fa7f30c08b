"""
Literal Extractor — Replaces string literals with named placeholders.

Each single- or double-quoted string literal becomes ``:param0``, ``:param1``, …
in order of appearance, and its decoded value is recorded under the same name
(without the colon). Numeric literals stay inline so that LIMIT/OFFSET and
other numeric-only positions keep working.

Prefixed literals are not plain bound values:
    x'ff'          stays inline as X'ff' (SQLite blob literal)
    b'101'         becomes the integer 5
    N'abc'         binds 'abc'; the national-charset prefix is dropped
    _utf8mb4'abc'  binds 'abc'; the charset introducer is dropped

Names already used by ``:name`` placeholders in the statement are skipped.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sql_lexer import WORDS, Token, TokenKind, quote_string
from translation_errors import UnsupportedConstruct

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_PREFIX = "param"


def _literal_prefix(rewritten: List[Token], token: Token) -> Optional[str]:
    """The upper-cased word glued to the front of a string literal, if any."""
    if not rewritten:
        return None
    previous = rewritten[-1]
    if previous.kind not in WORDS or previous.end != token.start:
        return None
    prefix = previous.upper
    if prefix in ("X", "B", "N") or prefix.startswith("_"):
        return prefix
    return None


def extract_literals(
    tokens: Sequence[Token],
    prefix: str = DEFAULT_PLACEHOLDER_PREFIX,
) -> Tuple[List[Token], Dict[str, str]]:
    """Return (tokens with placeholders, parameter map)."""
    rewritten: List[Token] = []
    params: Dict[str, str] = {}
    taken = {t.text[1:] for t in tokens if t.kind is TokenKind.PLACEHOLDER and t.text.startswith(":")}
    positional = any(t.kind is TokenKind.PLACEHOLDER and t.text == "?" for t in tokens)
    counter = 0

    for token in tokens:
        if token.kind is not TokenKind.STRING:
            rewritten.append(token)
            continue

        literal_prefix = _literal_prefix(rewritten, token)
        if literal_prefix == "X":
            rewritten[-1] = rewritten[-1]._replace(text="X")
            rewritten.append(token._replace(text=quote_string(token.value)))
            continue
        if literal_prefix == "B":
            try:
                value = str(int(token.value or "0", 2))
            except ValueError:
                raise UnsupportedConstruct(f"Invalid bit literal {token.text!r}")
            marker = rewritten.pop()
            rewritten.append(Token(TokenKind.NUMBER, value, marker.start, token.end))
            continue
        start = token.start
        if literal_prefix is not None:
            marker = rewritten.pop()
            start = marker.start
            logger.debug(f"Dropping literal prefix {marker.text!r}")

        if positional:
            raise UnsupportedConstruct("Cannot extract string literals from a statement with ? placeholders")
        while f"{prefix}{counter}" in taken:
            counter += 1
        name = f"{prefix}{counter}"
        counter += 1
        params[name] = token.value
        rewritten.append(Token(TokenKind.PLACEHOLDER, f":{name}", start, token.end))

    if params:
        logger.debug(f"Extracted {len(params)} string literals")
    return rewritten, params
