"""
Result Assembler — Packages translated statements for the execution layer.

A TranslationResult is the ordered list of queries that realize one MySQL
statement in SQLite: the schema statement first, dependent CREATE INDEX
statements after it, in declaration order.
"""

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, NamedTuple, Optional, Tuple

from statement_classifier import StatementKind

_NO_PARAMS: Mapping[str, str] = MappingProxyType({})


class ExecutedQuery(NamedTuple):
    """One SQL statement plus the named parameters to bind when running it."""

    sql: str
    params: Mapping[str, str] = _NO_PARAMS


class TranslationResult:
    """Immutable, ordered sequence of ExecutedQuery.

    ``table_prefix`` is informational only; it is copied from the translator
    and does not affect any query.
    """

    def __init__(
        self,
        queries: Iterable[ExecutedQuery],
        kind: Optional[StatementKind] = None,
        table_prefix: str = "",
    ):
        self._queries: Tuple[ExecutedQuery, ...] = tuple(queries)
        self.kind = kind
        self.table_prefix = table_prefix

    @property
    def queries(self) -> Tuple[ExecutedQuery, ...]:
        return self._queries

    def __iter__(self) -> Iterator[ExecutedQuery]:
        return iter(self._queries)

    def __len__(self) -> int:
        return len(self._queries)

    def __getitem__(self, index):
        return self._queries[index]

    def __eq__(self, other) -> bool:
        if isinstance(other, TranslationResult):
            return self._queries == other._queries
        if isinstance(other, (list, tuple)):
            return list(self._queries) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        kind = self.kind.value if self.kind else None
        return f"TranslationResult(kind={kind!r}, queries={list(self._queries)!r})"


def assemble(
    statements: Iterable[Tuple[str, Mapping[str, str]]],
    kind: Optional[StatementKind] = None,
    table_prefix: str = "",
) -> TranslationResult:
    """Wrap (sql, params) pairs into a TranslationResult, preserving their order."""
    queries = [
        ExecutedQuery(sql, MappingProxyType(dict(params)) if params else _NO_PARAMS)
        for sql, params in statements
    ]
    return TranslationResult(queries, kind=kind, table_prefix=table_prefix)
