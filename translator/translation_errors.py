"""
Translation errors raised while turning a MySQL statement into SQLite queries.

Every error carries the offending source statement so a caller running a
whole schema batch can report exactly which statement failed.
"""

from typing import Optional


class TranslationError(Exception):
    """Base class for all translation failures of a single statement."""

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.sql = sql

    def __str__(self) -> str:
        if self.sql is None:
            return self.message
        return f"{self.message} (statement: {self.sql!r})"


class LexError(TranslationError):
    """Malformed token: unterminated literal, bad numeric form, stray character."""

    def __init__(self, message: str, sql: Optional[str] = None, position: Optional[int] = None):
        super().__init__(message, sql)
        self.position = position


class UnsupportedConstruct(TranslationError):
    """The statement uses a clause or statement kind the translator does not model."""
