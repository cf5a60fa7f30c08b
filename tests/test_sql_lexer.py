"""
Unit tests for translator/sql_lexer.py
Covers: token kinds, lossless round-trip, string decoding, numeric edge cases,
comments, placeholders, lex errors and statement splitting.
"""

import pytest

from sql_lexer import (
    TokenKind,
    decode_string,
    is_plain_identifier,
    matching_paren,
    quote_identifier,
    quote_string,
    significant,
    split_statements,
    split_top_level,
    tokenize,
)
from translation_errors import LexError, TranslationError, UnsupportedConstruct


def kinds(sql):
    return [(t.kind, t.text) for t in significant(tokenize(sql))]


@pytest.mark.unit
class TestTokenize:
    """Token kinds and offsets."""

    def test_simple_select(self):
        assert kinds("SELECT id FROM wp_posts") == [
            (TokenKind.KEYWORD, "SELECT"),
            (TokenKind.IDENTIFIER, "id"),
            (TokenKind.KEYWORD, "FROM"),
            (TokenKind.IDENTIFIER, "wp_posts"),
        ]

    def test_keywords_are_case_insensitive(self):
        tokens = significant(tokenize("select Id from t"))
        assert tokens[0].kind is TokenKind.KEYWORD
        assert tokens[0].upper == "SELECT"
        assert tokens[2].is_word("FROM")

    def test_round_trip_is_lossless(self):
        sql = "SELECT `a`,\t'b''c' /* note */ FROM t -- trailing\nWHERE x >= 1.5e3 # done"
        assert "".join(t.text for t in tokenize(sql)) == sql

    def test_offsets_cover_input(self):
        sql = "UPDATE t SET a = 'x'"
        tokens = tokenize(sql)
        assert tokens[0].start == 0
        assert tokens[-1].end == len(sql)
        for prev, nxt in zip(tokens, tokens[1:]):
            assert prev.end == nxt.start

    def test_backtick_identifier(self):
        token = significant(tokenize("`my``col`"))[0]
        assert token.kind is TokenKind.QUOTED_IDENTIFIER
        assert token.value == "my`col"

    def test_double_quoted_is_string(self):
        token = significant(tokenize('"hello"'))[0]
        assert token.kind is TokenKind.STRING
        assert token.value == "hello"

    def test_operators_longest_first(self):
        assert [t.text for t in significant(tokenize("a <=> b <> c != d"))] == [
            "a", "<=>", "b", "<>", "c", "!=", "d",
        ]

    def test_punctuation(self):
        texts = [t.text for t in significant(tokenize("f(a, b);"))]
        assert texts == ["f", "(", "a", ",", "b", ")", ";"]

    def test_qualified_name_dot(self):
        tokens = significant(tokenize("t.5col"))
        assert tokens[1].is_punct(".")

    def test_variables_are_identifiers(self):
        tokens = significant(tokenize("SELECT @@session.sql_mode, @x"))
        assert tokens[1].text == "@@session.sql_mode"
        assert tokens[1].kind is TokenKind.IDENTIFIER
        assert tokens[3].text == "@x"

    def test_user_host_spec(self):
        tokens = significant(tokenize("CREATE DEFINER=`root`@`localhost` PROCEDURE p"))
        assert [t.text for t in tokens] == ["CREATE", "DEFINER", "=", "`root`", "@`localhost`", "PROCEDURE", "p"]
        assert tokens[4].kind is TokenKind.IDENTIFIER


@pytest.mark.unit
class TestNumbers:
    """Numeric literal lexing."""

    @pytest.mark.parametrize("text", ["0", "42", "1.5", ".5", "1.", "1e10", "2.5E-3", "0x1F"])
    def test_valid_numbers(self, text):
        tokens = significant(tokenize(text))
        assert len(tokens) == 1
        assert tokens[0].kind is TokenKind.NUMBER
        assert tokens[0].text == text

    @pytest.mark.parametrize("text", ["1.2.3", "1e+", "1.5e", "1.5abc", "0xZZ"])
    def test_malformed_numbers(self, text):
        with pytest.raises(LexError):
            tokenize(text)

    def test_digit_leading_identifier(self):
        token = significant(tokenize("1st_column"))[0]
        assert token.kind is TokenKind.IDENTIFIER
        assert token.text == "1st_column"

    def test_minus_is_operator(self):
        assert kinds("-1") == [(TokenKind.OPERATOR, "-"), (TokenKind.NUMBER, "1")]


@pytest.mark.unit
class TestStrings:
    """String literal decoding."""

    def test_doubled_quote(self):
        assert decode_string("'it''s'") == "it's"

    def test_backslash_escapes(self):
        assert decode_string(r"'a\nb\tc\\d\'e'") == "a\nb\tc\\d'e"

    def test_like_wildcards_keep_backslash(self):
        assert decode_string(r"'50\%'") == "50\\%"
        assert decode_string(r"'a\_b'") == "a\\_b"

    def test_unknown_escape_drops_backslash(self):
        assert decode_string(r"'\q'") == "q"

    def test_escaped_quote_does_not_terminate(self):
        tokens = significant(tokenize(r"SELECT 'a\'b' FROM t"))
        assert tokens[1].value == "a'b"
        assert tokens[2].is_word("FROM")

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc:
            tokenize("SELECT 'abc")
        assert exc.value.position == 7

    def test_unterminated_identifier(self):
        with pytest.raises(LexError):
            tokenize("SELECT `abc")


@pytest.mark.unit
class TestComments:
    """Comments and trivia."""

    def test_line_comments(self):
        tokens = tokenize("SELECT 1 -- one\n# two\n")
        comments = [t.text for t in tokens if t.kind is TokenKind.COMMENT]
        assert comments == ["-- one", "# two"]

    def test_double_dash_without_space_is_operator(self):
        assert [t.text for t in significant(tokenize("a--1"))] == ["a", "-", "-", "1"]

    def test_block_comment(self):
        tokens = tokenize("SELECT /* x; y */ 1")
        assert any(t.kind is TokenKind.COMMENT and ";" in t.text for t in tokens)

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError):
            tokenize("SELECT /* never closed")


@pytest.mark.unit
class TestPlaceholdersAndErrors:

    def test_question_mark(self):
        assert kinds("a = ?")[-1] == (TokenKind.PLACEHOLDER, "?")

    def test_named_placeholder(self):
        assert kinds("a = :name")[-1] == (TokenKind.PLACEHOLDER, ":name")

    def test_assignment_operator_is_not_placeholder(self):
        assert kinds("@a := 1")[1] == (TokenKind.OPERATOR, ":=")

    def test_unexpected_character(self):
        with pytest.raises(LexError) as exc:
            tokenize("SELECT 1 \\ 2")
        assert isinstance(exc.value, TranslationError)
        assert "offset 9" in str(exc.value)


@pytest.mark.unit
class TestHelpers:

    def test_quote_identifier(self):
        assert quote_identifier("post") == '"post"'
        assert quote_identifier('a"b') == '"a""b"'

    def test_quote_string(self):
        assert quote_string("it's") == "'it''s'"

    def test_is_plain_identifier(self):
        assert is_plain_identifier("post_date")
        assert not is_plain_identifier("order")
        assert not is_plain_identifier("my col")

    @pytest.mark.parametrize("name", ["returning", "escape", "notnull", "isnull", "nothing", "deferrable", "except", "to", "window"])
    def test_sqlite_reserved_words_are_not_plain(self, name):
        assert not is_plain_identifier(name)

    def test_matching_paren(self):
        tokens = significant(tokenize("(a, (b), c) d"))
        assert tokens[matching_paren(tokens, 0)].is_punct(")")
        assert matching_paren(tokens, 0) == 8

    def test_unbalanced_paren(self):
        tokens = significant(tokenize("(a, (b)"))
        with pytest.raises(UnsupportedConstruct):
            matching_paren(tokens, 0)

    def test_split_top_level_ignores_nested_commas(self):
        tokens = significant(tokenize("a int(1), b decimal(10,2)"))
        parts = split_top_level(tokens)
        assert len(parts) == 2
        assert [t.text for t in parts[1]] == ["b", "decimal", "(", "10", ",", "2", ")"]


@pytest.mark.unit
class TestSplitStatements:

    def test_split_batch(self):
        batch = "CREATE TABLE a (x int);\nINSERT INTO a VALUES (1);\n"
        assert split_statements(batch) == [
            "CREATE TABLE a (x int)",
            "INSERT INTO a VALUES (1)",
        ]

    def test_semicolons_inside_literals_and_comments(self):
        batch = "INSERT INTO t VALUES ('a;b'); /* c; d */ SELECT `x;y` FROM t"
        statements = split_statements(batch)
        assert len(statements) == 2
        assert statements[0] == "INSERT INTO t VALUES ('a;b')"
        assert statements[1].endswith("SELECT `x;y` FROM t")

    def test_drops_empty_and_comment_only(self):
        assert split_statements(";;  -- nothing here\n;") == []
