import pytest
from crudsql.exceptions import CompileError
from crudsql.sql import TokenType, count_placeholders, escape_identifier
from crudsql.sql import make_placeholders, quote_identifier
from crudsql.sql import standardize_placeholders, tokenize_sql


def test_quote_identifier():
    assert quote_identifier('users') == '`users`'
    assert quote_identifier('app.users') == '`app`.`users`'
    assert quote_identifier('price$usd') == '`price$usd`'


@pytest.mark.parametrize('name', [
    'users; DROP TABLE users',
    'na`me',
    '1abc',
    'a..b',
    '',
    'name with space',
])
def test_quote_identifier_strict_rejects(name):
    with pytest.raises(CompileError):
        quote_identifier(name)


def test_quote_identifier_relaxed_escapes_backticks():
    assert quote_identifier('we`ird col', strict=False) == '`we``ird col`'
    assert escape_identifier('a`b') == 'a``b'


def test_make_placeholders():
    assert make_placeholders(1) == '?'
    assert make_placeholders(3) == '?, ?, ?'
    assert make_placeholders(0) == ''


def test_tokenize_sql_separates_literals():
    tokens = tokenize_sql("SELECT * FROM `t?` WHERE a = ? AND b = 'what?'")
    types = [t.type for t in tokens]
    assert TokenType.QUOTED_IDENTIFIER in types
    assert TokenType.STRING_LITERAL in types
    assert types.count(TokenType.PLACEHOLDER) == 1


def test_count_placeholders_ignores_literals():
    assert count_placeholders("SELECT '?' , `?`, ? FROM t WHERE x = ?") == 2
    assert count_placeholders("SELECT 'it''s ?'") == 0


def test_standardize_placeholders_mysql():
    sql = "SELECT * FROM t WHERE a = ? AND b = 'why?' AND c IN (?, ?)"
    assert standardize_placeholders(sql, '%s') == \
        "SELECT * FROM t WHERE a = %s AND b = 'why?' AND c IN (%s, %s)"


def test_standardize_placeholders_noop_for_qmark():
    sql = 'SELECT ? FROM t'
    assert standardize_placeholders(sql, '?') is sql


def test_count_placeholders_trailing_backslash():
    """Backslash is literal text in standard SQL but an escape in MySQL"""
    sql = "SELECT 'a\\' AS x, ? AS y, 'b' AS z"
    assert count_placeholders(sql) == 1
    assert count_placeholders(sql, backslash_escapes=True) == 0


def test_count_placeholders_mysql_escaped_quote():
    sql = "SELECT 'it\\'s ?' AS x, ? AS y"
    assert count_placeholders(sql, backslash_escapes=True) == 1


def test_standardize_placeholders_backslash_escapes():
    sql = "SELECT 'a\\'?' AS x, ? AS y"
    assert standardize_placeholders(sql, '%s', backslash_escapes=True) == \
        "SELECT 'a\\'?' AS x, %s AS y"
