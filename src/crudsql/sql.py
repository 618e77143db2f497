"""
Identifier quoting and placeholder handling.

Identifiers (table and column names) cannot be bound as parameters, so they
are spliced into SQL text. They are backtick-quoted with embedded backticks
doubled. In strict mode each dotted part must also match
``[A-Za-z_][A-Za-z0-9_$]*``; the escaping alone is not a security boundary.

Statements are built with ``?`` placeholders. `standardize_placeholders`
converts them to the driver's paramstyle while leaving string literals and
quoted identifiers alone.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

from crudsql.exceptions import CompileError

__all__ = [
    'escape_identifier',
    'validate_identifier',
    'quote_identifier',
    'make_placeholders',
    'tokenize_sql',
    'standardize_placeholders',
    'count_placeholders',
]

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_$]*$')


class TokenType(Enum):
    """Token types identified during SQL scanning."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    PLACEHOLDER = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL scanning."""
    type: TokenType
    text: str


# MySQL: backslash escapes inside literals
_TOKENIZE_BACKSLASH = re.compile(r"""
    (?P<string>'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*")
    |(?P<ident>`(?:[^`]|``)*`)
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)

# Standard SQL (SQLite): quotes are only escaped by doubling
_TOKENIZE_STANDARD = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<ident>`(?:[^`]|``)*`)
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)


def escape_identifier(identifier: str) -> str:
    """Double embedded backticks.

    >>> escape_identifier('we`ird')
    'we``ird'
    """
    return identifier.replace('`', '``')


def validate_identifier(identifier: str) -> str:
    """Check every dotted part of an identifier against the allowed charset.

    Raises
        CompileError: If any part is empty or contains other characters
    """
    if not isinstance(identifier, str) or not identifier:
        raise CompileError(f'Invalid identifier: {identifier!r}')
    for part in identifier.split('.'):
        if not _IDENTIFIER.match(part):
            raise CompileError(f'Invalid identifier: {identifier!r}')
    return identifier


def quote_identifier(identifier: str, strict: bool = True) -> str:
    """Safely quote a table or column name.

    Dotted names are quoted per part (``db.users`` -> ```db`.`users```).
    With ``strict=False`` only the backtick escaping is applied and the
    whole name is quoted as a single identifier.

    >>> quote_identifier('users')
    '`users`'
    >>> quote_identifier('app.users')
    '`app`.`users`'
    """
    if not strict:
        if not isinstance(identifier, str) or not identifier:
            raise CompileError(f'Invalid identifier: {identifier!r}')
        return '`' + escape_identifier(identifier) + '`'

    validate_identifier(identifier)
    return '.'.join('`' + escape_identifier(part) + '`' for part in identifier.split('.'))


def make_placeholders(count: int) -> str:
    """Comma separated ``?`` placeholders.

    >>> make_placeholders(3)
    '?, ?, ?'
    """
    return ', '.join(['?'] * count)


def tokenize_sql(sql: str, backslash_escapes: bool = False) -> list[Token]:
    """Split SQL into text, string literals, quoted identifiers and ``?``.

    With `backslash_escapes` a backslash escapes the next character inside
    a literal (MySQL); otherwise only doubled quotes do (SQLite).
    """
    pattern = _TOKENIZE_BACKSLASH if backslash_escapes else _TOKENIZE_STANDARD
    tokens = []
    last_end = 0

    for match in pattern.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('ident'):
            ttype = TokenType.QUOTED_IDENTIFIER
        else:
            ttype = TokenType.PLACEHOLDER

        tokens.append(Token(ttype, match.group(0)))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def count_placeholders(sql: str, backslash_escapes: bool = False) -> int:
    """Number of ``?`` placeholders outside literals and quoted identifiers.
    """
    return sum(1 for t in tokenize_sql(sql, backslash_escapes) if t.type == TokenType.PLACEHOLDER)


def standardize_placeholders(sql: str, marker: str = '?',
                             backslash_escapes: bool = False) -> str:
    """Convert ``?`` placeholders to the driver's marker (``?`` or ``%s``).

    Parameters
        sql: SQL query string using ``?``
        marker: Placeholder used by the target driver
        backslash_escapes: Whether the dialect treats backslash as an escape

    Returns
        SQL with standardized placeholders
    """
    if not sql or marker == '?' or '?' not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql, backslash_escapes):
        if token.type == TokenType.PLACEHOLDER:
            result.append(marker)
        else:
            result.append(token.text)
    return ''.join(result)
