"""
Placeholder handling and call-string construction.

Statements may be written with `?` or `%s` positional placeholders; they are
converted to the driver's style in a single tokenizing pass that leaves
string literals and quoted identifiers untouched.

Main entry points:
- `standardize_placeholders()` - Convert positional placeholders for a style
- `escape_percent()` - Keep literal percent signs under the format style
- `make_placeholders()` - Build a comma separated placeholder run
- `build_call()` - Build a stored procedure call string
- `quote_identifier()` - Quote table/column/cursor names
"""
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto

from dbcall.exceptions import ValidationError

# =============================================================================
# Data Structures
# =============================================================================


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    POSITIONAL_PH = auto()      # %s or ?


class PlaceholderStyle(Enum):
    """Driver paramstyles supported for positional binding."""
    QMARK = 'qmark'             # ?        sqlite3, pyodbc
    FORMAT = 'format'           # %s       psycopg
    NUMERIC = 'numeric'         # :1, :2   oracledb


class CallSyntax(Enum):
    """Accepted stored procedure call-string forms."""
    BARE = 'bare'               # call NAME(?,?)
    BRACED = 'braced'           # { call NAME(?,?) }


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE)

_HAS_PLACEHOLDER = re.compile(r'%s|\?')

_UNESCAPED_PERCENT = re.compile(r'(?<!%)%(?!%)')

_PROCEDURE_NAME = re.compile(r'^[A-Za-z_][\w$#]*(\.[A-Za-z_][\w$#]*){0,2}$')


# =============================================================================
# Core Functions
# =============================================================================

def tokenize_sql(sql: str) -> list[Token]:
    """Split SQL into text, string literal and placeholder tokens.

    >>> [t.type.name for t in tokenize_sql("a = ? and b = '?'")]
    ['SQL_TEXT', 'POSITIONAL_PH', 'SQL_TEXT', 'STRING_LITERAL']
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0)))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any positional placeholders outside literals.
    """
    if not sql or not _HAS_PLACEHOLDER.search(sql):
        return False
    return any(t.type == TokenType.POSITIONAL_PH for t in tokenize_sql(sql))


def count_placeholders(sql: str) -> int:
    """Number of positional placeholders outside literals.

    >>> count_placeholders("insert into t(a,b) values (?,?)")
    2
    """
    return sum(1 for t in tokenize_sql(sql) if t.type == TokenType.POSITIONAL_PH)


def placeholder(style: PlaceholderStyle, position: int) -> str:
    """The placeholder text for a 1-based position."""
    if style == PlaceholderStyle.QMARK:
        return '?'
    if style == PlaceholderStyle.FORMAT:
        return '%s'
    return f':{position}'


def escape_percent(text: str) -> str:
    """Double lone percent signs so the format paramstyle keeps them.

    >>> escape_percent("like 'x%' and a %% 2")
    "like 'x%%' and a %% 2"
    """
    return _UNESCAPED_PERCENT.sub('%%', text)


def standardize_placeholders(sql: str, style: PlaceholderStyle,
                             texts: Sequence[str] = ()) -> str:
    """Convert %s and ? placeholders to the given style.

    `texts` supplies the placeholder written at each position, in order;
    positions beyond it use the plain style placeholder. For the format
    style, percent signs outside placeholders are escaped.

    >>> standardize_placeholders("select * from t where a = ? and b = 'x?'", PlaceholderStyle.FORMAT)
    "select * from t where a = %s and b = 'x?'"
    >>> standardize_placeholders('call p(%s, %s)', PlaceholderStyle.NUMERIC)
    'call p(:1, :2)'
    >>> standardize_placeholders("select ? where b like 'x%'", PlaceholderStyle.FORMAT, ['%s::date'])
    "select %s::date where b like 'x%%'"
    """
    if not has_placeholders(sql):
        return sql

    result = []
    position = 0
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            position += 1
            if position <= len(texts):
                result.append(texts[position - 1])
            else:
                result.append(placeholder(style, position))
        elif style == PlaceholderStyle.FORMAT:
            result.append(escape_percent(token.text))
        else:
            result.append(token.text)
    return ''.join(result)


def make_placeholders(count: int, style: PlaceholderStyle = PlaceholderStyle.QMARK,
                      start: int = 1) -> str:
    """Comma separated placeholders for `count` positions.

    >>> make_placeholders(3)
    '?,?,?'
    >>> make_placeholders(2, PlaceholderStyle.NUMERIC)
    ':1,:2'
    """
    return ','.join(placeholder(style, i) for i in range(start, start + count))


def validate_procedure_name(name: str) -> str:
    """Accept plain or schema/package qualified identifiers only.
    """
    if not name or not _PROCEDURE_NAME.match(name):
        raise ValidationError(f'Invalid procedure name: {name!r}')
    return name


def build_call(name: str, placeholders: list[str] | str, syntax: CallSyntax) -> str:
    """Build a stored procedure call string.

    >>> build_call('proc1', '?,?,?', CallSyntax.BRACED)
    '{ call proc1(?,?,?) }'
    >>> build_call('pkg.proc1', ['%s', '%s::varchar'], CallSyntax.BARE)
    'call pkg.proc1(%s,%s::varchar)'
    """
    validate_procedure_name(name)
    if not isinstance(placeholders, str):
        placeholders = ','.join(placeholders)
    call = f'call {name}({placeholders})'
    if syntax == CallSyntax.BRACED:
        return f'{{ {call} }}'
    return call


def quote_identifier(identifier: str, quote: str = '"') -> str:
    """Safely quote a database identifier.

    >>> quote_identifier('c1')
    '"c1"'
    """
    return quote + identifier.replace(quote, quote * 2) + quote


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
