"""
PostgreSQL-specific strategy implementation.

Procedures are invoked with a bare `call NAME(...)` statement through
psycopg. OUT and INOUT arguments are passed as NULLs cast to the declared
type, and PostgreSQL answers with a single row holding the output values.
A refcursor output arrives as the portal name; it is fetched with
`FETCH ALL` on the same connection and closed before release.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from dbcall.binding import BoundValue, ValueKind
from dbcall.cursor import materialize
from dbcall.exceptions import InvocationError
from dbcall.sql import CallSyntax, PlaceholderStyle, quote_identifier
from dbcall.strategy.base import DatabaseStrategy, register_strategy
from dbcall.types import SqlType, TabularResult

if TYPE_CHECKING:
    from dbcall.options import DatabaseOptions

logger = logging.getLogger(__name__)

POSTGRES_CASTS: dict[SqlType, str] = {
    SqlType.BIT: 'boolean',
    SqlType.BOOLEAN: 'boolean',
    SqlType.TINYINT: 'smallint',
    SqlType.SMALLINT: 'smallint',
    SqlType.INTEGER: 'integer',
    SqlType.BIGINT: 'bigint',
    SqlType.FLOAT: 'real',
    SqlType.REAL: 'real',
    SqlType.DOUBLE: 'double precision',
    SqlType.NUMERIC: 'numeric',
    SqlType.DECIMAL: 'numeric',
    SqlType.CHAR: 'char',
    SqlType.NCHAR: 'char',
    SqlType.VARCHAR: 'varchar',
    SqlType.NVARCHAR: 'varchar',
    SqlType.LONGVARCHAR: 'text',
    SqlType.LONGNVARCHAR: 'text',
    SqlType.CLOB: 'text',
    SqlType.NCLOB: 'text',
    SqlType.DATE: 'date',
    SqlType.TIME: 'time',
    SqlType.TIMESTAMP: 'timestamp',
    SqlType.TIMESTAMPTZ: 'timestamptz',
    SqlType.TIMESTAMP_WITH_TIMEZONE: 'timestamptz',
    SqlType.TIME_WITH_TIMEZONE: 'timetz',
    SqlType.BINARY: 'bytea',
    SqlType.VARBINARY: 'bytea',
    SqlType.LONGVARBINARY: 'bytea',
    SqlType.BLOB: 'bytea',
    SqlType.SQLXML: 'xml',
    SqlType.CURSOR: 'refcursor',
    SqlType.REF_CURSOR: 'refcursor',
}


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    placeholder_style = PlaceholderStyle.FORMAT
    call_syntax = CallSyntax.BARE
    supports_cursor_outputs = True

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query
        )

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def _cast(self, sql_type: SqlType) -> str:
        cast = POSTGRES_CASTS.get(sql_type)
        if cast is None:
            return '%s'
        return f'%s::{cast}'

    def input_placeholder(self, bound: BoundValue) -> str:
        """Typed NULL inputs carry a cast so overload resolution still works."""
        if bound.kind == ValueKind.NULL:
            return self._cast(bound.sql_type)
        return '%s'

    def output_placeholder(self, position: int, sql_type: SqlType) -> str:
        return self._cast(sql_type)

    def register_output(self, cursor: Any, position: int, sql_type: SqlType) -> Any:
        """OUT arguments are passed as NULL; the value comes back as a row."""
        return None

    def fetch_outputs(self, cursor: Any, slots: Sequence[Any],
                      output_types: Sequence[SqlType]) -> list[Any]:
        if not output_types:
            return []
        if cursor.description is None:
            raise InvocationError('Procedure returned no output row')
        row = cursor.fetchone()
        if row is None:
            raise InvocationError('Procedure returned no output row')
        values = list(row.values()) if isinstance(row, dict) else list(row)
        if len(values) != len(output_types):
            raise InvocationError(
                f'Procedure returned {len(values)} output values, expected {len(output_types)}')
        return values

    def materialize_cursor_output(self, connection: Any, value: Any) -> TabularResult:
        """Fetch every row of a named refcursor, then close the portal.
        """
        if value is None:
            return TabularResult()
        portal = quote_identifier(str(value))
        cursor = connection.cursor()
        try:
            cursor.execute(f'FETCH ALL FROM {portal}')
            result = materialize(cursor)
            cursor.execute(f'CLOSE {portal}')
        finally:
            cursor.close()
        logger.debug(f'Fetched {len(result)} rows from refcursor {value}')
        return result
