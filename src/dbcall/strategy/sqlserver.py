"""
SQL Server-specific strategy implementation.

Procedures are invoked with the ODBC escape `{ call NAME(?, ...) }` through
pyodbc. pyodbc has no output parameter primitive, so declared outputs are
rejected before anything is executed. A procedure's result set is read
after skipping any leading row-count results, and is returned as an extra
output entry.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from dbcall.binding import BoundValue, ValueKind
from dbcall.cursor import materialize
from dbcall.sql import CallSyntax, PlaceholderStyle
from dbcall.strategy.base import DatabaseStrategy, register_strategy
from dbcall.types import SqlType, TabularResult

if TYPE_CHECKING:
    from dbcall.options import DatabaseOptions

logger = logging.getLogger(__name__)

# SQL type codes whose ODBC number differs or has no ODBC counterpart
ODBC_TYPES: dict[SqlType, int] = {
    SqlType.BOOLEAN: -7,
    SqlType.ROWID: 12,
    SqlType.NCHAR: -8,
    SqlType.LONGNVARCHAR: -10,
    SqlType.CLOB: -1,
    SqlType.NCLOB: -10,
    SqlType.BLOB: -4,
}

ODBC_NATIVE = frozenset({
    SqlType.BIT, SqlType.TINYINT, SqlType.SMALLINT, SqlType.INTEGER, SqlType.BIGINT,
    SqlType.FLOAT, SqlType.REAL, SqlType.DOUBLE, SqlType.NUMERIC, SqlType.DECIMAL,
    SqlType.CHAR, SqlType.VARCHAR, SqlType.LONGVARCHAR, SqlType.NVARCHAR,
    SqlType.DATE, SqlType.TIME, SqlType.TIMESTAMP,
    SqlType.BINARY, SqlType.VARBINARY, SqlType.LONGVARBINARY,
})


def odbc_type(sql_type: SqlType) -> int:
    """ODBC SQL type number for a code; anything unknown binds as VARCHAR."""
    if sql_type in ODBC_TYPES:
        return ODBC_TYPES[sql_type]
    if sql_type in ODBC_NATIVE:
        return int(sql_type)
    return 12


@register_strategy('mssql')
class SQLServerStrategy(DatabaseStrategy):
    """SQL Server-specific operations.
    """

    placeholder_style = PlaceholderStyle.QMARK
    call_syntax = CallSyntax.BRACED
    returns_result_sets = True

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQL Server."""
        return 'mssql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQL Server over ODBC."""
        query = {
            'driver': options.odbc_driver,
            'TrustServerCertificate': 'yes',
        }
        if options.appname:
            query['APP'] = options.appname

        return sa.URL.create(
            drivername='mssql+pyodbc',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQL Server."""
        if options.timeout:
            return {'connect_args': {'timeout': options.timeout}}
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQL Server connections."""
        return ['hostname', 'username', 'password', 'database', 'odbc_driver']

    def apply_input_sizes(self, cursor: Any, bound: Sequence[BoundValue]) -> None:
        """Give pyodbc the declared type of NULL inputs.

        pyodbc otherwise describes a NULL as VARCHAR, which the server
        rejects for binary and some numeric parameters.
        """
        if not any(b.kind == ValueKind.NULL for b in bound):
            return
        sizes = []
        for b in bound:
            code = -5 if b.kind == ValueKind.INT64 else odbc_type(b.sql_type)
            sizes.append((code, 0, 0))
        cursor.setinputsizes(sizes)

    def collect_result_set(self, cursor: Any, has_result: bool) -> TabularResult | None:
        """Skip row-count results until a result set shows up.
        """
        while not has_result:
            if not cursor.nextset():
                logger.debug('Procedure produced no result set')
                return None
            has_result = cursor.description is not None
        return materialize(cursor)
